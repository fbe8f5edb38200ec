from typing import Callable, Dict, Optional, Set
import structlog

from xray_importer.core.exceptions import InvalidStepTransition
from xray_importer.models.linking import (
    ImportPhase,
    ImportStep,
    LinkingConfiguration,
    LinkingResult,
    ProgressState,
    StepStatus,
)
from xray_importer.services.link_plan import CREATE_STEP_ID, build_progress_steps

logger = structlog.get_logger()

ProgressListener = Callable[[ProgressState], None]

_ALLOWED_TRANSITIONS: Dict[StepStatus, Set[StepStatus]] = {
    StepStatus.PENDING: {StepStatus.IN_PROGRESS},
    StepStatus.IN_PROGRESS: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.COMPLETED: set(),
    StepStatus.FAILED: set(),
}


class ProgressTracker:
    """Step state machine for one import attempt.

    The step list is precomputed by ``begin`` from the same link plan the
    orchestrator executes. Every mutation pushes a snapshot to the optional
    listener. There is no cancellation: the tracker only observes the run.
    """

    def __init__(self, listener: Optional[ProgressListener] = None):
        self._listener = listener
        self._state = ProgressState()

    @property
    def state(self) -> ProgressState:
        return self.snapshot()

    def snapshot(self) -> ProgressState:
        return self._state.model_copy(deep=True)

    @property
    def percent_complete(self) -> float:
        return self._state.percent_complete()

    def begin(self, config: LinkingConfiguration, is_update: bool = False) -> None:
        self._state = ProgressState(
            phase=ImportPhase.IMPORTING,
            steps=build_progress_steps(config, is_update=is_update),
            current_index=0,
            is_update=is_update,
        )
        self._notify()

    def _find_step(self, step_id: str) -> ImportStep:
        for step in self._state.steps:
            if step.id == step_id:
                return step
        raise InvalidStepTransition(f"Unknown import step '{step_id}'")

    def mark_step(self, step_id: str, status: StepStatus, error: Optional[str] = None) -> None:
        if self._state.phase == ImportPhase.COMPLETE:
            raise InvalidStepTransition("Import run already complete")

        step = self._find_step(step_id)
        if status not in _ALLOWED_TRANSITIONS[step.status]:
            raise InvalidStepTransition(
                f"Step '{step_id}' cannot move from {step.status.value} to {status.value}"
            )
        step.status = status
        step.error = error
        self._notify()

    def advance(self) -> None:
        self._state.current_index += 1
        self._notify()

    def set_created(self, created_id: str, created_key: Optional[str]) -> None:
        self._state.created_id = created_id
        self._state.created_key = created_key
        self._notify()

    def start_validation(self) -> None:
        self._state.phase = ImportPhase.VALIDATING
        self._notify()

    def finish(self, result: LinkingResult) -> None:
        self._state.phase = ImportPhase.COMPLETE
        self._state.linked_items = list(result.linked_items)
        self._state.failed_items = list(result.failed_items)
        self._state.has_errors = result.has_errors
        self._state.validation = result.validation
        self._notify()

    def fail(self, error: str) -> None:
        """Terminate the run after the create/update step failed"""
        create = self._find_step(CREATE_STEP_ID)
        if create.status == StepStatus.PENDING:
            create.status = StepStatus.IN_PROGRESS
        if create.status == StepStatus.IN_PROGRESS:
            create.status = StepStatus.FAILED
            create.error = error
        self._state.current_index += 1
        self._state.phase = ImportPhase.COMPLETE
        self._state.has_errors = True
        self._notify()

    def _notify(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener(self.snapshot())
        except Exception as e:
            # a broken observer must not stop the import
            logger.warning("Progress listener failed", error=str(e))
