from functools import partial
from typing import Awaitable, Callable, Optional
import structlog

from xray_importer.models.linking import (
    FailedItem,
    LinkCategory,
    LinkedItem,
    LinkingConfiguration,
    LinkingResult,
    LinkOutcome,
    StepStatus,
)
from xray_importer.repositories.interfaces.xray_service import IXrayService
from xray_importer.services.link_plan import PlannedLink, build_link_plan
from xray_importer.services.progress_tracker import ProgressTracker
from xray_importer.services.reconciliation import ReconciliationValidator

logger = structlog.get_logger()

LinkInvoker = Callable[[], Awaitable[LinkOutcome]]


class LinkingOrchestrator:
    """Links one created test to every configured Xray entity, best effort.

    Operations run one at a time in plan order. A failing call is recorded
    and the remaining operations still run; validation always runs last.
    ``execute_linking`` does not raise for link or validation failures.
    """

    def __init__(self, xray_service: IXrayService, validator: Optional[ReconciliationValidator] = None):
        self.xray_service = xray_service
        self.validator = validator or ReconciliationValidator(xray_service)

    def _invoker(self, link: PlannedLink, created_id: str, config: LinkingConfiguration) -> LinkInvoker:
        if link.category == LinkCategory.PLAN:
            return partial(self.xray_service.link_to_plan, link.target_ids[0], [created_id])
        if link.category == LinkCategory.EXECUTION:
            return partial(self.xray_service.link_to_execution, link.target_ids[0], [created_id])
        if link.category == LinkCategory.SET:
            return partial(self.xray_service.link_to_set, link.target_ids[0], [created_id])
        if link.category == LinkCategory.FOLDER:
            return partial(self.xray_service.link_to_folder, config.project_id, config.folder_path, [created_id])
        return partial(self.xray_service.link_preconditions, created_id, list(link.target_ids))

    async def _attempt(
        self,
        link: PlannedLink,
        invoke: LinkInvoker,
        result: LinkingResult,
        tracker: Optional[ProgressTracker],
    ) -> None:
        if tracker:
            tracker.mark_step(link.step_id, StepStatus.IN_PROGRESS)

        try:
            outcome = await invoke()
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.warning("Link operation failed", category=link.category.value, target=link.display, error=error)
            result.failed_items.append(FailedItem(label=link.failure_label, error=error))
            result.has_errors = True
            if tracker:
                tracker.mark_step(link.step_id, StepStatus.FAILED, error)
                tracker.advance()
            return

        if outcome.added_count == 0:
            # already linked; the call is idempotent
            logger.warning("Nothing added by link operation", category=link.category.value,
                           target=link.display, warning=outcome.warning)
        result.linked_items.append(LinkedItem(label=link.success_label, category=link.category, key=link.key))
        if tracker:
            tracker.mark_step(link.step_id, StepStatus.COMPLETED)
            tracker.advance()

    async def execute_linking(
        self,
        created_id: str,
        config: LinkingConfiguration,
        tracker: Optional[ProgressTracker] = None,
    ) -> LinkingResult:
        result = LinkingResult()
        plan = build_link_plan(config)
        if config.is_empty():
            logger.info("No links configured, validating only", test_id=created_id)
        else:
            logger.info("Linking test", test_id=created_id, operations=len(plan))

        for link in plan:
            await self._attempt(link, self._invoker(link, created_id, config), result, tracker)

        if tracker:
            tracker.start_validation()
        validation = await self.validator.validate(created_id, config)
        result.validation = validation
        result.has_errors = bool(result.failed_items) or validation.has_mismatch

        logger.info(
            "Linking finished",
            test_id=created_id,
            linked=len(result.linked_items),
            failed=len(result.failed_items),
            validated=validation.is_validated,
            has_errors=result.has_errors,
        )
        return result
