from dataclasses import dataclass
from functools import partial
from typing import Callable, List, Optional, Sequence
import structlog

from xray_importer.models.linking import (
    AlreadyTracked,
    BatchItemResult,
    LinkingConfiguration,
    NewRecord,
    ProgressState,
    RecordClassification,
    StepStatus,
    ValidationResult,
)
from xray_importer.models.schemas import TestCase
from xray_importer.repositories.interfaces.test_case_repository import ITestCaseRepository
from xray_importer.repositories.interfaces.xray_service import IXrayService
from xray_importer.services.link_plan import CREATE_STEP_ID
from xray_importer.services.linking_orchestrator import LinkingOrchestrator
from xray_importer.services.progress_tracker import ProgressTracker

logger = structlog.get_logger()

ProgressCallback = Callable[[int, ProgressState], None]

RECORD_NOT_FOUND = "Test case not found"


def classify_record(record: TestCase) -> RecordClassification:
    """A record that already points at a Jira test is updated, not re-created"""
    if record.test_issue_id and record.test_key:
        return AlreadyTracked(source_key=record.test_key, source_id=record.test_issue_id)
    return NewRecord()


@dataclass(frozen=True)
class ClassifiedRecord:
    record: TestCase
    classification: RecordClassification

    @property
    def is_update(self) -> bool:
        return isinstance(self.classification, AlreadyTracked)


class BatchImportCoordinator:
    """Imports local test cases into Xray one record at a time"""

    def __init__(
        self,
        repository: ITestCaseRepository,
        xray_service: IXrayService,
        orchestrator: Optional[LinkingOrchestrator] = None,
    ):
        self.repository = repository
        self.xray_service = xray_service
        self.orchestrator = orchestrator or LinkingOrchestrator(xray_service)

    async def _load(self, record_id: int) -> Optional[ClassifiedRecord]:
        record = await self.repository.get_by_id(record_id)
        if record is None:
            return None
        return ClassifiedRecord(record=record, classification=classify_record(record))

    async def import_record(self, record_id: int, on_progress: Optional[ProgressCallback] = None) -> BatchItemResult:
        """Create-or-update, link and validate a single record"""
        try:
            classified = await self._load(record_id)
        except Exception as e:
            logger.error("Failed to load test case for import", record_id=record_id, error=str(e))
            return BatchItemResult(record_id=record_id, error=f"Failed to load test case: {e}", has_errors=True)

        if classified is None:
            logger.warning("Test case not found for import", record_id=record_id)
            return BatchItemResult(record_id=record_id, error=RECORD_NOT_FOUND, has_errors=True)
        return await self._import(classified, on_progress)

    async def run_batch(
        self,
        record_ids: Sequence[int],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BatchItemResult]:
        """Import records strictly in order; one record's failure never stops the batch"""
        results: List[BatchItemResult] = []
        for record_id in record_ids:
            results.append(await self.import_record(record_id, on_progress))

        logger.info(
            "Batch import finished",
            total=len(results),
            succeeded=sum(1 for r in results if r.succeeded),
            with_warnings=sum(1 for r in results if r.succeeded and r.has_errors),
        )
        return results

    async def _resolve_project_id(self, record: TestCase) -> LinkingConfiguration:
        """Fill in the numeric project id a folder link needs from the record's project key"""
        config = record.xray_linking
        if config.project_id or config.expected_folder is None or not record.project_key:
            return config

        try:
            project_id = await self.xray_service.get_project_id(record.project_key)
        except Exception as e:
            logger.warning("Could not resolve project id for folder linking",
                           record_id=record.id, project_key=record.project_key, error=str(e))
            return config
        return config.model_copy(update={"project_id": project_id})

    async def _import(self, classified: ClassifiedRecord, on_progress: Optional[ProgressCallback]) -> BatchItemResult:
        record = classified.record
        config = await self._resolve_project_id(record)
        listener = partial(on_progress, record.id) if on_progress else None
        tracker = ProgressTracker(listener=listener)
        tracker.begin(config, is_update=classified.is_update)

        tracker.mark_step(CREATE_STEP_ID, StepStatus.IN_PROGRESS)
        try:
            if isinstance(classified.classification, AlreadyTracked):
                created = await self.xray_service.update(classified.classification.source_id, record)
                if not created.key:
                    created = created.model_copy(update={"key": classified.classification.source_key})
            else:
                created = await self.xray_service.create(record)
        except Exception as e:
            error = str(e) or ("Update failed" if classified.is_update else "Import failed")
            logger.error("Failed to import test case", record_id=record.id, update=classified.is_update, error=error)
            tracker.fail(error)
            return BatchItemResult(record_id=record.id, error=error, has_errors=True, progress=tracker.snapshot())

        tracker.mark_step(CREATE_STEP_ID, StepStatus.COMPLETED)
        tracker.set_created(created.id, created.key)
        tracker.advance()
        logger.info("Test case imported", record_id=record.id, test_key=created.key, update=classified.is_update)

        # The test exists in Xray now, so linking still runs when the local write fails
        save_error = None
        try:
            await self.repository.mark_imported(record.id, created.key, created.id)
        except Exception as e:
            save_error = f"Imported as {created.key} but the local record was not updated: {e}"
            logger.error("Failed to mark test case imported", record_id=record.id, test_key=created.key, error=str(e))

        result = await self.orchestrator.execute_linking(created.id, config, tracker)
        tracker.finish(result)

        return BatchItemResult(
            record_id=record.id,
            key=created.key,
            issue_id=created.id,
            error=save_error,
            has_errors=result.has_errors or save_error is not None,
            progress=tracker.snapshot(),
        )

    async def revalidate(self, record: TestCase) -> ValidationResult:
        """Re-run reconciliation for a record that was imported earlier"""
        return await self.orchestrator.validator.validate(record.test_issue_id, record.xray_linking)
