from typing import List, Optional
import structlog

from xray_importer.models.linking import (
    CategoryValidation,
    FolderValidation,
    LinkingConfiguration,
    LinkTarget,
    ValidationResult,
)
from xray_importer.repositories.interfaces.xray_service import IXrayService

logger = structlog.get_logger()


def diff_category(expected: List[str], found: List[str]) -> CategoryValidation:
    found_ids = set(found)
    return CategoryValidation(
        expected=list(expected),
        found=list(found),
        missing=[i for i in expected if i not in found_ids],
    )


def folder_is_valid(expected: Optional[str], found: Optional[str]) -> bool:
    """Xray may report a fuller path than requested, so containment is enough"""
    if not expected:
        return True
    return bool(found) and expected in found


def _ids(targets: List[LinkTarget]) -> List[str]:
    return [t.id for t in targets]


class ReconciliationValidator:
    """Reads back a test's links after import and reports drift"""

    def __init__(self, xray_service: IXrayService):
        self.xray_service = xray_service

    async def validate(self, created_id: str, config: LinkingConfiguration) -> ValidationResult:
        try:
            links = await self.xray_service.fetch_links(created_id)
        except Exception as e:
            logger.warning("Link validation read failed", test_id=created_id, error=str(e))
            return ValidationResult.unvalidated()

        expected_folder = config.expected_folder
        validation = ValidationResult(
            is_validated=True,
            plans=diff_category(_ids(config.plans), links.plans),
            executions=diff_category(_ids(config.executions), links.executions),
            sets=diff_category(_ids(config.sets), links.sets),
            preconditions=diff_category(_ids(config.preconditions), links.preconditions),
            folder=FolderValidation(
                expected=expected_folder,
                found=links.folder,
                valid=folder_is_valid(expected_folder, links.folder),
            ),
        )

        if validation.has_mismatch:
            logger.warning(
                "Xray links differ from the requested configuration",
                test_id=created_id,
                missing_plans=validation.plans.missing,
                missing_executions=validation.executions.missing,
                missing_sets=validation.sets.missing,
                missing_preconditions=validation.preconditions.missing,
                expected_folder=expected_folder,
                found_folder=links.folder,
            )
        return validation
