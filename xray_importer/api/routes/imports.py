from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from xray_importer.models.linking import BatchItemResult, ValidationResult
from xray_importer.models.schemas import BatchImportRequest, BatchImportResponse
from xray_importer.repositories.interfaces.test_case_repository import ITestCaseRepository
from xray_importer.services.import_coordinator import BatchImportCoordinator, RECORD_NOT_FOUND
from xray_importer.core.dependencies import get_import_coordinator, get_test_case_repository

logger = structlog.get_logger()

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("/test-cases/{test_case_id}", response_model=BatchItemResult)
async def import_test_case(
    test_case_id: int,
    coordinator: BatchImportCoordinator = Depends(get_import_coordinator)
):
    """Create or update one test case in Xray, link it and validate the links.

    Link failures and validation drift are reported in the body with
    ``has_errors``; only a failed create/update leaves ``key`` empty.
    """
    logger.info("Import requested", test_case_id=test_case_id)
    result = await coordinator.import_record(test_case_id)
    if result.error == RECORD_NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Test case not found"
        )
    return result


@router.post("/batch", response_model=BatchImportResponse)
async def import_batch(
    request: BatchImportRequest,
    coordinator: BatchImportCoordinator = Depends(get_import_coordinator)
):
    """Import several test cases sequentially"""
    if not request.record_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="record_ids must not be empty"
        )

    logger.info("Batch import requested", count=len(request.record_ids))
    results = await coordinator.run_batch(request.record_ids)
    return BatchImportResponse(
        results=results,
        succeeded=sum(1 for r in results if r.succeeded),
        failed=sum(1 for r in results if not r.succeeded),
        with_warnings=sum(1 for r in results if r.succeeded and r.has_errors),
    )


@router.post("/test-cases/{test_case_id}/validate", response_model=ValidationResult)
async def validate_test_case_links(
    test_case_id: int,
    repository: ITestCaseRepository = Depends(get_test_case_repository),
    coordinator: BatchImportCoordinator = Depends(get_import_coordinator)
):
    """Compare the links Xray holds for an imported test with its configuration"""
    test_case = await repository.get_by_id(test_case_id)
    if not test_case:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Test case not found"
        )
    if not test_case.test_issue_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Test case has not been imported yet"
        )
    return await coordinator.revalidate(test_case)
