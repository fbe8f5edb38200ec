from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
import structlog

from xray_importer.core.dependencies import get_xray_service
from xray_importer.core.exceptions import XrayConfigurationError
from xray_importer.models.linking import ROOT_FOLDER, FolderNode, LinkCategory, XrayEntity
from xray_importer.repositories.interfaces.xray_service import IXrayService

logger = structlog.get_logger()

router = APIRouter(prefix="/xray", tags=["xray"])


class ProjectIdResponse(BaseModel):
    project_key: str
    project_id: str


async def _list(xray_service: IXrayService, category: LinkCategory, project_key: str, what: str) -> List[XrayEntity]:
    try:
        return await xray_service.list_entities(category, project_key)
    except XrayConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to fetch {what}", project_key=project_key, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch {what}"
        )


@router.get("/project-id/{project_key}", response_model=ProjectIdResponse)
async def get_project_id(
    project_key: str,
    xray_service: IXrayService = Depends(get_xray_service)
):
    """Resolve the numeric project id used for folder linking"""
    try:
        project_id = await xray_service.get_project_id(project_key)
    except XrayConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.error("Failed to fetch project ID", project_key=project_key, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch project ID"
        )
    return ProjectIdResponse(project_key=project_key, project_id=project_id)


@router.get("/folders/{project_id}", response_model=FolderNode)
async def get_folder(
    project_id: str,
    path: str = ROOT_FOLDER,
    xray_service: IXrayService = Depends(get_xray_service)
):
    """Folder of the test repository with its direct children"""
    try:
        return await xray_service.get_folder(project_id, path)
    except XrayConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except Exception as e:
        logger.error("Failed to fetch folders", project_id=project_id, path=path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch folders"
        )


@router.get("/test-plans/{project_key}", response_model=List[XrayEntity])
async def get_test_plans(project_key: str, xray_service: IXrayService = Depends(get_xray_service)):
    return await _list(xray_service, LinkCategory.PLAN, project_key, "test plans")


@router.get("/test-executions/{project_key}", response_model=List[XrayEntity])
async def get_test_executions(project_key: str, xray_service: IXrayService = Depends(get_xray_service)):
    return await _list(xray_service, LinkCategory.EXECUTION, project_key, "test executions")


@router.get("/test-sets/{project_key}", response_model=List[XrayEntity])
async def get_test_sets(project_key: str, xray_service: IXrayService = Depends(get_xray_service)):
    return await _list(xray_service, LinkCategory.SET, project_key, "test sets")


@router.get("/preconditions/{project_key}", response_model=List[XrayEntity])
async def get_preconditions(project_key: str, xray_service: IXrayService = Depends(get_xray_service)):
    return await _list(xray_service, LinkCategory.PRECONDITION, project_key, "preconditions")
