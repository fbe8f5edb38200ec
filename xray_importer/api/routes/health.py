from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from datetime import datetime, timezone
from xray_importer.config.settings import settings
from xray_importer.core.dependencies import get_jira_service, get_xray_service
from xray_importer.repositories.interfaces.jira_service import IJiraService
from xray_importer.repositories.interfaces.xray_service import IXrayService

router = APIRouter(prefix="/health", tags=["health"])

APP_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


@router.get("/", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=APP_VERSION,
        environment=settings.environment
    )


@router.get("/readiness")
async def readiness_check(
    xray_service: IXrayService = Depends(get_xray_service),
    jira_service: IJiraService = Depends(get_jira_service),
):
    """Readiness check endpoint"""
    checks = {
        "database": "ok",
        "xray": "ok" if xray_service.is_configured() else "not_configured",
        # only needed to update tests that already exist in Jira
        "jira": "ok" if jira_service.is_configured() else "not_configured",
    }

    ready = checks["database"] == "ok" and checks["xray"] == "ok"

    return {
        "status": "ready" if ready else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc)
    }
