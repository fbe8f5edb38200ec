from fastapi import APIRouter
from xray_importer.api.routes import test_cases, imports, health, xray

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(test_cases.router)
api_router.include_router(imports.router)
api_router.include_router(xray.router)
