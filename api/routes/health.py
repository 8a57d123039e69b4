from fastapi import APIRouter

from api.schemas import HealthResponse
from core.settings import app_settings

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    return HealthResponse(
        status="healthy",
        service=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
    )
