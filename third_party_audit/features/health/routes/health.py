from fastapi import APIRouter, status

from third_party_audit.features.third_party.services.catalog import DEFAULT_CATALOG
from third_party_audit.platform.config import settings
from third_party_audit.platform.response import api_response

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check():
    """Liveness plus the size of the loaded vendor catalog."""
    return api_response(
        data={
            "status": "ok",
            "service": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
            "catalog": DEFAULT_CATALOG.describe(),
        },
        message="Service is healthy",
        status_code=status.HTTP_200_OK,
    )
