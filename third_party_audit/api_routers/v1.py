from fastapi import APIRouter

from third_party_audit.features.third_party.routes.third_party import router as third_party_router

api_router = APIRouter()

# Register all feature routes
api_router.include_router(third_party_router)
