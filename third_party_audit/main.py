from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from third_party_audit.api_routers.v1 import api_router
from third_party_audit.features.health.routes.health import router as health_router
from third_party_audit.platform.config import settings
from third_party_audit.platform.exceptions import add_exception_handlers

app = FastAPI(
    title=settings.APP_NAME,
    description="API for auditing the third-party resources a web page loads",
    version="2.0.0",
    debug=settings.DEBUG,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": settings.APP_NAME,
        "description": "Detects third-party services and maps their dependencies, cost and risk.",
        "version": "2.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
