from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from legalflow import __version__
from legalflow.common.logger import configure_logging
from legalflow.core.config import get_settings
from legalflow.api.routers import health, submissions
from legalflow.api.middleware import RequestLogMiddleware

settings = get_settings()
logger = configure_logging(settings)

app = FastAPI(
    title=settings.app_name,
    description="Legal document submission approval workflow",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware
app.add_middleware(RequestLogMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(submissions.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }


logger.info(f"{settings.app_name} {__version__} loaded (database: {settings.database_url.split(':', 1)[0]})")
