import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from eventdesk.core.config import settings
from eventdesk.core.logging import setup_logging
import eventdesk.models  # noqa: F401  # force model registration

from eventdesk.api.v1.guests import router as guests_router
from eventdesk.api.v1.revenue import router as revenue_router
from eventdesk.api.v1.services import router as services_router
from eventdesk.api.v1.commission import router as commission_router

logger = logging.getLogger("eventdesk.main")


def create_application() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title="EventDesk Revenue API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        # GitHub Codespaces / *.app.github.dev domains
        allow_origin_regex=r"^https:\/\/.*\.app\.github\.dev$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content={
                "detail": {
                    "error": "STORE_UNAVAILABLE",
                    "message": "Ledger store is unavailable. Try again shortly.",
                }
            },
        )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "eventdesk", "environment": settings.ENVIRONMENT}

    # Routers
    app.include_router(guests_router, prefix="/api/v1")
    app.include_router(revenue_router, prefix="/api/v1")
    app.include_router(services_router, prefix="/api/v1")
    app.include_router(commission_router, prefix="/api/v1")

    return app


app = create_application()
