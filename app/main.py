import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.academic_years.router import router as academic_years_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.custom_remarks.router import router as custom_remarks_router
from app.api.v1.fees.router import router as fees_router
from app.api.v1.notifications.router import router as notifications_router
from app.api.v1.payments.router import history_router as payment_history_router
from app.api.v1.payments.router import router as payments_router
from app.api.v1.recycle_bin.cron_router import router as cron_router
from app.api.v1.recycle_bin.router import router as recycle_bin_router
from app.api.v1.reports.router import router as reports_router
from app.api.v1.sections.sections_router import router as sections_router
from app.api.v1.students.router import router as students_router
from app.core.config import settings
from app.core.exceptions import ServiceError
from app.db.session import init_models

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await init_models()
    yield


def register_exception_handlers(app: FastAPI) -> None:
    """Every error body is {"error": ..., "details"?: ...}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        content = {"error": exc.message}
        if exc.details is not None:
            content["details"] = jsonable_encoder(exc.details)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="School Enrollment Backend", lifespan=lifespan)

    # CORS: allow the admin frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(academic_years_router)
    app.include_router(students_router)
    app.include_router(payments_router)
    app.include_router(payment_history_router)
    app.include_router(sections_router)
    app.include_router(fees_router)
    app.include_router(notifications_router)
    app.include_router(recycle_bin_router)
    app.include_router(cron_router)
    app.include_router(custom_remarks_router)
    app.include_router(reports_router)

    return app


app = create_app()
