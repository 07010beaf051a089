from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tasktrail.api.schemas import HealthzResponse, ReadinessChecks, ReadyzResponse
from tasktrail.core.config import get_settings
from tasktrail.core.logging import get_logger
from tasktrail.db.engine import get_engine

router = APIRouter()
logger = get_logger("tasktrail.api.health")


@router.get("/healthz", response_model=HealthzResponse)
def healthz() -> HealthzResponse:
    settings = get_settings()
    return HealthzResponse(status="ok", service=settings.app_name, env=settings.app_env)


@router.get(
    "/readyz",
    response_model=ReadyzResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadyzResponse}},
)
def readyz() -> ReadyzResponse | JSONResponse:
    _ = get_settings()
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("readiness.database.failed", error_type=type(exc).__name__)
        payload = ReadyzResponse(
            status="not_ready",
            checks=ReadinessChecks(configuration="ok", database="unavailable"),
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=payload.model_dump(),
        )
    return ReadyzResponse(
        status="ready",
        checks=ReadinessChecks(configuration="ok", database="ok"),
    )
