"""Mapping of service exceptions to JSON error responses."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import (
    CircuitOpenError,
    DataQualityError,
    DataSourceUnavailableError,
    InvalidAnalysisError,
    InvalidStrategyConfigError,
    InvalidTransitionError,
    PersistenceError,
    StrategyArchivedError,
    StrategyExistsError,
    StrategyNotFoundError,
)

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, code: str, exc: Exception, details: Any = None) -> JSONResponse:
    body = {"error": code, "message": str(exc)}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _validation_details(errors: list) -> list[dict[str, str]]:
    return [{"field": err.field, "message": err.message} for err in errors]


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers translating domain errors to HTTP status codes."""

    @app.exception_handler(StrategyNotFoundError)
    async def not_found(request: Request, exc: StrategyNotFoundError):
        return _error_response(404, "not_found", exc)

    @app.exception_handler(StrategyExistsError)
    async def exists(request: Request, exc: StrategyExistsError):
        return _error_response(409, "already_exists", exc)

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition(request: Request, exc: InvalidTransitionError):
        return _error_response(409, "invalid_transition", exc, [{
            "field": "status",
            "message": f"Cannot transition from {exc.current_status} to {exc.attempted_status}",
        }])

    @app.exception_handler(StrategyArchivedError)
    async def archived(request: Request, exc: StrategyArchivedError):
        return _error_response(409, "archived", exc)

    @app.exception_handler(InvalidStrategyConfigError)
    async def invalid_config(request: Request, exc: InvalidStrategyConfigError):
        return _error_response(422, "invalid_config", exc, _validation_details(exc.errors))

    @app.exception_handler(InvalidAnalysisError)
    async def invalid_analysis(request: Request, exc: InvalidAnalysisError):
        return _error_response(422, "invalid_analysis", exc, _validation_details(exc.errors))

    @app.exception_handler(DataQualityError)
    async def bad_data(request: Request, exc: DataQualityError):
        return _error_response(422, "invalid_data", exc)

    @app.exception_handler(DataSourceUnavailableError)
    async def unavailable(request: Request, exc: DataSourceUnavailableError):
        return _error_response(503, "data_unavailable", exc, [
            {"field": f"sources.{name}", "message": message}
            for name, message in sorted(exc.failures.items())
        ])

    @app.exception_handler(CircuitOpenError)
    async def circuit_open(request: Request, exc: CircuitOpenError):
        response = _error_response(503, "circuit_open", exc)
        response.headers["Retry-After"] = str(int(exc.retry_after_seconds) + 1)
        return response

    @app.exception_handler(PersistenceError)
    async def persistence(request: Request, exc: PersistenceError):
        logger.error("Persistence failure", path=request.url.path, operation=exc.operation, error=str(exc))
        return _error_response(500, "persistence_error", exc)
