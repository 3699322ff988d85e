import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..exceptions import TaskTimerError

logger = logging.getLogger("tasktimer.errors")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach simple, consistent JSON error handlers."""

    @app.exception_handler(TaskTimerError)
    async def domain_exception_handler(request: Request, exc: TaskTimerError):
        if exc.status_code >= 500:
            logger.error("domain error code=%s path=%s", exc.code, request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "code": exc.code,
                "status": exc.status_code,
                "path": request.url.path,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail if isinstance(exc.detail, str) else "HTTPError",
                "status": exc.status_code,
                "path": request.url.path,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "status": 422,
                "path": request.url.path,
                "details": jsonable_errors(exc),
            },
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw ValueError from a field validator; keep only its text
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors
