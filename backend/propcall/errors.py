import functools
import logging
from typing import Any, Dict, Iterable, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Set up logger
logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "An unexpected error occurred"


class AuthenticationError(HTTPException):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(status_code=401, detail=message)


class ValidationError(HTTPException):
    """400 carrying one message per violated rule, joined in a stable order."""

    def __init__(self, messages: Iterable[str]) -> None:
        self.messages: List[str] = list(messages)
        super().__init__(status_code=400, detail=", ".join(self.messages))


class NotFoundError(HTTPException):
    """Raised both for missing rows and for rows owned by someone else."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(status_code=404, detail=message)


class ConflictError(HTTPException):
    def __init__(self, message: str) -> None:
        super().__init__(status_code=409, detail=message)


class UpstreamError(HTTPException):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(status_code=status_code or 502, detail=message)


class InternalError(HTTPException):
    def __init__(self, message: str = GENERIC_MESSAGE) -> None:
        super().__init__(status_code=500, detail=message)


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """Turn pydantic error dicts into "field: message" strings."""
    messages: List[str] = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = err.get("msg", "Invalid value")
        if err.get("type") == "value_error" and err.get("ctx", {}).get("error") is not None:
            msg = str(err["ctx"]["error"])
        if err.get("type") == "missing":
            msg = "Required"
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return messages


def handler_boundary(label: str):
    """Wrap a route so that anything not already carrying a status becomes a logged 500."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception:
                logger.exception(f"{label} error")
                raise InternalError()

        return wrapper

    return decorator


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = format_validation_errors(exc.errors())
        logger.info(f"Validation failed on {request.url.path}: {messages}")
        return JSONResponse(status_code=400, content={"detail": ", ".join(messages)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": GENERIC_MESSAGE})
