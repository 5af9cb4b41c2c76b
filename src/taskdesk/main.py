import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import AuthError, ServerError, TaskdeskError, ValidationError, field_error
from .logging_setup import configure_logging
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .settings import get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Sign up, log in and resolve the current user."},
    {
        "name": "tasks",
        "description": "Owner-scoped CRUD for tasks with completion, tag, priority and due-date filters.",
    },
]

_settings = get_settings()
configure_logging(_settings.log_level)
if _settings.uses_default_secret:
    logger.warning("JWT_SECRET is not set; using the development default secret")

app = FastAPI(
    title="Taskdesk",
    description="Personal task manager API: tasks are visible only to the user who created them.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(loc: Any) -> str:
    # ('body', 'tags', 0) -> 'tags.0'; ('query', 'dueDate') -> 'dueDate'
    parts = [str(p) for p in loc]
    if len(parts) > 1 and parts[0] in {"body", "query", "path", "header"}:
        parts = parts[1:]
    return ".".join(parts)


def _clean_message(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


# Global exception handlers for consistent JSON on errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "errors": [{"field": "title", "message": "..."}],
            "detail": [... loc/msg/type per error ...]
        }
    """
    raw = exc.errors()
    errors: List[Dict[str, str]] = [
        field_error(_field_name(e.get("loc", ())), _clean_message(str(e.get("msg", "")))) for e in raw
    ]
    detail = [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in raw]
    body = ValidationError("Request validation failed", errors=errors).to_dict()
    body["detail"] = detail
    return JSONResponse(status_code=ValidationError.status_code, content=body)


@app.exception_handler(TaskdeskError)
async def taskdesk_exception_handler(request: Request, exc: TaskdeskError) -> JSONResponse:
    """Render a TaskdeskError subclass with its status code."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and answer with a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = ServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# PUBLIC_INTERFACE
@app.get("/api/health", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"status": "OK", "message": "Task manager API is running", "backend": _settings.persistence_backend}


# Include routers
app.include_router(auth_router.router)
app.include_router(tasks_router.router)
