import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mongoengine.errors import ValidationError as DocumentValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import get_optional_user, identity_user_id
from config import Config
from database import close_db, connect_db
from errors import PortalError, ValidationFailed
from logging_config import setup_logging
from rate_limiter import limiter, rate_limit_exceeded_handler
from routers import accounts, announcements, quizzes

setup_logging()
logger = logging.getLogger("portal.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    connect_db()
    logger.info(f"Server running on port {Config.PORT} ({Config.ENVIRONMENT})")
    yield
    close_db()


app = FastAPI(title="School Portal API", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(accounts.router, prefix="/api/auth", tags=["auth"])
app.include_router(announcements.router, prefix="/api/announcements", tags=["announcements"])
app.include_router(quizzes.router, prefix="/api/quizzes", tags=["quizzes"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        response = JSONResponse(status_code=500, content={"success": False, "error": "Server error"})

    duration_ms = (time.perf_counter() - started) * 1000
    identity = getattr(request.state, "user", None)
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    logger.log(
        level,
        f"{request.method} {request.url.path} {response.status_code} {duration_ms:.0f}ms",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "user_id": identity_user_id(identity) if identity else "anonymous",
        },
    )
    return response


# Registered last so it wraps log_requests, including its 500 responses.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[Config.CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(loc) -> str:
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc]
    return ".".join(parts)


def _message(error: dict) -> str:
    cause = (error.get("ctx") or {}).get("error")
    return str(cause) if cause is not None else error["msg"]


def _flatten(errors, prefix: str = ""):
    """mongoengine nests errors per embedded document; flatten to dotted paths."""
    details = []
    for key, value in errors.items():
        field = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            details.extend(_flatten(value, field))
        else:
            details.append({"field": field, "message": str(value)})
    return details


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [{"field": _field_name(e["loc"]), "message": _message(e)} for e in exc.errors()]
    error = ValidationFailed(details)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(DocumentValidationError)
async def document_validation_handler(request: Request, exc: DocumentValidationError):
    error = ValidationFailed(_flatten(exc.to_dict()) or [{"field": "", "message": exc.message}])
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        logger.warning(f"404 - Route not found: {request.url.path}")
        return JSONResponse(status_code=404, content={"error": "Route not found", "path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})


@app.get("/health")
async def health(identity: Optional[dict] = Depends(get_optional_user)):
    return {
        "status": "OK",
        "message": "School Portal API is running",
        "authenticated": identity is not None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=Config.PORT)
