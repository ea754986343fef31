"""
Rental marketplace API: session refresh, owner/tenant identity routes and the
real-time chat relay.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rental_hub.config import settings
from rental_hub.infrastructure.observability.logging import get_logger, log_request, setup_logging
from rental_hub.middleware import (
    CORSMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from rental_hub.models.api.auth_response import ErrorResponse
from rental_hub.realtime.presence import PresenceRegistry
from rental_hub.routes import auth, chat, health, protected

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)

ROUTE_NOT_FOUND_MSG = "Route does not exist"
DEFAULT_ERROR_MSG = "Something went wrong, try again later"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the presence registry for the lifetime of the process."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    registry = PresenceRegistry()
    await registry.start()
    app.state.presence = registry

    yield

    logger.info("Application shutting down")
    try:
        await registry.stop()
    except Exception as e:
        logger.error("Error stopping presence registry", error=str(e))


app = FastAPI(
    title="Rental Hub",
    description="Property rental marketplace API with real-time owner/tenant chat",
    version="0.1.0",
    lifespan=lifespan,
)

# Order matters: last added runs first
app.add_middleware(SecurityHeadersMiddleware, enforce_https=settings.is_production())
app.add_middleware(CORSMiddleware, allowed_origins=settings.cors_origins(), allow_credentials=True)
app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(protected.router)
app.include_router(chat.router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as {"msg": ...}, the shape clients read."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        msg = ROUTE_NOT_FOUND_MSG
    else:
        msg = exc.detail if isinstance(exc.detail, str) else DEFAULT_ERROR_MSG
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(msg=msg).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    msg = ", ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:]) or error['loc'][0]}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=ErrorResponse(msg=msg).model_dump()
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(msg=DEFAULT_ERROR_MSG).model_dump(),
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
