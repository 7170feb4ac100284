import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptdrop.api.routes import get_session_store
from promptdrop.api.routes import router
from promptdrop.core.config import settings
from promptdrop.core.exceptions import ExternalCallFailure
from promptdrop.core.exceptions import FileUploadError
from promptdrop.core.exceptions import SessionNotFoundError
from promptdrop.core.exceptions import SubmissionInProgressError
from promptdrop.core.logging import setup_logging

setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if not settings.openrouter_api_key:
        logger.warning("No openrouter_api_key configured: submissions will fail until it is set")
    logger.info("Application started (max_files=%d, max_file_size=%d)", settings.max_files, settings.max_file_size)
    yield
    get_session_store().close_all()
    logger.info("Application shutdown: upload sessions closed")


app = FastAPI(title="promptdrop", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.error(f"HTTP exception: {exc.detail} (status: {exc.status_code})")
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error("Request validation failed: %s", exc.errors(), exc_info=False)
    return JSONResponse(
        {"error": "Input validation failed", "details": exc.errors()},
        status_code=422,
    )


@app.exception_handler(FileUploadError)
async def upload_exception_handler(_request: Request, exc: FileUploadError) -> JSONResponse:
    status_code = 500
    if isinstance(exc, SessionNotFoundError):
        status_code = 404
    elif isinstance(exc, SubmissionInProgressError):
        status_code = 409
    elif isinstance(exc, ExternalCallFailure):
        status_code = 502
    logger.error(f"Upload error ({type(exc).__name__}): {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=status_code)


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    logger.info("Health check endpoint called")
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["POST", "GET", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(router)
