"""Entry point for the resumable upload server."""

import uvicorn
import time
import uuid
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import IncompleteUploadError, UploadError
from common.logging_config import setup_logging
from server.cleanup_task import SessionExpirySweeper
from server.config import SERVER_HOST, SERVER_PORT
from server.database import init_database
from server.exceptions import http_status_for
from server.routes.attachment_routes import public_router as attachment_public_router
from server.routes.attachment_routes import router as attachment_router
from server.routes.upload_routes import router as upload_router
from server.service_locator import get_upload_manager

logger = setup_logging('server')

app = FastAPI(
    title="Resumable Upload Server",
    description="Chunked, resumable file uploads with server-side assembly",
    version="1.0.0"
)

sweeper = None


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database and start the expiry sweeper on application startup.
    """
    global sweeper

    logger.info("Upload server starting up...")

    init_database()
    logger.info("Database initialized")

    sweeper = SessionExpirySweeper(get_upload_manager())
    await sweeper.start()
    logger.info("Expiry sweeper started")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks on application shutdown.
    """
    logger.info("Upload server shutting down...")

    if sweeper:
        await sweeper.stop()
        logger.info("Expiry sweeper stopped")


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    status_code = http_status_for(exc)

    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            f"{exc.code} error: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
    else:
        logger.warning(
            f"{exc.code} error: {exc} [request_id={request_id}] path={request.url.path}"
        )

    content = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, IncompleteUploadError):
        content["missing_chunks"] = exc.missing_chunks

    return JSONResponse(status_code=status_code, content=content)


app.include_router(upload_router)
app.include_router(attachment_router)
app.include_router(attachment_public_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Resumable Upload Server API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "upload-server"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "server.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True
    )


if __name__ == "__main__":
    main()
