from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging
import traceback

from admission_policy.errors import InvalidDocumentShape, ManifestLoadError

logger = logging.getLogger(__name__)


def configure_exception_handlers(app):
    """Configure global exception handlers"""

    @app.exception_handler(InvalidDocumentShape)
    async def invalid_document_handler(request: Request, exc: InvalidDocumentShape):
        """Manifest cannot be evaluated; distinct from a compliance failure"""
        logger.warning(f"Invalid manifest in {request.method} {request.url}: {exc}")
        return JSONResponse(
            status_code=422,
            content={
                "error": "Invalid document shape",
                "message": exc.message,
                "errors": exc.errors,
            }
        )

    @app.exception_handler(ManifestLoadError)
    async def manifest_load_handler(request: Request, exc: ManifestLoadError):
        logger.warning(f"Undecodable manifest in {request.method} {request.url}: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid manifest", "message": str(exc)}
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"HTTP {exc.status_code} error in {request.method} {request.url}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": f"HTTP {exc.status_code} Error",
                "message": exc.detail,
                "path": str(request.url)
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = id(exc)
        logger.error(f"Unhandled exception [ID:{error_id}] in {request.method} {request.url}: {exc}")
        logger.error(f"Traceback [ID:{error_id}]:\n{traceback.format_exc()}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred while evaluating the manifest",
                "error_type": type(exc).__name__,
                "error_id": error_id,
            }
        )
