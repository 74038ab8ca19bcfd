"""PDF upload and download router."""

import base64
import binascii

from fastapi import APIRouter, Depends, Response, status
import structlog

from ..capabilities import Capabilities
from ..config import MEGABYTE, Settings, get_settings
from ..dependencies import get_capabilities, get_current_user_id
from ..errors import ApiError, ErrorCode
from ..schemas.api import PdfUploadRequest
from ..stores.blobs import BlobNotFoundError, owner_of

logger = structlog.get_logger()

router = APIRouter(prefix="/pdf", tags=["pdf"])


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_pdf(
    body: PdfUploadRequest,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
    settings: Settings = Depends(get_settings),
) -> dict:
    if body.mime_type != "application/pdf":
        raise ApiError(ErrorCode.INVALID_FORMAT, "Only PDF files are allowed")
    try:
        data = base64.b64decode(body.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ApiError(ErrorCode.INVALID_FORMAT, "Invalid base64-encoded PDF") from e

    if len(data) > settings.max_pdf_size:
        raise ApiError(
            ErrorCode.TOO_LARGE,
            f"File too large. Maximum size is {settings.max_pdf_size / MEGABYTE:.1f}MB",
        )

    try:
        path = await caps.blobs.put(user_id, body.filename, data, body.mime_type)
    except Exception as e:
        logger.error("pdf_upload_failed", error=str(e), error_type=type(e).__name__)
        raise ApiError(ErrorCode.STORAGE_FAILED, "Failed to upload PDF") from e

    return {
        "success": True,
        "storage_path": path,
        "filename": body.filename,
        "size": len(data),
    }


@router.get("/{storage_path:path}")
async def download_pdf(
    storage_path: str,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> Response:
    """Serve a stored PDF to its owner only."""
    if owner_of(storage_path) != user_id:
        raise ApiError(ErrorCode.NOT_FOUND, "PDF not found")
    try:
        data, mime_type = await caps.blobs.get(storage_path)
    except BlobNotFoundError as e:
        raise ApiError(ErrorCode.NOT_FOUND, "PDF not found") from e
    return Response(content=data, media_type=mime_type)
