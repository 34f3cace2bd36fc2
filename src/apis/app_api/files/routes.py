"""
File Upload API Routes

Endpoints for product image upload via pre-signed URLs.

Each endpoint is rate limited per client before the body is parsed and
before authentication runs, so malformed and unauthenticated floods are
also counted.
"""

import logging

from fastapi import APIRouter, Depends

from apis.shared.auth import User, get_current_user
from apis.shared.files import (
    ConfirmUploadRequest,
    ConfirmUploadResponse,
    DeleteFileResponse,
    DeleteRequest,
    PresignedUploadResponse,
    UploadRequest,
)
from apis.shared.rate_limit import (
    RateLimitedRoute,
    confirm_rate_limiter,
    delete_rate_limiter,
    rate_limited,
    upload_rate_limiter,
)

from .service import FileUploadService, get_file_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"], route_class=RateLimitedRoute)


# =============================================================================
# Pre-signed URL Endpoints
# =============================================================================


@router.post("/upload", response_model=PresignedUploadResponse)
@rate_limited(upload_rate_limiter)
async def request_upload(
    request: UploadRequest,
    user: User = Depends(get_current_user),
    service: FileUploadService = Depends(get_file_upload_service),
):
    """
    Request a pre-signed URL for uploading a product image.

    The client should:
    1. Call this endpoint with file metadata
    2. PUT the file to the returned uploadUrl with the same Content-Type
    3. Call POST /files/confirm with uploadId and key

    **Supported file types:** JPEG, PNG, WebP, GIF

    **Limits:**
    - Maximum file size: 10MB
    - 10 requests per minute per client
    """
    logger.info(
        f"User {user.user_id} requesting upload URL for {request.filename} "
        f"({request.file_size} bytes)"
    )
    return await service.initiate_upload(user.user_id, request)


@router.post("/confirm", response_model=ConfirmUploadResponse)
@rate_limited(confirm_rate_limiter)
async def confirm_upload(
    request: ConfirmUploadRequest,
    user: User = Depends(get_current_user),
    service: FileUploadService = Depends(get_file_upload_service),
):
    """
    Confirm an upload after the client's PUT to S3 finished.

    Verifies the object exists and records the size S3 reports.
    Returns the public URL of the image.
    """
    logger.info(f"User {user.user_id} confirming upload {request.upload_id}")
    return await service.confirm_upload(user.user_id, request)


# =============================================================================
# File Management Endpoints
# =============================================================================


@router.delete("/delete", response_model=DeleteFileResponse)
@rate_limited(delete_rate_limiter)
async def delete_file(
    request: DeleteRequest,
    user: User = Depends(get_current_user),
    service: FileUploadService = Depends(get_file_upload_service),
):
    """
    Delete a product image.

    Removes the S3 object, marks its upload records deleted and removes
    the product's image rows that reference it.
    """
    logger.info(f"User {user.user_id} deleting file {request.key}")
    return await service.delete_file(user.user_id, request)
