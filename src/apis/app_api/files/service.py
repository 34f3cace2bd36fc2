"""
File Upload Service

Business logic for product image uploads with S3 pre-signed URLs:
grant an upload, confirm it landed, and delete it again.
"""

import logging
import uuid
from typing import Optional

from apis.shared.errors import ApiError, ErrorKind
from apis.shared.files import (
    FILE_UPLOAD_ERRORS,
    ConfirmUploadRequest,
    ConfirmUploadResponse,
    DeleteFileResponse,
    DeleteRequest,
    FileUploadRepository,
    FileUploadResponse,
    OwnershipVerifier,
    PresignedUploadResponse,
    S3StorageService,
    UploadRecord,
    UploadRequest,
    UploadStatus,
    get_file_upload_repository,
    get_ownership_verifier,
    get_storage_service,
    sanitize_filename,
    utcnow,
    validate_file_size,
    validate_image_type,
)

logger = logging.getLogger(__name__)


class FileUploadService:
    """
    Service for the upload lifecycle.

    Provides:
    - Pre-signed URL generation for direct S3 uploads
    - Upload confirmation against the object actually stored
    - Deletion of uploaded images and the records that reference them
    """

    def __init__(
        self,
        repository: Optional[FileUploadRepository] = None,
        storage: Optional[S3StorageService] = None,
        ownership: Optional[OwnershipVerifier] = None,
    ):
        """Initialize with dependencies."""
        self.repository = repository or get_file_upload_repository()
        self.storage = storage or get_storage_service()
        if ownership is None:
            ownership = OwnershipVerifier(repository) if repository else get_ownership_verifier()
        self.ownership = ownership

    @staticmethod
    def _new_upload_id() -> str:
        # {timestamp_hex}_{uuid} sorts chronologically
        timestamp_hex = format(int(utcnow().timestamp() * 1000), "x")
        return f"{timestamp_hex}_{uuid.uuid4().hex[:16]}"

    # =========================================================================
    # Upload Flow
    # =========================================================================

    async def initiate_upload(
        self, user_id: str, request: UploadRequest
    ) -> PresignedUploadResponse:
        """
        Grant a pre-signed URL for one image upload.

        Phase 1 of the upload flow:
        1. Validate file type and size
        2. Verify product ownership (when a product is given)
        3. Generate the storage key and pre-signed URL
        4. Create pending upload record

        Args:
            user_id: The uploading user's ID
            request: UploadRequest with file details

        Returns:
            PresignedUploadResponse with upload ID, key and pre-signed URL

        Raises:
            ApiError: VALIDATION, FORBIDDEN, CONFIGURATION or STORAGE
        """
        validate_image_type(request.content_type)
        validate_file_size(request.file_size)

        filename = sanitize_filename(request.filename)
        if not filename:
            raise ApiError(
                ErrorKind.VALIDATION,
                FILE_UPLOAD_ERRORS["INVALID_FILENAME"],
                detail=f"Received: {request.filename!r}",
            )

        if request.product_id:
            await self.ownership.verify_product_ownership(user_id, request.product_id)

        grant = await self.storage.create_upload_grant(filename, request.content_type)

        record = UploadRecord(
            upload_id=self._new_upload_id(),
            key=grant.key,
            filename=filename,
            content_type=request.content_type,
            file_size=request.file_size,
            user_id=user_id,
            product_id=request.product_id,
            status=UploadStatus.PENDING,
        )
        await self.repository.create_upload(record)

        logger.info(f"Generated pre-signed URL for upload {record.upload_id} by user {user_id}")

        return PresignedUploadResponse(
            upload_id=record.upload_id,
            key=grant.key,
            upload_url=grant.upload_url,
        )

    async def confirm_upload(
        self, user_id: str, request: ConfirmUploadRequest
    ) -> ConfirmUploadResponse:
        """
        Confirm that the client's PUT to the pre-signed URL landed.

        Phase 2 of the upload flow:
        1. Verify the upload belongs to the user and matches the key
        2. HEAD the object in S3
        3. Mark COMPLETED with the stored size, or FAILED if absent

        The size recorded on completion is the one S3 reports, not the size
        declared when the upload was granted. Confirming an already
        COMPLETED upload probes again and refreshes the record.

        Raises:
            ApiError: FORBIDDEN, CONFLICT, UPLOAD_MISSING, CONFIGURATION or STORAGE
        """
        upload = await self.ownership.verify_upload_ownership(user_id, request.upload_id)

        if upload.key != request.key:
            logger.warning(f"Key mismatch confirming upload {upload.upload_id} by user {user_id}")
            raise ApiError(
                ErrorKind.FORBIDDEN, "You do not have permission to access this upload"
            )

        if upload.status in (UploadStatus.DELETED, UploadStatus.FAILED):
            raise ApiError(
                ErrorKind.CONFLICT,
                f"Upload is {upload.status.value.lower()} and cannot be confirmed.",
            )

        probe = await self.storage.head_object(upload.key)

        if not probe.exists:
            try:
                await self.repository.update_upload_status(upload.upload_id, UploadStatus.FAILED)
            except Exception as e:
                logger.warning(f"Failed to mark upload {upload.upload_id} as FAILED: {e}")
            raise ApiError(
                ErrorKind.UPLOAD_MISSING, "File not found in S3. Upload may have failed."
            )

        if probe.content_length is None:
            logger.error(f"Storage reported no size for upload {upload.upload_id} ({upload.key})")
            raise ApiError(
                ErrorKind.STORAGE,
                "Failed to check uploaded file.",
                detail="Storage did not report object size",
            )

        file_size = probe.content_length
        updated = await self.repository.update_upload_status(
            upload.upload_id, UploadStatus.COMPLETED, file_size=file_size
        )
        if updated is None:
            # Deleted between the read above and this write
            raise ApiError(ErrorKind.CONFLICT, "Upload can no longer be confirmed.")

        logger.info(f"Completed upload {upload.upload_id} for user {user_id} ({file_size} bytes)")

        return ConfirmUploadResponse(
            url=self.storage.public_url(updated.key),
            file_upload=FileUploadResponse.from_record(updated),
        )

    # =========================================================================
    # File Management
    # =========================================================================

    async def delete_file(self, user_id: str, request: DeleteRequest) -> DeleteFileResponse:
        """
        Delete an uploaded image.

        The S3 object goes first; if that fails nothing in the database
        changes. Afterwards every live upload record for the key is marked
        DELETED and the product's image rows for the key are removed.

        Raises:
            ApiError: FORBIDDEN, CONFIGURATION or STORAGE
        """
        await self.ownership.verify_image_ownership(user_id, request.key, request.product_id)

        await self.storage.delete_object(request.key)

        marked = await self.repository.mark_key_deleted(request.key)
        removed = await self.repository.delete_product_images(request.product_id, request.key)

        logger.info(
            f"Deleted file {request.key} for user {user_id} "
            f"({marked} upload record(s), {removed} image(s))"
        )
        return DeleteFileResponse(key=request.key)


# Global service instance
_service_instance: Optional[FileUploadService] = None


def get_file_upload_service() -> FileUploadService:
    """Get or create the global FileUploadService instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = FileUploadService()
    return _service_instance
