"""Shared files module for API projects.

This module provides upload models, input validation, the S3 storage gateway,
ownership checks, the upload repository, and the orphaned upload cleanup used
by the app API and the maintenance scripts.
"""

from .models import (
    UploadStatus,
    UploadRecord,
    Product,
    ProductImage,
    UploadGrant,
    ObjectProbe,
    CleanupError,
    CleanupResult,
    UploadRequest,
    ConfirmUploadRequest,
    DeleteRequest,
    PresignedUploadResponse,
    FileUploadResponse,
    ConfirmUploadResponse,
    DeleteFileResponse,
    ALLOWED_IMAGE_TYPES,
    ALLOWED_IMAGE_EXTENSIONS,
    MAX_FILE_SIZE,
    PRESIGNED_URL_EXPIRY,
    ORPHAN_THRESHOLD_HOURS,
    FILE_UPLOAD_ERRORS,
    utcnow,
)

from .validation import (
    is_valid_image_type,
    validate_image_type,
    validate_file_size,
    sanitize_filename,
    sanitize_key,
    get_file_extension,
)

from .repository import (
    FileUploadRepository,
    get_file_upload_repository,
)

from .storage import (
    S3StorageService,
    get_storage_service,
)

from .ownership import (
    OwnershipVerifier,
    get_ownership_verifier,
)

from .cleanup import OrphanedFileCleanup

__all__ = [
    # Models
    "UploadStatus",
    "UploadRecord",
    "Product",
    "ProductImage",
    "UploadGrant",
    "ObjectProbe",
    "CleanupError",
    "CleanupResult",
    "UploadRequest",
    "ConfirmUploadRequest",
    "DeleteRequest",
    "PresignedUploadResponse",
    "FileUploadResponse",
    "ConfirmUploadResponse",
    "DeleteFileResponse",
    "ALLOWED_IMAGE_TYPES",
    "ALLOWED_IMAGE_EXTENSIONS",
    "MAX_FILE_SIZE",
    "PRESIGNED_URL_EXPIRY",
    "ORPHAN_THRESHOLD_HOURS",
    "FILE_UPLOAD_ERRORS",
    "utcnow",
    # Validation
    "is_valid_image_type",
    "validate_image_type",
    "validate_file_size",
    "sanitize_filename",
    "sanitize_key",
    "get_file_extension",
    # Repository
    "FileUploadRepository",
    "get_file_upload_repository",
    # Storage
    "S3StorageService",
    "get_storage_service",
    # Ownership
    "OwnershipVerifier",
    "get_ownership_verifier",
    # Cleanup
    "OrphanedFileCleanup",
]
