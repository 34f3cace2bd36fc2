"""
File Upload Models

Pydantic models for upload records, catalog records, requests, and responses.
Supports the pre-signed URL upload flow for S3.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


class UploadStatus(str, Enum):
    """Lifecycle state of an upload record."""
    PENDING = "PENDING"      # Pre-signed URL issued, awaiting confirm
    COMPLETED = "COMPLETED"  # Object verified in storage
    FAILED = "FAILED"        # Object missing at confirm time
    DELETED = "DELETED"      # Object removed from storage


# States each status may be entered from
ALLOWED_TRANSITIONS = {
    UploadStatus.COMPLETED: (UploadStatus.PENDING, UploadStatus.COMPLETED),
    UploadStatus.FAILED: (UploadStatus.PENDING,),
    UploadStatus.DELETED: (UploadStatus.PENDING, UploadStatus.COMPLETED),
}


# =============================================================================
# Upload Limits
# =============================================================================

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

ALLOWED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

MAX_FILENAME_LENGTH = 255

PRESIGNED_URL_EXPIRY = 60 * 60  # 1 hour

ORPHAN_THRESHOLD_HOURS = 24

FILE_UPLOAD_ERRORS = {
    "INVALID_FILE_TYPE": "Invalid file type. Only JPEG, PNG, WebP, and GIF images are allowed.",
    "FILE_TOO_LARGE": f"File size exceeds maximum limit of {MAX_FILE_SIZE // 1024 // 1024}MB.",
    "INVALID_FILE_SIZE": "File size must be greater than 0.",
    "INVALID_FILENAME": "Invalid filename. Please use alphanumeric characters and common symbols.",
    "MISSING_FIELDS": "Required fields are missing.",
    "UNAUTHORIZED": "You are not authorized to perform this action.",
    "PRODUCT_NOT_FOUND": "Product not found or access denied.",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_datetime(value: Optional[str]) -> datetime:
    if not value:
        return utcnow()
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Database Models (stored in DynamoDB)
# =============================================================================


class UploadRecord(BaseModel):
    """
    One attempted file transfer.

    Key Schema:
      PK: UPLOAD#{uploadId}
      SK: METADATA
      GSI1PK: KEY#{key}                (KeyIndex)
      GSI2PK: STATUS#{status}          (StatusIndex)
      GSI2SK: {createdAt}
    """

    upload_id: str = Field(..., alias="id", description="Opaque upload identifier")
    key: str = Field(..., description="Storage object key")
    filename: str = Field(..., description="Sanitized original filename")
    content_type: str = Field(..., alias="contentType")
    file_size: int = Field(..., alias="fileSize", description="Size in bytes")
    user_id: str = Field(..., alias="userId", description="Owner user ID")
    product_id: Optional[str] = Field(None, alias="productId")
    status: UploadStatus = Field(default=UploadStatus.PENDING)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    def to_dynamo_item(self) -> dict:
        """Convert to DynamoDB item format."""
        created_at = isoformat_utc(self.created_at)
        item = {
            "PK": f"UPLOAD#{self.upload_id}",
            "SK": "METADATA",
            "GSI1PK": f"KEY#{self.key}",
            "GSI1SK": "UPLOAD",
            "GSI2PK": f"STATUS#{self.status.value}",
            "GSI2SK": created_at,
            "uploadId": self.upload_id,
            "key": self.key,
            "filename": self.filename,
            "contentType": self.content_type,
            "fileSize": self.file_size,
            "userId": self.user_id,
            "status": self.status.value,
            "createdAt": created_at,
            "updatedAt": isoformat_utc(self.updated_at),
        }
        if self.product_id:
            item["productId"] = self.product_id
        return item

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "UploadRecord":
        """Create from DynamoDB item."""
        return cls(
            upload_id=item.get("uploadId", ""),
            key=item.get("key", ""),
            filename=item.get("filename", ""),
            content_type=item.get("contentType", ""),
            file_size=int(item.get("fileSize", 0)),
            user_id=item.get("userId", ""),
            product_id=item.get("productId"),
            status=item.get("status", UploadStatus.PENDING),
            created_at=_parse_datetime(item.get("createdAt")),
            updated_at=_parse_datetime(item.get("updatedAt")),
        )


class Product(BaseModel):
    """
    Catalog product (owned by the catalog service; read-only here).

    Key Schema:
      PK: PRODUCT#{productId}
      SK: METADATA
    """

    product_id: str
    user_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "Product":
        return cls(
            product_id=item.get("productId", ""),
            user_id=item.get("userId"),
            name=item.get("name"),
        )


class ProductImage(BaseModel):
    """
    Image attached to a product.

    Key Schema:
      PK: PRODUCT#{productId}
      SK: IMAGE#{imageId}
    """

    image_id: str
    product_id: str
    url: str

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "ProductImage":
        return cls(
            image_id=item.get("imageId", ""),
            product_id=item.get("productId", ""),
            url=item.get("url", ""),
        )


# =============================================================================
# Storage Models
# =============================================================================


class UploadGrant(BaseModel):
    """Pre-signed permission to PUT one object."""

    key: str
    upload_url: str
    expires_at: datetime


class ObjectProbe(BaseModel):
    """Result of a HEAD request against the object store."""

    exists: bool
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


class CleanupError(BaseModel):
    key: str
    error: str


class CleanupResult(BaseModel):
    """Summary of an orphaned-upload sweep."""

    deleted_count: int = Field(0, alias="deletedCount")
    failed_keys: List[str] = Field(default_factory=list, alias="failedKeys")
    # Records that left PENDING while the sweep ran
    skipped_keys: List[str] = Field(default_factory=list, alias="skippedKeys")
    errors: List[CleanupError] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# API Request Models
# =============================================================================


class UploadRequest(BaseModel):
    """Request body for POST /files/upload."""

    filename: str = Field(..., min_length=1, max_length=MAX_FILENAME_LENGTH)
    content_type: str = Field(..., alias="contentType", description="Image MIME type")
    file_size: int = Field(..., alias="fileSize", gt=0, le=MAX_FILE_SIZE, description="File size in bytes")
    product_id: Optional[str] = Field(None, alias="productId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("content_type")
    @classmethod
    def check_content_type(cls, value: str) -> str:
        if value not in ALLOWED_IMAGE_TYPES:
            raise ValueError(FILE_UPLOAD_ERRORS["INVALID_FILE_TYPE"])
        return value


class ConfirmUploadRequest(BaseModel):
    """Request body for POST /files/confirm."""

    upload_id: str = Field(..., alias="uploadId", min_length=1)
    key: str = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class DeleteRequest(BaseModel):
    """Request body for DELETE /files/delete."""

    key: str = Field(..., min_length=1)
    product_id: str = Field(..., alias="productId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# API Response Models
# =============================================================================


class PresignedUploadResponse(BaseModel):
    """Response for POST /files/upload."""

    upload_id: str = Field(..., alias="uploadId")
    key: str
    upload_url: str = Field(..., alias="uploadUrl")

    model_config = ConfigDict(populate_by_name=True)


class FileUploadResponse(BaseModel):
    """Upload record as returned to clients."""

    id: str
    key: str
    filename: str
    content_type: str = Field(..., alias="contentType")
    file_size: int = Field(..., alias="fileSize")
    user_id: str = Field(..., alias="userId")
    product_id: Optional[str] = Field(None, alias="productId")
    status: str
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: UploadRecord) -> "FileUploadResponse":
        return cls(
            id=record.upload_id,
            key=record.key,
            filename=record.filename,
            content_type=record.content_type,
            file_size=record.file_size,
            user_id=record.user_id,
            product_id=record.product_id,
            status=record.status.value,
            created_at=isoformat_utc(record.created_at),
            updated_at=isoformat_utc(record.updated_at),
        )


class ConfirmUploadResponse(BaseModel):
    """Response for POST /files/confirm."""

    success: bool = True
    url: str
    file_upload: FileUploadResponse = Field(..., alias="fileUpload")

    model_config = ConfigDict(populate_by_name=True)


class DeleteFileResponse(BaseModel):
    """Response for DELETE /files/delete."""

    success: bool = True
    message: str = "File deleted successfully"
    key: str
