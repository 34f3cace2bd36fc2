"""
S3 Storage Service

Issues pre-signed upload URLs and probes/deletes objects in the assets bucket.
Uploads go directly from the client to S3; this service never handles file bytes.
"""

import os
import logging
import uuid
from datetime import timedelta
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from apis.shared.errors import ApiError, ErrorKind

from .models import ObjectProbe, UploadGrant, PRESIGNED_URL_EXPIRY, utcnow
from .validation import sanitize_key

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3StorageService:
    """
    Object store gateway for product image assets.

    Configuration (constructor arguments override environment):
    - S3_ASSETS_BUCKET: bucket name
    - AWS_REGION / AWS_DEFAULT_REGION: bucket region
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        region: Optional[str] = None,
        s3_client=None,
        presign_expiration: int = PRESIGNED_URL_EXPIRY,
    ):
        self.bucket_name = bucket_name or os.environ.get("S3_ASSETS_BUCKET")
        self.region = region or os.environ.get(
            "AWS_REGION", os.environ.get("AWS_DEFAULT_REGION")
        )
        self.presign_expiration = presign_expiration
        self._s3_client = s3_client

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client(
                "s3",
                region_name=self.region,
                # Keep checksums out of the pre-signed URL; browsers PUT without them
                config=Config(
                    signature_version="s3v4",
                    request_checksum_calculation="when_required",
                ),
            )
        return self._s3_client

    def _require_config(self) -> None:
        """
        Raises:
            ApiError: CONFIGURATION if bucket or region is not set
        """
        missing: List[str] = []
        if not self.region:
            missing.append("AWS_REGION")
        if not self.bucket_name:
            missing.append("S3_ASSETS_BUCKET")
        if missing:
            logger.error(f"S3 storage is not configured, missing: {', '.join(missing)}")
            raise ApiError(
                ErrorKind.CONFIGURATION,
                "File storage is not configured.",
                detail=f"Missing ENVs: {', '.join(missing)}",
            )

    def build_key(self, filename: str) -> str:
        return f"assets/{uuid.uuid4()}/{sanitize_key(filename)}"

    async def create_upload_grant(self, filename: str, content_type: str) -> UploadGrant:
        """
        Generate a key and a pre-signed PUT URL for it.

        Args:
            filename: Filename to embed in the key (sanitized again here)
            content_type: Content type the upload must be sent with

        Returns:
            UploadGrant with key, URL and expiry

        Raises:
            ApiError: CONFIGURATION if not configured, STORAGE if signing fails
        """
        self._require_config()

        key = self.build_key(filename)
        try:
            upload_url = self.s3_client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": key,
                    "ContentType": content_type,
                },
                ExpiresIn=self.presign_expiration,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate pre-signed URL for {key}: {e}")
            raise ApiError(
                ErrorKind.STORAGE, "Failed to create upload URL.", detail=str(e)
            ) from e

        return UploadGrant(
            key=key,
            upload_url=upload_url,
            expires_at=utcnow() + timedelta(seconds=self.presign_expiration),
        )

    async def head_object(self, key: str) -> ObjectProbe:
        """
        Check whether an object exists and read its metadata.

        Returns:
            ObjectProbe; exists=False when the object is absent

        Raises:
            ApiError: CONFIGURATION if not configured, STORAGE on any other failure
        """
        self._require_config()

        try:
            response = self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                return ObjectProbe(exists=False)
            logger.error(f"Failed to probe S3 object {key}: {e}")
            raise ApiError(
                ErrorKind.STORAGE, "Failed to check uploaded file.", detail=str(e)
            ) from e
        except BotoCoreError as e:
            logger.error(f"Failed to probe S3 object {key}: {e}")
            raise ApiError(
                ErrorKind.STORAGE, "Failed to check uploaded file.", detail=str(e)
            ) from e

        return ObjectProbe(
            exists=True,
            content_type=response.get("ContentType"),
            content_length=response.get("ContentLength"),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
        )

    async def delete_object(self, key: str) -> None:
        """
        Delete an object. Deleting a missing key succeeds.

        Raises:
            ApiError: CONFIGURATION if not configured, STORAGE on failure
        """
        self._require_config()

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                logger.debug(f"S3 object {key} already absent")
                return
            logger.error(f"Failed to delete S3 object {key}: {e}")
            raise ApiError(
                ErrorKind.STORAGE, "Failed to delete file from storage.", detail=str(e)
            ) from e
        except BotoCoreError as e:
            logger.error(f"Failed to delete S3 object {key}: {e}")
            raise ApiError(
                ErrorKind.STORAGE, "Failed to delete file from storage.", detail=str(e)
            ) from e

        logger.info(f"Deleted S3 object {key}")

    def public_url(self, key: str) -> str:
        """Public HTTPS URL of an object in the assets bucket."""
        self._require_config()
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"


# Global service instance
_storage_instance: Optional[S3StorageService] = None


def get_storage_service() -> S3StorageService:
    """Get or create the global S3StorageService instance."""
    global _storage_instance
    if _storage_instance is None:
        _storage_instance = S3StorageService()
    return _storage_instance
