"""Ownership checks run before any upload mutation.

Missing resources and resources owned by someone else raise the same
FORBIDDEN error so callers cannot probe for other users' records.
"""

import logging
from typing import Optional

from apis.shared.errors import ApiError, ErrorKind

from .models import UploadRecord
from .repository import FileUploadRepository, get_file_upload_repository

logger = logging.getLogger(__name__)


class OwnershipVerifier:
    """Read-only entitlement checks for products, uploads and product images."""

    def __init__(self, repository: Optional[FileUploadRepository] = None):
        self.repository = repository or get_file_upload_repository()

    async def verify_product_ownership(self, user_id: str, product_id: str) -> None:
        product = await self.repository.get_product(product_id)

        if product is None:
            raise ApiError(ErrorKind.FORBIDDEN, "Product not found")

        if product.user_id != user_id:
            logger.warning(f"User {user_id} denied access to product {product_id}")
            raise ApiError(ErrorKind.FORBIDDEN, "You do not have permission to modify this product")

    async def verify_upload_ownership(self, user_id: str, upload_id: str) -> UploadRecord:
        """
        Returns:
            The upload record, so callers need not read it again
        """
        upload = await self.repository.get_upload(upload_id)

        if upload is None:
            raise ApiError(ErrorKind.FORBIDDEN, "Upload not found")

        if upload.user_id != user_id:
            logger.warning(f"User {user_id} denied access to upload {upload_id}")
            raise ApiError(ErrorKind.FORBIDDEN, "You do not have permission to access this upload")

        return upload

    async def verify_image_ownership(self, user_id: str, key: str, product_id: str) -> None:
        """Ownership is derived from the image's product, not the image itself."""
        image = await self.repository.find_product_image(product_id, user_id, key)

        if image is None:
            logger.warning(f"User {user_id} denied delete of {key} on product {product_id}")
            raise ApiError(
                ErrorKind.FORBIDDEN,
                "Image not found or you do not have permission to delete it",
            )


_verifier_instance: Optional[OwnershipVerifier] = None


def get_ownership_verifier() -> OwnershipVerifier:
    """Get or create the global OwnershipVerifier instance."""
    global _verifier_instance
    if _verifier_instance is None:
        _verifier_instance = OwnershipVerifier()
    return _verifier_instance
