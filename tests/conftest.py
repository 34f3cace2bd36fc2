"""Shared fixtures for upload lifecycle tests."""

from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, Mock

from apis.shared.files.models import Product, ProductImage, UploadRecord, UploadStatus
from apis.shared.files.repository import FileUploadRepository
from apis.shared.files.storage import S3StorageService


@pytest.fixture
def mock_repository():
    """Create a mock upload repository"""
    repository = Mock(spec=FileUploadRepository)
    repository.create_upload = AsyncMock(side_effect=lambda record: record)
    repository.get_upload = AsyncMock(return_value=None)
    repository.update_upload_status = AsyncMock()
    repository.list_uploads_by_key = AsyncMock(return_value=[])
    repository.mark_key_deleted = AsyncMock(return_value=1)
    repository.list_stale_pending = AsyncMock(return_value=[])
    repository.get_product = AsyncMock(return_value=None)
    repository.find_product_image = AsyncMock(return_value=None)
    repository.delete_product_images = AsyncMock(return_value=1)
    return repository


@pytest.fixture
def mock_storage():
    """Create a mock storage gateway"""
    storage = Mock(spec=S3StorageService)
    storage.create_upload_grant = AsyncMock()
    storage.head_object = AsyncMock()
    storage.delete_object = AsyncMock()
    storage.public_url = Mock(
        side_effect=lambda key: f"https://assets-bucket.s3.us-west-2.amazonaws.com/{key}"
    )
    return storage


@pytest.fixture
def pending_upload():
    """Create a pending upload owned by user-1"""
    return UploadRecord(
        upload_id="upload-1",
        key="assets/1111/photo.png",
        filename="photo.png",
        content_type="image/png",
        file_size=1024,
        user_id="user-1",
        product_id="product-1",
        status=UploadStatus.PENDING,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def product():
    """Create a product owned by user-1"""
    return Product(product_id="product-1", user_id="user-1", name="Desk")


@pytest.fixture
def product_image(pending_upload):
    """Create an image on product-1 referencing the pending upload's key"""
    return ProductImage(
        image_id="image-1",
        product_id="product-1",
        url=f"https://assets-bucket.s3.us-west-2.amazonaws.com/{pending_upload.key}",
    )
