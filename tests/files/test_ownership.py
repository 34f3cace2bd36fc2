"""Unit tests for OwnershipVerifier."""

import pytest

from apis.shared.errors import ApiError, ErrorKind
from apis.shared.files.ownership import OwnershipVerifier


@pytest.fixture
def verifier(mock_repository):
    return OwnershipVerifier(mock_repository)


class TestProductOwnership:
    """Tests for product checks"""

    @pytest.mark.asyncio
    async def test_owner_passes(self, verifier, mock_repository, product):
        mock_repository.get_product.return_value = product

        await verifier.verify_product_ownership("user-1", "product-1")

        mock_repository.get_product.assert_awaited_once_with("product-1")

    @pytest.mark.asyncio
    async def test_missing_product_forbidden(self, verifier):
        with pytest.raises(ApiError) as exc_info:
            await verifier.verify_product_ownership("user-1", "missing")

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.message == "Product not found"

    @pytest.mark.asyncio
    async def test_other_owner_forbidden(self, verifier, mock_repository, product):
        mock_repository.get_product.return_value = product

        with pytest.raises(ApiError) as exc_info:
            await verifier.verify_product_ownership("user-2", "product-1")

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "You do not have permission to modify this product"


class TestUploadOwnership:
    """Tests for upload checks"""

    @pytest.mark.asyncio
    async def test_owner_gets_record(self, verifier, mock_repository, pending_upload):
        mock_repository.get_upload.return_value = pending_upload

        record = await verifier.verify_upload_ownership("user-1", "upload-1")

        assert record is pending_upload

    @pytest.mark.asyncio
    async def test_missing_upload_forbidden(self, verifier):
        with pytest.raises(ApiError) as exc_info:
            await verifier.verify_upload_ownership("user-1", "missing")

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.message == "Upload not found"

    @pytest.mark.asyncio
    async def test_other_owner_forbidden(self, verifier, mock_repository, pending_upload):
        mock_repository.get_upload.return_value = pending_upload

        with pytest.raises(ApiError) as exc_info:
            await verifier.verify_upload_ownership("user-2", "upload-1")

        assert exc_info.value.message == "You do not have permission to access this upload"


class TestImageOwnership:
    """Tests for image checks"""

    @pytest.mark.asyncio
    async def test_owner_passes(self, verifier, mock_repository, product_image):
        mock_repository.find_product_image.return_value = product_image

        await verifier.verify_image_ownership("user-1", "assets/1111/photo.png", "product-1")

        mock_repository.find_product_image.assert_awaited_once_with(
            "product-1", "user-1", "assets/1111/photo.png"
        )

    @pytest.mark.asyncio
    async def test_no_matching_image_forbidden(self, verifier):
        with pytest.raises(ApiError) as exc_info:
            await verifier.verify_image_ownership("user-2", "assets/1111/photo.png", "product-1")

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.message == "Image not found or you do not have permission to delete it"
