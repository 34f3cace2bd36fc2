"""Unit tests for FileUploadService."""

from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, Mock

from apis.app_api.files.service import FileUploadService
from apis.shared.errors import ApiError, ErrorKind
from apis.shared.files.models import (
    ConfirmUploadRequest,
    DeleteRequest,
    ObjectProbe,
    UploadGrant,
    UploadRequest,
    UploadStatus,
)
from apis.shared.files.ownership import OwnershipVerifier


@pytest.fixture
def mock_ownership():
    """Create a mock ownership verifier that allows everything"""
    ownership = Mock(spec=OwnershipVerifier)
    ownership.verify_product_ownership = AsyncMock()
    ownership.verify_upload_ownership = AsyncMock()
    ownership.verify_image_ownership = AsyncMock()
    return ownership


@pytest.fixture
def service(mock_repository, mock_storage, mock_ownership):
    return FileUploadService(
        repository=mock_repository,
        storage=mock_storage,
        ownership=mock_ownership,
    )


@pytest.fixture
def grant():
    return UploadGrant(
        key="assets/2222/photo.png",
        upload_url="https://signed.example/put",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


def upload_request(**overrides) -> UploadRequest:
    body = {"filename": "photo.png", "content_type": "image/png", "file_size": 1024}
    body.update(overrides)
    return UploadRequest(**body)


class TestInitiateUpload:
    """Tests for granting uploads"""

    @pytest.mark.asyncio
    async def test_creates_pending_record(self, service, mock_repository, mock_storage, grant):
        mock_storage.create_upload_grant.return_value = grant

        response = await service.initiate_upload("user-1", upload_request())

        assert response.key == grant.key
        assert response.upload_url == grant.upload_url
        record = mock_repository.create_upload.call_args.args[0]
        assert record.upload_id == response.upload_id
        assert record.status == UploadStatus.PENDING
        assert record.user_id == "user-1"
        assert record.file_size == 1024
        assert record.key == grant.key

    @pytest.mark.asyncio
    async def test_stores_sanitized_filename(self, service, mock_repository, mock_storage, grant):
        mock_storage.create_upload_grant.return_value = grant

        await service.initiate_upload("user-1", upload_request(filename="../my<photo>.png"))

        mock_storage.create_upload_grant.assert_awaited_once_with("myphoto.png", "image/png")
        assert mock_repository.create_upload.call_args.args[0].filename == "myphoto.png"

    @pytest.mark.asyncio
    async def test_empty_sanitized_filename_rejected(self, service, mock_storage):
        with pytest.raises(ApiError) as exc_info:
            await service.initiate_upload("user-1", upload_request(filename="<<>>"))

        assert exc_info.value.kind == ErrorKind.VALIDATION
        mock_storage.create_upload_grant.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_checks_product_ownership(self, service, mock_ownership, mock_storage, grant):
        mock_storage.create_upload_grant.return_value = grant

        await service.initiate_upload("user-1", upload_request(product_id="product-1"))

        mock_ownership.verify_product_ownership.assert_awaited_once_with("user-1", "product-1")

    @pytest.mark.asyncio
    async def test_ownership_failure_precedes_grant(self, service, mock_ownership, mock_storage, mock_repository):
        mock_ownership.verify_product_ownership.side_effect = ApiError(
            ErrorKind.FORBIDDEN, "You do not have permission to modify this product"
        )

        with pytest.raises(ApiError) as exc_info:
            await service.initiate_upload("user-2", upload_request(product_id="product-1"))

        assert exc_info.value.status_code == 403
        mock_storage.create_upload_grant.assert_not_awaited()
        mock_repository.create_upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_failure_creates_no_record(self, service, mock_storage, mock_repository):
        mock_storage.create_upload_grant.side_effect = ApiError(ErrorKind.STORAGE, "Failed to create upload URL.")

        with pytest.raises(ApiError):
            await service.initiate_upload("user-1", upload_request())

        mock_repository.create_upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_ids_are_unique(self, service, mock_storage, grant):
        mock_storage.create_upload_grant.return_value = grant

        first = await service.initiate_upload("user-1", upload_request())
        second = await service.initiate_upload("user-1", upload_request())

        assert first.upload_id != second.upload_id


class TestConfirmUpload:
    """Tests for confirming uploads"""

    @pytest.fixture
    def confirm_request(self, pending_upload):
        return ConfirmUploadRequest(upload_id=pending_upload.upload_id, key=pending_upload.key)

    @pytest.mark.asyncio
    async def test_records_size_reported_by_storage(
        self, service, mock_ownership, mock_storage, mock_repository, pending_upload, confirm_request
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload
        mock_storage.head_object.return_value = ObjectProbe(exists=True, content_length=2048)
        mock_repository.update_upload_status.return_value = pending_upload.model_copy(
            update={"status": UploadStatus.COMPLETED, "file_size": 2048}
        )

        response = await service.confirm_upload("user-1", confirm_request)

        mock_repository.update_upload_status.assert_awaited_once_with(
            "upload-1", UploadStatus.COMPLETED, file_size=2048
        )
        assert response.success is True
        assert response.file_upload.file_size == 2048
        assert response.file_upload.status == "COMPLETED"
        assert response.url == "https://assets-bucket.s3.us-west-2.amazonaws.com/assets/1111/photo.png"

    @pytest.mark.asyncio
    async def test_missing_object_marks_failed(
        self, service, mock_ownership, mock_storage, mock_repository, pending_upload, confirm_request
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload
        mock_storage.head_object.return_value = ObjectProbe(exists=False)

        with pytest.raises(ApiError) as exc_info:
            await service.confirm_upload("user-1", confirm_request)

        assert exc_info.value.kind == ErrorKind.UPLOAD_MISSING
        assert "not found" in exc_info.value.message
        mock_repository.update_upload_status.assert_awaited_once_with("upload-1", UploadStatus.FAILED)

    @pytest.mark.asyncio
    async def test_failed_compensating_write_does_not_mask_error(
        self, service, mock_ownership, mock_storage, mock_repository, pending_upload, confirm_request
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload
        mock_storage.head_object.return_value = ObjectProbe(exists=False)
        mock_repository.update_upload_status.side_effect = RuntimeError("dynamodb down")

        with pytest.raises(ApiError) as exc_info:
            await service.confirm_upload("user-1", confirm_request)

        assert exc_info.value.kind == ErrorKind.UPLOAD_MISSING

    @pytest.mark.asyncio
    async def test_unknown_object_size_is_storage_error(
        self, service, mock_ownership, mock_storage, mock_repository, pending_upload, confirm_request
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload
        mock_storage.head_object.return_value = ObjectProbe(exists=True, content_length=None)

        with pytest.raises(ApiError) as exc_info:
            await service.confirm_upload("user-1", confirm_request)

        assert exc_info.value.kind == ErrorKind.STORAGE
        assert exc_info.value.status_code == 500
        mock_repository.update_upload_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_key_mismatch_forbidden(
        self, service, mock_ownership, mock_storage, pending_upload
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload

        with pytest.raises(ApiError) as exc_info:
            await service.confirm_upload(
                "user-1", ConfirmUploadRequest(upload_id="upload-1", key="assets/other/photo.png")
            )

        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        mock_storage.head_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ownership_failure_precedes_probe(
        self, service, mock_ownership, mock_storage, mock_repository, confirm_request
    ):
        mock_ownership.verify_upload_ownership.side_effect = ApiError(ErrorKind.FORBIDDEN, "Upload not found")

        with pytest.raises(ApiError):
            await service.confirm_upload("user-2", confirm_request)

        mock_storage.head_object.assert_not_awaited()
        mock_repository.update_upload_status.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [UploadStatus.DELETED, UploadStatus.FAILED])
    async def test_terminal_records_conflict(
        self, service, mock_ownership, mock_storage, pending_upload, confirm_request, status
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload.model_copy(update={"status": status})

        with pytest.raises(ApiError) as exc_info:
            await service.confirm_upload("user-1", confirm_request)

        assert exc_info.value.status_code == 409
        mock_storage.head_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reconfirm_completed_upload(
        self, service, mock_ownership, mock_storage, mock_repository, pending_upload, confirm_request
    ):
        completed = pending_upload.model_copy(update={"status": UploadStatus.COMPLETED})
        mock_ownership.verify_upload_ownership.return_value = completed
        mock_storage.head_object.return_value = ObjectProbe(exists=True, content_length=1024)
        mock_repository.update_upload_status.return_value = completed

        response = await service.confirm_upload("user-1", confirm_request)

        assert response.file_upload.status == "COMPLETED"

    @pytest.mark.asyncio
    async def test_lost_race_with_delete_conflicts(
        self, service, mock_ownership, mock_storage, mock_repository, pending_upload, confirm_request
    ):
        mock_ownership.verify_upload_ownership.return_value = pending_upload
        mock_storage.head_object.return_value = ObjectProbe(exists=True, content_length=1024)
        mock_repository.update_upload_status.return_value = None

        with pytest.raises(ApiError) as exc_info:
            await service.confirm_upload("user-1", confirm_request)

        assert exc_info.value.kind == ErrorKind.CONFLICT


class TestDeleteFile:
    """Tests for deleting uploaded images"""

    @pytest.fixture
    def delete_request(self, pending_upload):
        return DeleteRequest(key=pending_upload.key, product_id="product-1")

    @pytest.mark.asyncio
    async def test_deletes_object_then_records(
        self, service, mock_ownership, mock_storage, mock_repository, delete_request
    ):
        calls = []
        mock_storage.delete_object.side_effect = lambda key: calls.append("storage")
        mock_repository.mark_key_deleted.side_effect = lambda key: calls.append("uploads") or 1
        mock_repository.delete_product_images.side_effect = lambda pid, key: calls.append("images") or 1

        response = await service.delete_file("user-1", delete_request)

        assert response.success is True
        assert response.key == delete_request.key
        assert calls == ["storage", "uploads", "images"]
        mock_ownership.verify_image_ownership.assert_awaited_once_with(
            "user-1", delete_request.key, "product-1"
        )

    @pytest.mark.asyncio
    async def test_ownership_failure_prevents_deletion(
        self, service, mock_ownership, mock_storage, mock_repository, delete_request
    ):
        mock_ownership.verify_image_ownership.side_effect = ApiError(
            ErrorKind.FORBIDDEN, "Image not found or you do not have permission to delete it"
        )

        with pytest.raises(ApiError) as exc_info:
            await service.delete_file("user-2", delete_request)

        assert exc_info.value.status_code == 403
        mock_storage.delete_object.assert_not_awaited()
        mock_repository.mark_key_deleted.assert_not_awaited()
        mock_repository.delete_product_images.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_database_untouched(
        self, service, mock_storage, mock_repository, delete_request
    ):
        mock_storage.delete_object.side_effect = ApiError(ErrorKind.STORAGE, "Failed to delete file from storage.")

        with pytest.raises(ApiError):
            await service.delete_file("user-1", delete_request)

        mock_repository.mark_key_deleted.assert_not_awaited()
        mock_repository.delete_product_images.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_absent_object_succeeds(self, service, mock_repository, delete_request):
        # Gateway reports success for missing keys; no live upload records remain
        mock_repository.mark_key_deleted.return_value = 0

        response = await service.delete_file("user-1", delete_request)

        assert response.success is True
