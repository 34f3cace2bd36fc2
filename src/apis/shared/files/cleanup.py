"""
Orphaned Upload Cleanup

Uploads that were granted but never confirmed leave a PENDING record and,
possibly, an object nobody references. This sweep removes both once the
record is older than the threshold.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from apis.shared.errors import ApiError

from .models import (
    CleanupError,
    CleanupResult,
    ORPHAN_THRESHOLD_HOURS,
    UploadRecord,
    UploadStatus,
    utcnow,
)
from .repository import FileUploadRepository, get_file_upload_repository
from .storage import S3StorageService, get_storage_service

logger = logging.getLogger(__name__)


class OrphanedFileCleanup:
    """Deletes objects and marks records DELETED for stale PENDING uploads."""

    def __init__(
        self,
        repository: Optional[FileUploadRepository] = None,
        storage: Optional[S3StorageService] = None,
        threshold_hours: float = ORPHAN_THRESHOLD_HOURS,
    ):
        self.repository = repository or get_file_upload_repository()
        self.storage = storage or get_storage_service()
        self.threshold = timedelta(hours=threshold_hours)

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) - self.threshold

    async def find_candidates(self, now: Optional[datetime] = None) -> List[UploadRecord]:
        """PENDING uploads created strictly before the cutoff."""
        return await self.repository.list_stale_pending(self.cutoff(now))

    async def run(self, now: Optional[datetime] = None) -> CleanupResult:
        """
        Sweep stale PENDING uploads.

        Each record is handled independently: a failure is recorded in the
        result and the sweep moves on to the next record.

        The status write only applies while the record is still PENDING. A
        record that was confirmed or deleted in the meantime is reported as
        skipped, not deleted.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            CleanupResult with the number of deleted uploads, skipped keys and
            per-key errors
        """
        candidates = await self.find_candidates(now)
        logger.info(f"Found {len(candidates)} orphaned upload(s) older than {self.threshold}")

        result = CleanupResult()
        for record in candidates:
            try:
                await self.storage.delete_object(record.key)
                updated = await self.repository.update_upload_status(
                    record.upload_id, UploadStatus.DELETED, allowed_from=(UploadStatus.PENDING,)
                )
            except Exception as e:
                message = (e.detail or str(e)) if isinstance(e, ApiError) else str(e)
                logger.error(f"Failed to clean up orphaned upload {record.upload_id} ({record.key}): {message}")
                result.failed_keys.append(record.key)
                result.errors.append(CleanupError(key=record.key, error=message))
                continue

            if updated is None:
                logger.warning(
                    f"Orphaned upload {record.upload_id} ({record.key}) is no longer PENDING; "
                    f"record left unchanged"
                )
                result.skipped_keys.append(record.key)
            else:
                result.deleted_count += 1

        logger.info(
            f"Orphaned upload cleanup finished: {result.deleted_count} deleted, "
            f"{len(result.skipped_keys)} skipped, {len(result.failed_keys)} failed"
        )
        return result
