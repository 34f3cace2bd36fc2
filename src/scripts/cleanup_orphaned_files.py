#!/usr/bin/env python3
"""
Clean up orphaned uploads

Deletes S3 objects and marks upload records DELETED for uploads that were
granted a pre-signed URL but never confirmed.

Usage:
    # Dry run (lists candidates, no changes)
    python -m scripts.cleanup_orphaned_files --dry-run

    # Clean up uploads pending for more than 24 hours
    python -m scripts.cleanup_orphaned_files

    # Custom threshold
    python -m scripts.cleanup_orphaned_files --threshold-hours 48

Environment:
    Requires AWS credentials and:
    - S3_ASSETS_BUCKET
    - AWS_REGION
    - DYNAMODB_FILE_UPLOADS_TABLE_NAME
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apis.shared.files import ORPHAN_THRESHOLD_HOURS, OrphanedFileCleanup

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Delete uploads that were never confirmed"
    )
    parser.add_argument(
        "--threshold-hours",
        type=float,
        default=ORPHAN_THRESHOLD_HOURS,
        help=f"Age in hours after which a pending upload is orphaned (default: {ORPHAN_THRESHOLD_HOURS})"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List orphaned uploads without deleting anything"
    )
    return parser


async def main(argv: Optional[List[str]] = None, cleanup: Optional[OrphanedFileCleanup] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.threshold_hours <= 0:
        logger.error("--threshold-hours must be greater than 0")
        return 1

    try:
        cleanup = cleanup or OrphanedFileCleanup(threshold_hours=args.threshold_hours)

        if args.dry_run:
            logger.info("🔍 DRY RUN MODE - No changes will be made")
            candidates = await cleanup.find_candidates()
            print(f"Found {len(candidates)} orphaned upload(s)")
            for record in candidates:
                print(f"  {record.upload_id}  {record.key}  (created {record.created_at.isoformat()})")
            return 0

        result = await cleanup.run()

    except Exception as e:
        logger.error(f"❌ Cleanup failed: {e}")
        return 1

    # Print summary
    print("\n" + "=" * 60)
    print("ORPHANED FILE CLEANUP SUMMARY")
    print("=" * 60)
    print(f"Deleted: {result.deleted_count}")
    print(f"Skipped (no longer pending): {len(result.skipped_keys)}")
    print(f"Failed: {len(result.failed_keys)}")
    for error in result.errors:
        print(f"❌ {error.key}: {error.error}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    sys.exit(asyncio.run(main()))
