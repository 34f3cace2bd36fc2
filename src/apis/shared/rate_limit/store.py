"""Counter storage for rate limiting.

Counters live in a ``limits`` storage backend. The default is process-local
memory; set RATE_LIMIT_STORAGE_URI (e.g. ``redis://host:6379``) to share
counters between API instances.
"""

import logging
import os
from typing import Optional

from limits.storage import Storage, storage_from_string

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_URI = "memory://"

_default_storage: Optional[Storage] = None


def create_rate_limit_storage(uri: Optional[str] = None) -> Storage:
    """
    Create the rate-limit storage based on environment configuration.

    Args:
        uri: Storage URI; defaults to RATE_LIMIT_STORAGE_URI or in-memory

    Returns:
        A ``limits`` storage instance
    """
    uri = uri or os.getenv('RATE_LIMIT_STORAGE_URI', DEFAULT_STORAGE_URI)
    if uri == DEFAULT_STORAGE_URI:
        logger.info(
            "RATE_LIMIT_STORAGE_URI not set. Using in-memory rate limiting; "
            "limits are enforced per instance."
        )
    else:
        logger.info(f"Using rate limit storage: {uri.split('://', 1)[0]}")
    return storage_from_string(uri)


def get_rate_limit_storage() -> Storage:
    """Get or create the process-wide rate-limit storage."""
    global _default_storage
    if _default_storage is None:
        _default_storage = create_rate_limit_storage()
    return _default_storage
