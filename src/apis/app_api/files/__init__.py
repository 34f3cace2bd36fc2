"""
File Upload Module

Provides product image upload via S3 pre-signed URLs.
"""

from .service import FileUploadService, get_file_upload_service
from .routes import router

__all__ = [
    "FileUploadService",
    "get_file_upload_service",
    "router",
]
