"""Filename sanitizing and upload input checks."""

import re

from apis.shared.errors import ApiError, ErrorKind

from .models import (
    ALLOWED_IMAGE_TYPES,
    FILE_UPLOAD_ERRORS,
    MAX_FILE_SIZE,
    MAX_FILENAME_LENGTH,
)

_FILENAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_. ]")
_KEY_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_./]")


def is_valid_image_type(content_type: str) -> bool:
    """Check if MIME type is an allowed image type."""
    return content_type in ALLOWED_IMAGE_TYPES


def validate_image_type(content_type: str) -> None:
    if not is_valid_image_type(content_type):
        raise ApiError(ErrorKind.VALIDATION, FILE_UPLOAD_ERRORS["INVALID_FILE_TYPE"], f"Received: {content_type!r}")


def validate_file_size(file_size: int) -> None:
    if file_size > MAX_FILE_SIZE:
        raise ApiError(ErrorKind.VALIDATION, FILE_UPLOAD_ERRORS["FILE_TOO_LARGE"])
    if file_size <= 0:
        raise ApiError(ErrorKind.VALIDATION, FILE_UPLOAD_ERRORS["INVALID_FILE_SIZE"])


def sanitize_filename(filename: str) -> str:
    """
    Strip path traversal and special characters from a user-supplied filename.

    Examples:
        "../../../etc/passwd" -> "etcpasswd"
        "file<script>.jpg" -> "filescript.jpg"
    """
    cleaned = filename.replace("..", "")
    cleaned = _FILENAME_DISALLOWED.sub("", cleaned)
    return cleaned.strip()[:MAX_FILENAME_LENGTH]


def sanitize_key(value: str) -> str:
    """Keep only characters that are safe inside an S3 key segment."""
    return _KEY_DISALLOWED.sub("", value)


def get_file_extension(filename: str) -> str:
    """Return the lowercase extension including the dot, or '' if none."""
    last_dot = filename.rfind(".")
    return "" if last_dot == -1 else filename[last_dot:].lower()
