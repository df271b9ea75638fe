"""Validation for multipart uploads."""
import logging
import os
from typing import Iterable

from fastapi import UploadFile

from app.errors import InvalidInput

logger = logging.getLogger(__name__)

MB = 1024 * 1024


async def read_upload(file: UploadFile, max_size_mb: int) -> bytes:
    """Read the whole upload, rejecting empty files and files over ``max_size_mb``."""
    data = await file.read()
    if not data:
        raise InvalidInput("Uploaded file is empty", {"filename": file.filename})
    if len(data) > max_size_mb * MB:
        logger.warning("Upload %s rejected: %s bytes", file.filename, len(data))
        raise InvalidInput(
            f"File too large. Maximum size is {max_size_mb}MB",
            {"filename": file.filename, "max_size_mb": max_size_mb}
        )
    return data


def ensure_pdf(file: UploadFile):
    file_ext = os.path.splitext(file.filename)[1].lower() if file.filename else ""
    if file.content_type != "application/pdf" and file_ext != ".pdf":
        raise InvalidInput("Only PDF files are allowed", {"content_type": file.content_type})


def ensure_media(file: UploadFile, prefixes: Iterable[str] = ("audio/", "video/")):
    content_type = file.content_type or ""
    if not any(content_type.startswith(prefix) for prefix in prefixes):
        raise InvalidInput("Only audio or video files are allowed", {"content_type": content_type})
