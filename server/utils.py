"""Utility helper functions for the upload server."""

import mimetypes
import re
import uuid
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Optional
from urllib.parse import quote

from common.constants import UPLOAD_ID_PATTERN

_UPLOAD_ID_RE = re.compile(UPLOAD_ID_PATTERN)
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def generate_unique_suffix() -> str:
    """Short random suffix used to keep stored filenames unique."""
    return uuid.uuid4().hex[:13]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def sanitize_identifier(value: Optional[str]) -> Optional[str]:
    """
    Return the identifier if it is safe to use as a path segment.

    Args:
        value: Upload id or temp identifier supplied by a client

    Returns:
        The identifier unchanged, or None if it contains unsafe characters
    """
    if not value or not _UPLOAD_ID_RE.fullmatch(value):
        return None
    return value


def slugify(value: str) -> str:
    """
    Lowercase, hyphen-separated ASCII slug of a filename stem.
    """
    slug = _SLUG_STRIP_RE.sub("-", value.lower()).strip("-")
    return slug or "upload"


def stored_filename_for(original_filename: str) -> str:
    """
    Build a unique on-disk filename that keeps the original extension.

    Args:
        original_filename: Filename supplied at init (e.g. "Quarterly Report.pdf")

    Returns:
        Stored filename (e.g. "quarterly-report_5f2b9c1e0a3d4.pdf")
    """
    name = PurePath(original_filename).name
    stem, dot, extension = name.rpartition(".")
    if not dot or not stem:
        stem, extension = name, ""
    stored = f"{slugify(stem)}_{generate_unique_suffix()}"
    if extension:
        stored += f".{extension}"
    return stored


def resolve_mime_type(filename: str, declared: Optional[str] = None) -> str:
    """
    Mime type for a stored file: the declared one, else a guess from the
    filename, else application/octet-stream.
    """
    return declared or mimetypes.guess_type(filename)[0] or "application/octet-stream"


def temp_file_url(prefix: Optional[str], temp_identifier: str, stored_name: str) -> str:
    """
    URL of the route that serves an assembled temp file.

    Args:
        prefix: Public base URL of this server ("" yields a server-relative URL)
        temp_identifier: Grouping key of the file
        stored_name: On-disk filename of the artifact

    Returns:
        URL such as "https://uploads.example.com/attachments/temp/tmp-1/report_5f2b9c1e0a3d4.pdf"
    """
    base = (prefix or "").rstrip("/")
    return f"{base}/attachments/temp/{quote(temp_identifier)}/{quote(stored_name)}"
