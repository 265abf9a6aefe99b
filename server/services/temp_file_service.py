"""Listing and removal of assembled temporary attachments."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from common.constants import ATTACHMENTS_DIRNAME
from common.exceptions import TempFileNotFoundError, ValidationError
from server import config
from server.utils import resolve_mime_type, sanitize_identifier, temp_file_url

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta"


@dataclass
class TempFile:
    """An assembled artifact waiting to be claimed."""
    path: str
    original_filename: str
    size: int
    mime_type: str
    url: str


class TempFileService:
    """
    Operates on files under <root>/temp_attachments/<temp_identifier>/.
    """

    def __init__(self, storage_root: Optional[Path] = None, public_url_prefix: Optional[str] = None):
        self.storage_root = Path(storage_root or config.STORAGE_ROOT)
        self.attachments_dir = self.storage_root / ATTACHMENTS_DIRNAME
        self.public_url_prefix = public_url_prefix if public_url_prefix is not None else config.PUBLIC_URL_PREFIX

    def list_temp_files(self, temp_identifier: str) -> List[TempFile]:
        """
        List assembled files for a temp identifier, oldest name first.

        Args:
            temp_identifier: Grouping key used at init

        Returns:
            List of TempFile (empty if the directory does not exist)

        Raises:
            ValidationError: If the identifier contains unsafe characters
        """
        if sanitize_identifier(temp_identifier) is None:
            raise ValidationError("Invalid temp_identifier")

        directory = self.attachments_dir / temp_identifier
        if not directory.is_dir():
            return []

        files = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_file() or entry.name.endswith(META_SUFFIX):
                continue
            files.append(self._describe(temp_identifier, entry))
        return files

    def get_temp_file(self, temp_identifier: str, filename: str) -> Tuple[Path, TempFile]:
        """
        Locate one assembled file for serving.

        Args:
            temp_identifier: Grouping key used at init
            filename: Stored filename (last segment of the artifact path)

        Returns:
            Absolute path and description of the file

        Raises:
            TempFileNotFoundError: If either segment is unsafe or the file does not exist
        """
        if sanitize_identifier(temp_identifier) is None:
            raise TempFileNotFoundError("Temporary file not found")
        if (
            not filename
            or ".." in filename
            or "/" in filename
            or "\\" in filename
            or filename.endswith(META_SUFFIX)
        ):
            raise TempFileNotFoundError("Temporary file not found")

        entry = self.attachments_dir / temp_identifier / filename
        if not entry.is_file():
            raise TempFileNotFoundError(f"Temporary file not found: {temp_identifier}/{filename}")
        return entry, self._describe(temp_identifier, entry)

    def remove_temp_file(self, path: str) -> None:
        """
        Delete one assembled file and its sidecar.

        Args:
            path: Relative path as returned by completion or listing

        Raises:
            ValidationError: If the path escapes the attachments directory
            TempFileNotFoundError: If the file does not exist
        """
        target = self._resolve(path)
        if not target.is_file():
            raise TempFileNotFoundError(f"Temporary file not found: {path}")

        target.unlink()
        sidecar = target.with_name(target.name + META_SUFFIX)
        if sidecar.exists():
            sidecar.unlink()

        logger.info(f"Removed temporary file {path}")

    def _resolve(self, path: str) -> Path:
        if not path:
            raise ValidationError("path is required")

        relative = Path(path)
        if relative.parts and relative.parts[0] == ATTACHMENTS_DIRNAME:
            relative = Path(*relative.parts[1:]) if len(relative.parts) > 1 else Path()

        base = self.attachments_dir.resolve()
        target = (base / relative).resolve()
        if target == base or base not in target.parents:
            raise ValidationError(f"Invalid temporary file path: {path}")
        if target.name.endswith(META_SUFFIX):
            raise ValidationError(f"Invalid temporary file path: {path}")
        return target

    def _describe(self, temp_identifier: str, entry: Path) -> TempFile:
        meta = self._read_metadata(entry)
        original_filename = meta.get("original_filename") or entry.name
        return TempFile(
            path=f"{ATTACHMENTS_DIRNAME}/{temp_identifier}/{entry.name}",
            original_filename=original_filename,
            size=entry.stat().st_size,
            mime_type=resolve_mime_type(entry.name, meta.get("mime_type")),
            url=temp_file_url(self.public_url_prefix, temp_identifier, entry.name),
        )

    @staticmethod
    def _read_metadata(entry: Path) -> dict:
        sidecar = entry.with_name(entry.name + META_SUFFIX)
        if not sidecar.exists():
            return {}
        try:
            meta = json.loads(sidecar.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable metadata for {entry.name}: {e}")
            return {}
        return meta if isinstance(meta, dict) else {}
