"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload a local file."""

    file_path: str
    temp_identifier: str | None = None
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ResumeCommand:
    """Resume an interrupted upload."""

    upload_id: str
    file_path: str
    temp_identifier: str | None = None
    command: Literal["resume"] = "resume"


@dataclass(frozen=True)
class StatusCommand:
    """Show which chunks the server holds for an upload."""

    upload_id: str
    command: Literal["status"] = "status"


CommandRequest = UploadCommand | ResumeCommand | StatusCommand
