"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    ResumeCommand,
    StatusCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Resume/Status)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "resume":
        return _parse_resume(tokens[1:])
    elif command_name == "status":
        return _parse_status(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [temp_identifier]' command."""
    if len(args) not in (1, 2):
        raise ParseError("upload requires 1 or 2 arguments: <path> [temp_identifier]")

    file_path = args[0]
    temp_identifier = args[1] if len(args) > 1 else None

    return UploadCommand(file_path=file_path, temp_identifier=temp_identifier)


def _parse_resume(args: list[str]) -> ResumeCommand:
    """Parse 'resume <upload_id> <path> [temp_identifier]' command."""
    if len(args) not in (2, 3):
        raise ParseError("resume requires 2 or 3 arguments: <upload_id> <path> [temp_identifier]")

    upload_id, file_path = args[0], args[1]
    temp_identifier = args[2] if len(args) > 2 else None

    return ResumeCommand(upload_id=upload_id, file_path=file_path, temp_identifier=temp_identifier)


def _parse_status(args: list[str]) -> StatusCommand:
    """Parse 'status <upload_id>' command."""
    if len(args) != 1:
        raise ParseError("status requires exactly 1 argument: <upload_id>")

    return StatusCommand(upload_id=args[0])
