"""Utility functions for CLI operations."""

import sys
from typing import TextIO

from cli.constants import GREEN, RESET


class ProgressPrinter:
    """Prints upload progress in place on a single terminal line."""

    def __init__(self, filename: str, file_size: int, stream: TextIO = None):
        """
        Initialize the progress printer.

        Args:
            filename: Display name for the file
            file_size: Total size of the file in bytes
            stream: Output stream (defaults to stdout)
        """
        self.filename = filename
        self.file_size = file_size
        self.stream = stream or sys.stdout
        self.last_percent = None

    def __call__(self, percent: int) -> None:
        """Render the progress line for a new percentage."""
        if percent == self.last_percent:
            return
        self.last_percent = percent
        uploaded_str = format_file_size(self.file_size * percent // 100)
        total_str = format_file_size(self.file_size)
        self.stream.write(
            f"\rUploading {self.filename}: {uploaded_str} / {total_str} ({GREEN}{percent}%{RESET})"
        )
        self.stream.flush()

    def finish(self) -> None:
        """Finalize progress display with newline."""
        if self.last_percent is not None:
            self.stream.write('\n')
            self.stream.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
