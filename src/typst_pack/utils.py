"""
Utility functions for typst-pack.

Includes path normalization and strict text I/O helpers used by the assembler.
"""

from __future__ import annotations

from pathlib import Path

from .errors import IoError


def normalize_path(path: str) -> str:
    """Normalize a path for consistent cross-platform comparisons.

    Args:
        path: Path string that may contain platform-specific separators.

    Returns:
        Normalized path using forward slashes.
    """
    return path.replace("\\", "/")


def read_text_strict(file_path: Path) -> str:
    """Read a file as strict UTF-8 without newline translation.

    Unlike `open(..., "r")`, CRLF line endings are preserved exactly so that a
    verbatim rewrite produces byte-identical output for untouched lines.

    Args:
        file_path: Path to the file to read.

    Returns:
        The decoded file content.

    Raises:
        IoError: If the file cannot be read or is not valid UTF-8.
    """
    try:
        data = file_path.read_bytes()
    except OSError as e:
        raise IoError(f"Failed to read {file_path}: {e}") from e

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IoError(f"File is not valid UTF-8: {file_path}: {e}") from e


def write_text_exact(file_path: Path, content: str) -> None:
    """Write text as UTF-8 without newline translation.

    Args:
        file_path: Destination path.
        content: Text to write.

    Raises:
        IoError: If the file cannot be written.
    """
    try:
        file_path.write_bytes(content.encode("utf-8"))
    except OSError as e:
        raise IoError(f"Failed to write {file_path}: {e}") from e
