"""
File utilities for the Team Hierarchy Engine.

Provides directory creation and atomic writes for exports and the database.
"""

import os
import uuid
from pathlib import Path


def ensure_directory(path: str) -> None:
    """
    Create directory if it doesn't exist, including parent directories.

    Args:
        path: Directory path to create

    Raises:
        OSError: If directory creation fails
    """
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OSError(f"Failed to create directory {path}: {e}") from e


def atomic_write(file_path: str, content: str, encoding: str = "utf-8") -> None:
    """
    Write file atomically using temporary file and rename.

    Prevents partial writes in case of interruption.

    Args:
        file_path: Destination file path
        content: Content to write
        encoding: Text encoding (default: utf-8)

    Raises:
        OSError: If write fails
    """
    directory = os.path.dirname(file_path)
    if directory:
        ensure_directory(directory)

    temp_path = f"{file_path}.tmp.{uuid.uuid4().hex[:8]}"

    try:
        with open(temp_path, "w", encoding=encoding) as f:
            f.write(content)

        os.replace(temp_path, file_path)
    except OSError as e:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise OSError(f"Atomic write failed for {file_path}: {e}") from e
