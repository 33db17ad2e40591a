import os

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..errors import FileError


@dataclass
class FileInfo:
    path: str
    exists: bool
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    content: Optional[str] = None


def read_file_content(path: str) -> FileInfo:
    """
    Reads a whole text file.

    A missing file is reported with `exists=False` rather than an error.

    Raises:
        FileError: If the file exists but cannot be read.
    """
    if not os.path.exists(path):
        return FileInfo(path=path, exists=False)

    try:
        stat = os.stat(path)
        with open(path, "r", encoding="utf-8", newline="") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileError(path, f"Failed to read file: {e}")

    return FileInfo(
        path=path,
        exists=True,
        size=stat.st_size,
        last_modified=datetime.fromtimestamp(stat.st_mtime),
        content=content,
    )


def write_file_content(path: str, content: str, create_dir: bool = True) -> bool:
    """
    Writes `content` to `path`, replacing anything already there.

    Raises:
        FileError: If the directory cannot be created or the write fails.
    """
    try:
        directory = os.path.dirname(path)
        if create_dir and directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as e:
        raise FileError(path, f"Failed to write file: {e}")
    return True


def list_files(path: str, extension: Optional[str] = None) -> List[str]:
    """Lists the regular files directly under `path`, optionally filtered by extension."""
    try:
        entries = sorted(os.scandir(path), key=lambda entry: entry.name)
    except OSError as e:
        raise FileError(path, f"Failed to list files: {e}")

    return [
        entry.name
        for entry in entries
        if entry.is_file() and (not extension or entry.name.endswith(extension))
    ]
