"""Filesystem capability used by the generator."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from .exceptions import FileIOError

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    """Read/write/exists over text files."""

    def read_text(self, path: Path) -> str:
        ...

    def write_text(self, path: Path, content: str) -> None:
        ...

    def exists(self, path: Path) -> bool:
        ...


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to a file atomically using a temporary file.

    Args:
        path: Destination file path
        text: Text content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


class LocalFileSystem:
    """Real disk access, UTF-8 text, parents created on write."""

    def read_text(self, path: Path) -> str:
        try:
            with path.open(encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read {path}: {e}"
            raise FileIOError(msg, details={"path": str(path)}) from e

    def write_text(self, path: Path, content: str) -> None:
        try:
            atomic_write_text(path, content)
        except OSError as e:
            msg = f"Failed to write {path}: {e}"
            raise FileIOError(msg, details={"path": str(path)}) from e
        logger.info("Wrote %s", path)

    def exists(self, path: Path) -> bool:
        return path.exists()


class OverlayFileSystem:
    """In-memory layer over another filesystem.

    Writes land in memory only; reads prefer what was written. With no base
    it behaves as a purely in-memory filesystem.
    """

    def __init__(self, base: FileSystem | None = None) -> None:
        self.base = base
        self.files: dict[Path, str] = {}

    def read_text(self, path: Path) -> str:
        if path in self.files:
            return self.files[path]
        if self.base is None:
            msg = f"Failed to read {path}: no such file"
            raise FileIOError(msg, details={"path": str(path)})
        return self.base.read_text(path)

    def write_text(self, path: Path, content: str) -> None:
        logger.debug("Buffered write to %s", path)
        self.files[path] = content

    def exists(self, path: Path) -> bool:
        if path in self.files:
            return True
        return self.base is not None and self.base.exists(path)
