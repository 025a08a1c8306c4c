from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger("boxgen.storage.blob")


class BlobStoreError(OSError):
    """Blob could not be read or written."""


class BlobNotFoundError(BlobStoreError, FileNotFoundError):
    """Blob does not exist."""


class BlobStore(Protocol):
    """Byte storage addressed by relative paths."""

    def read(self, path: str) -> bytes: ...

    def write(self, path: str, data: bytes) -> None: ...


class FileBlobStore:
    """
    Blob store backed by the local file system.

    Paths such as ``data/profiles.yaml`` are resolved against the
    application root directory.
    """

    def __init__(self, root: Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        """Application root directory."""
        return self._root

    def resolve(self, path: str) -> Path:
        """Absolute location of a blob."""
        return self._root / path

    def read(self, path: str) -> bytes:
        target = self.resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {path}") from e
        except OSError as e:
            raise BlobStoreError(f"Error reading {path}: {e}") from e

    def write(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise BlobStoreError(f"Error writing {path}: {e}") from e
        logger.debug("Wrote %d bytes to %s", len(data), target)
