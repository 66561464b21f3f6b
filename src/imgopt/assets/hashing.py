"""Content fingerprinting."""

from __future__ import annotations

import hashlib
from pathlib import Path

HASH_CHUNK_SIZE = 64 * 1024


class Hasher:
    """Compute SHA-256 fingerprints of file contents."""

    def __init__(self, chunk_size: int = HASH_CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    def fingerprint(self, path: Path) -> str:
        """Return the hex digest of the file's current bytes.

        Raises:
            OSError: If the file cannot be read.
        """
        digest = hashlib.sha256()
        with open(path, "rb") as fh:
            while chunk := fh.read(self.chunk_size):
                digest.update(chunk)
        return digest.hexdigest()
