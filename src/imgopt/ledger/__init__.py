"""Content-addressed ledger of optimized assets."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from .errors import CorruptLedgerError, LedgerError
from .models import LedgerRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_LEDGER_DIRNAME = ".imgopt-shared"
LEDGER_FILENAME = "assets.json"

_CREATED_NOTICE = (
    "Creating {path} in the project's root directory.\n"
    "This file is autogenerated and should not be edited directly.\n"
    "Commit it to version control so asset state is shared between collaborators."
)


def ledger_path(root: Path, dirname: str = DEFAULT_LEDGER_DIRNAME) -> Path:
    """Return the ledger file location for a project root."""
    return root / dirname / LEDGER_FILENAME


class Ledger:
    """In-memory view of a project's ledger file with atomic write-back.

    Instances are created through :meth:`open`. Mutations only touch memory
    until :meth:`flush` rewrites the whole file.
    """

    def __init__(self, path: Path, entries: dict[str, LedgerRecord]) -> None:
        self._path = path
        self._entries = entries

    @classmethod
    def exists(cls, root: Path, dirname: str = DEFAULT_LEDGER_DIRNAME) -> bool:
        """Return whether a ledger file has been created for the project."""
        return ledger_path(root, dirname).exists()

    @classmethod
    def open(
        cls,
        root: Path,
        *,
        notify: Callable[[str], None] | None = None,
        dirname: str = DEFAULT_LEDGER_DIRNAME,
    ) -> "Ledger":
        """Open the ledger for a project, creating an empty one when missing.

        Args:
            root: Project root directory.
            notify: Receives the one-time notice emitted when the file is created.
            dirname: Hidden directory holding the ledger file.

        Returns:
            Ledger: Parsed ledger for the project.

        Raises:
            CorruptLedgerError: If the existing file is not a valid ledger document.
            OSError: If the directory or file cannot be created or read.
        """
        path = ledger_path(root, dirname)
        path.parent.mkdir(parents=True, exist_ok=True)

        if not path.exists():
            message = _CREATED_NOTICE.format(path=f"{dirname}/{LEDGER_FILENAME}")
            (notify or LOGGER.info)(message)
            ledger = cls(path, {})
            ledger.flush()
            return ledger

        return cls(path, cls._parse(path))

    @property
    def path(self) -> Path:
        """Return the on-disk location of the ledger."""
        return self._path

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def lookup(self, fingerprint: str) -> bool:
        """Return whether the content identified by `fingerprint` is optimized."""
        return fingerprint in self._entries

    def record(
        self,
        fingerprint: str,
        metadata: LedgerRecord | Mapping[str, Any] | None = None,
    ) -> None:
        """Insert or overwrite the in-memory entry for a fingerprint."""
        if metadata is None:
            record = LedgerRecord()
        elif isinstance(metadata, LedgerRecord):
            record = metadata
        else:
            record = LedgerRecord.model_validate(dict(metadata))
        self._entries[fingerprint] = record

    def prune(self, keep: Iterable[str]) -> list[str]:
        """Drop entries whose fingerprint is not in `keep`.

        Returns:
            list[str]: Fingerprints that were removed.
        """
        retained = set(keep)
        removed = sorted(key for key in self._entries if key not in retained)
        for key in removed:
            del self._entries[key]
        return removed

    def flush(self) -> None:
        """Atomically rewrite the ledger file with the full in-memory mapping.

        Raises:
            OSError: If the file cannot be written; the previous file is left intact.
        """
        payload = {
            key: record.model_dump(mode="json", exclude_none=True)
            for key, record in sorted(self._entries.items())
        }
        serialized = json.dumps(payload, indent=2, sort_keys=True) + "\n"

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{LEDGER_FILENAME}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _parse(path: Path) -> dict[str, LedgerRecord]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CorruptLedgerError(f"Invalid ledger data in {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise CorruptLedgerError(f"Ledger {path} must contain a JSON object.")

        entries: dict[str, LedgerRecord] = {}
        for key, value in data.items():
            # Older ledgers store a bare `true` presence marker.
            if value is True:
                entries[key] = LedgerRecord()
                continue
            try:
                entries[key] = LedgerRecord.model_validate(value)
            except ValidationError as exc:
                raise CorruptLedgerError(f"Invalid ledger entry {key!r} in {path}: {exc}") from exc
        return entries


__all__ = [
    "Ledger",
    "LedgerRecord",
    "LedgerError",
    "CorruptLedgerError",
    "DEFAULT_LEDGER_DIRNAME",
    "LEDGER_FILENAME",
    "ledger_path",
]
