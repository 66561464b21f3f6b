"""Read-only checks for pending optimization work."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from imgopt.ledger import DEFAULT_LEDGER_DIRNAME, Ledger

from .hashing import Hasher
from .selection import AssetSelector

LOGGER = logging.getLogger(__name__)


class StatusQuery:
    """Answer whether a project still has images that need optimizing."""

    def __init__(
        self,
        selector: AssetSelector | None = None,
        hasher: Hasher | None = None,
        *,
        ledger_dirname: str = DEFAULT_LEDGER_DIRNAME,
    ) -> None:
        self.selector = selector or AssetSelector()
        self.hasher = hasher or Hasher()
        self.ledger_dirname = ledger_dirname

    def has_unoptimized_assets(
        self,
        root: Path,
        include: str | None = None,
        exclude: str | None = None,
    ) -> bool:
        """Return True when any selected image is missing from the ledger.

        Returns True without hashing anything when no ledger exists yet.
        """
        root = root.expanduser().resolve()
        if not Ledger.exists(root, self.ledger_dirname):
            return True
        return any(True for _ in self.iter_unoptimized(root, include, exclude))

    def iter_unoptimized(
        self,
        root: Path,
        include: str | None = None,
        exclude: str | None = None,
    ) -> Iterator[Path]:
        """Yield selected images whose content is not recorded in the ledger.

        Every selected image is yielded when the project has no ledger yet.

        Raises:
            ConfigError: If the project's asset patterns cannot be read.
            CorruptLedgerError: If the ledger file cannot be parsed.
        """
        root = root.expanduser().resolve()
        selection = self.selector.select(root, include, exclude)
        if not Ledger.exists(root, self.ledger_dirname):
            yield from selection.selected_files
            return

        ledger = Ledger.open(root, dirname=self.ledger_dirname)
        for path in selection.selected_files:
            try:
                fingerprint = self.hasher.fingerprint(path)
            except OSError as exc:
                LOGGER.debug("Treating unreadable %s as unoptimized: %s", path, exc)
                yield path
                continue
            if not ledger.lookup(fingerprint):
                yield path


__all__ = ["StatusQuery"]
