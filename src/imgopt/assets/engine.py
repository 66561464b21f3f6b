"""Incremental optimization of a project's image assets."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, MutableMapping

from imgopt.ledger import DEFAULT_LEDGER_DIRNAME, Ledger, LedgerRecord

from .codec import ImageCodec
from .errors import AssetError
from .hashing import Hasher
from .models import AssetSelection, FileOutcome, FileState, OptimizationReport
from .selection import AssetSelector, backup_path_for

LOGGER = logging.getLogger(__name__)

DEFAULT_QUALITY = 80
DEFAULT_WORKERS = 4


class OptimizationEngine:
    """Back up, re-encode and record every selected image not yet in the ledger.

    Each file moves through the states in :class:`FileState`. Failures are
    scoped to the file that raised them; the ledger is only mutated by the
    calling thread and is flushed once per pass.
    """

    def __init__(
        self,
        selector: AssetSelector | None = None,
        hasher: Hasher | None = None,
        codec: ImageCodec | None = None,
        *,
        workers: int = DEFAULT_WORKERS,
        notify: Callable[[str], None] | None = None,
        ledger_dirname: str = DEFAULT_LEDGER_DIRNAME,
    ) -> None:
        self.selector = selector or AssetSelector()
        self.hasher = hasher or Hasher()
        self.codec = codec or ImageCodec()
        self.workers = max(1, workers)
        self.notify = notify
        self.ledger_dirname = ledger_dirname

    def optimize(
        self,
        root: Path,
        include: str | None = None,
        exclude: str | None = None,
        quality: int = DEFAULT_QUALITY,
    ) -> OptimizationReport:
        """Optimize the project's selected images.

        Args:
            root: Project root directory.
            include: Optional glob narrowing the selection.
            exclude: Optional glob removing files from the selection.
            quality: Re-encoding quality between 1 and 100.

        Returns:
            OptimizationReport: Final state of every selected file.

        Raises:
            ValueError: If `quality` is outside 1-100.
            ConfigError: If the project's asset patterns cannot be read.
            CorruptLedgerError: If the ledger file cannot be parsed.
            OSError: If the ledger cannot be created or flushed.
        """
        if not 1 <= quality <= 100:
            raise ValueError(f"quality must be between 1 and 100, got {quality}")

        root = root.expanduser().resolve()
        selection = self.selector.select(root, include, exclude)
        ledger = Ledger.open(root, notify=self.notify, dirname=self.ledger_dirname)
        report = OptimizationReport(root=root, quality=quality)

        outcomes: dict[Path, FileOutcome] = {}
        try:
            self._run(selection.selected_files, ledger, quality, outcomes)
        except KeyboardInterrupt:
            LOGGER.warning("Interrupted; recording %d completed file(s).", len(outcomes))
            self._record(ledger, outcomes.values(), quality)
            ledger.flush()
            raise

        self._record(ledger, outcomes.values(), quality)
        report.pruned = self._reconcile(ledger, selection, outcomes)
        ledger.flush()

        report.outcomes = [outcomes[path] for path in selection.selected_files]
        LOGGER.info(
            "Optimized %d, skipped %d, failed %d file(s) under %s",
            len(report.by_state(FileState.COMPRESSED)),
            len(report.by_state(FileState.SKIPPED)),
            len(report.failed),
            root,
        )
        return report

    def _run(
        self,
        paths: list[Path],
        ledger: Ledger,
        quality: int,
        outcomes: MutableMapping[Path, FileOutcome],
    ) -> None:
        if self.workers <= 1 or len(paths) <= 1:
            for path in paths:
                outcomes[path] = self._process(path, ledger, quality)
            return

        executor = ThreadPoolExecutor(max_workers=self.workers)
        futures: dict[Future[FileOutcome], Path] = {}
        try:
            for path in paths:
                futures[executor.submit(self._process, path, ledger, quality)] = path
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            # Workers that were mid-file have finished touching disk by now.
            for future, path in futures.items():
                if path in outcomes or not future.done() or future.cancelled():
                    continue
                if future.exception() is None:
                    outcomes[path] = future.result()
            raise
        executor.shutdown(wait=True)

    def _process(self, path: Path, ledger: Ledger, quality: int) -> FileOutcome:
        """Drive a single file through the optimization states."""
        outcome = FileOutcome(path=path)

        try:
            outcome.fingerprint = self.hasher.fingerprint(path)
            outcome.original_bytes = path.stat().st_size
        except OSError as exc:
            return self._fail(outcome, f"could not read file: {exc}")
        outcome.state = FileState.HASHED

        if ledger.lookup(outcome.fingerprint):
            LOGGER.debug("Skipping %s; content already optimized", path)
            outcome.state = FileState.SKIPPED
            return outcome

        backup = backup_path_for(path)
        try:
            pristine = self._create_backup(path, backup, outcome.fingerprint)
        except OSError as exc:
            return self._fail(outcome, f"could not back up to {backup.name}: {exc}")
        outcome.backup_path = backup
        outcome.state = FileState.BACKED_UP

        try:
            self._compress(path, backup if pristine else path, outcome, quality)
        except (AssetError, OSError) as exc:
            return self._fail(outcome, str(exc))
        outcome.state = FileState.COMPRESSED
        return outcome

    def _create_backup(self, path: Path, backup: Path, fingerprint: str) -> bool:
        """Ensure `backup` exists and report whether it matches the current content.

        An existing backup is never replaced. When its content differs, the
        file was optimized by a pass whose ledger write was lost, or it was
        replaced by a new version; either way the current bytes are the
        input to compress.
        """
        if backup.exists():
            if self.hasher.fingerprint(backup) == fingerprint:
                return True
            LOGGER.info("Keeping existing backup %s; compressing current content", backup)
            return False

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{backup.name}.", suffix=".tmp")
        os.close(fd)
        try:
            shutil.copy2(path, tmp_name)
            os.replace(tmp_name, backup)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return True

    def _compress(self, path: Path, source: Path, outcome: FileOutcome, quality: int) -> None:
        # Mislabeled files are common, so the format comes from the bytes.
        fmt = self.codec.detect_format(source.read_bytes())
        outcome.format = fmt

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            self.codec.recompress(source, tmp_path, fmt, quality)
            optimized_size = tmp_path.stat().st_size
            if outcome.original_bytes is not None and optimized_size >= outcome.original_bytes:
                LOGGER.info("Compressed version of %s was not smaller; keeping original", path)
                outcome.optimized_bytes = outcome.original_bytes
                outcome.optimized_fingerprint = outcome.fingerprint
                return
            optimized_fingerprint = self.hasher.fingerprint(tmp_path)
            os.replace(tmp_path, path)
            outcome.optimized_bytes = optimized_size
            outcome.optimized_fingerprint = optimized_fingerprint
        finally:
            tmp_path.unlink(missing_ok=True)

    def _fail(self, outcome: FileOutcome, reason: str) -> FileOutcome:
        LOGGER.warning("Failed to optimize %s: %s", outcome.path, reason)
        outcome.state = FileState.FAILED
        outcome.error = reason
        return outcome

    def _record(self, ledger: Ledger, outcomes: Iterable[FileOutcome], quality: int) -> None:
        now = datetime.now(timezone.utc)
        for outcome in outcomes:
            if outcome.state != FileState.COMPRESSED or outcome.optimized_fingerprint is None:
                continue
            record = LedgerRecord(
                quality=quality,
                original_bytes=outcome.original_bytes,
                optimized_bytes=outcome.optimized_bytes,
                optimized_at=now,
            )
            # Untouched copies of the pre-optimization content count as done;
            # reconciliation drops that entry once no such copy remains.
            for fingerprint in {outcome.fingerprint, outcome.optimized_fingerprint}:
                if fingerprint is not None:
                    ledger.record(fingerprint, record)

    def _reconcile(
        self,
        ledger: Ledger,
        selection: AssetSelection,
        outcomes: dict[Path, FileOutcome],
    ) -> list[str]:
        """Prune ledger entries for content no longer present in the project."""
        current: set[str] = set()
        for path in selection.all_files:
            outcome = outcomes.get(path)
            if outcome is not None:
                fingerprint = outcome.optimized_fingerprint or outcome.fingerprint
            else:
                try:
                    fingerprint = self.hasher.fingerprint(path)
                except OSError as exc:
                    LOGGER.warning("Skipping ledger reconciliation; could not read %s: %s", path, exc)
                    return []
            if fingerprint is None:
                LOGGER.warning("Skipping ledger reconciliation; %s has no fingerprint", path)
                return []
            current.add(fingerprint)

        removed = ledger.prune(current)
        if removed:
            LOGGER.debug("Pruned %d stale ledger entries", len(removed))
        return removed


__all__ = ["OptimizationEngine", "DEFAULT_QUALITY", "DEFAULT_WORKERS"]
