"""Data models shared by the asset selection and optimization pipeline."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class FileState(str, Enum):
    """Lifecycle of a single file within an optimization pass."""

    PENDING = "pending"
    HASHED = "hashed"
    SKIPPED = "skipped"
    BACKED_UP = "backed_up"
    COMPRESSED = "compressed"
    FAILED = "failed"


class AssetSelection(BaseModel):
    """Result of resolving a project's asset patterns.

    Attributes:
        all_files: Every image matched by the declared bundle patterns.
        selected_files: Images surviving include/exclude filtering.
    """

    all_files: List[Path] = Field(default_factory=list)
    selected_files: List[Path] = Field(default_factory=list)


class FileOutcome(BaseModel):
    """Final state reached by one selected file.

    Attributes:
        path: Absolute path of the image.
        state: Last state reached in the per-file lifecycle.
        fingerprint: Content fingerprint before optimization.
        optimized_fingerprint: Content fingerprint after optimization.
        backup_path: Location of the retained original, once created.
        format: Encoded format reported by the codec.
        original_bytes: Size before optimization.
        optimized_bytes: Size after optimization.
        error: Failure reason when `state` is `failed`.
    """

    path: Path
    state: FileState = FileState.PENDING
    fingerprint: Optional[str] = None
    optimized_fingerprint: Optional[str] = None
    backup_path: Optional[Path] = None
    format: Optional[str] = None
    original_bytes: Optional[int] = None
    optimized_bytes: Optional[int] = None
    error: Optional[str] = None

    @property
    def saved_bytes(self) -> int:
        """Return the number of bytes saved by optimization."""
        if self.original_bytes is None or self.optimized_bytes is None:
            return 0
        return max(0, self.original_bytes - self.optimized_bytes)


class OptimizationReport(BaseModel):
    """Aggregated outcomes for an optimization pass.

    Attributes:
        root: Project root that was processed.
        quality: Quality level requested for re-encoding.
        outcomes: Per-file outcomes in selection order.
        pruned: Ledger fingerprints dropped during reconciliation.
    """

    root: Path
    quality: int
    outcomes: List[FileOutcome] = Field(default_factory=list)
    pruned: List[str] = Field(default_factory=list)

    def by_state(self, state: FileState) -> List[FileOutcome]:
        """Return outcomes that ended in `state`."""
        return [outcome for outcome in self.outcomes if outcome.state == state]

    @property
    def failed(self) -> List[FileOutcome]:
        """Return outcomes that ended in the failed state."""
        return self.by_state(FileState.FAILED)

    @property
    def ok(self) -> bool:
        """Return True when no file failed."""
        return not self.failed

    @property
    def saved_bytes(self) -> int:
        """Return total bytes saved across compressed files."""
        return sum(outcome.saved_bytes for outcome in self.outcomes)


__all__ = ["FileState", "AssetSelection", "FileOutcome", "OptimizationReport"]
