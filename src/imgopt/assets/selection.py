"""Resolution of declared asset patterns into image paths."""

from __future__ import annotations

import glob
from pathlib import Path, PurePath
from typing import Iterable

from imgopt.config.project import ProjectConfigReader

from .models import AssetSelection

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg"})
IGNORED_DIRECTORIES = frozenset({"node_modules"})
BACKUP_MARKER = ".orig"


def backup_path_for(path: Path) -> Path:
    """Return the backup location for an image (`photo.png` -> `photo.orig.png`)."""
    return path.with_name(f"{path.stem}{BACKUP_MARKER}{path.suffix}")


def is_backup(path: PurePath) -> bool:
    """Return whether `path` names a backup copy produced by the optimizer."""
    return PurePath(path.stem).suffix == BACKUP_MARKER


def is_image(path: PurePath) -> bool:
    """Return whether the extension marks `path` as an optimizable image."""
    return path.suffix.lower() in IMAGE_EXTENSIONS


class AssetSelector:
    """Expand a project's bundle patterns and apply include/exclude overrides."""

    def __init__(self, config_reader: ProjectConfigReader | None = None) -> None:
        self.config_reader = config_reader or ProjectConfigReader()

    def select(
        self,
        root: Path,
        include: str | None = None,
        exclude: str | None = None,
    ) -> AssetSelection:
        """Resolve the project's images.

        Args:
            root: Project root directory.
            include: Optional glob narrowing the selection.
            exclude: Optional glob removing files from the selection.

        Returns:
            AssetSelection: Every declared image and the filtered subset.

        Raises:
            ConfigError: If the project's asset patterns cannot be read.
        """
        root = root.expanduser().resolve()
        patterns = self.config_reader.read_asset_patterns(root)

        # The full universe is always needed to reconcile the ledger.
        all_matches = self._expand(root, patterns)

        candidates = all_matches
        if include:
            included = set(self._expand(root, [include]))
            candidates = [match for match in candidates if match in included]
        if exclude:
            rejected = set(self._expand(root, [exclude]))
            candidates = [match for match in candidates if match not in rejected]

        return AssetSelection(
            all_files=self._images(root, all_matches),
            selected_files=self._images(root, candidates),
        )

    def _expand(self, root: Path, patterns: Iterable[str]) -> list[str]:
        """Return deduplicated relative POSIX paths of regular files matching `patterns`."""
        found: dict[str, None] = {}
        for pattern in patterns:
            pattern = pattern.removeprefix("./")
            for match in sorted(glob.glob(pattern, root_dir=root, recursive=True)):
                relative = PurePath(match).as_posix()
                if IGNORED_DIRECTORIES.intersection(PurePath(relative).parts):
                    continue
                if not (root / relative).is_file():
                    continue
                found.setdefault(relative, None)
        return list(found)

    def _images(self, root: Path, matches: Iterable[str]) -> list[Path]:
        images = []
        for relative in matches:
            path = root / relative
            if is_image(path) and not is_backup(path):
                images.append(path)
        return images


__all__ = [
    "AssetSelector",
    "BACKUP_MARKER",
    "IMAGE_EXTENSIONS",
    "backup_path_for",
    "is_backup",
    "is_image",
]
