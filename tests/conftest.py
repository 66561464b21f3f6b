"""Shared fixtures for imgopt tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from PIL import Image


def _write_image(path: Path, fmt: str = "PNG", size: tuple[int, int] = (64, 64)) -> Path:
    """Write a noisy image that compresses noticeably when re-encoded.

    Args:
        path: Destination file.
        fmt: Pillow format name.
        size: Image dimensions.

    Returns:
        Path: The written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.effect_noise(size, 64).convert("RGB")
    if fmt == "PNG":
        image.save(path, format="PNG", compress_level=0)
    elif fmt == "JPEG":
        image.save(path, format="JPEG", quality=100)
    else:
        image.save(path, format=fmt)
    return path


@pytest.fixture
def write_image() -> Callable[..., Path]:
    """Return a helper that writes noisy test images."""
    return _write_image


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Return a project root declaring `assets/**/*` as its bundle pattern."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "imgopt.yaml").write_text(
        "asset_bundle_patterns:\n  - assets/**/*\n", encoding="utf-8"
    )
    return root
