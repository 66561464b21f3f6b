"""Tests for fingerprinting and byte formatting helpers."""

import hashlib
from pathlib import Path

import pytest

from imgopt.assets import Hasher
from imgopt.formatting import format_bytes


def test_fingerprint_matches_sha256(tmp_path: Path) -> None:
    path = tmp_path / "sample.bin"
    data = b"hello world" * 10_000
    path.write_bytes(data)

    fingerprint = Hasher(chunk_size=1024).fingerprint(path)

    assert fingerprint == hashlib.sha256(data).hexdigest()
    assert len(fingerprint) == 64


def test_fingerprint_depends_only_on_content(tmp_path: Path) -> None:
    first = tmp_path / "one.png"
    second = tmp_path / "nested" / "two.jpg"
    second.parent.mkdir()
    first.write_bytes(b"same")
    second.write_bytes(b"same")
    hasher = Hasher()

    assert hasher.fingerprint(first) == hasher.fingerprint(second)


def test_missing_file_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        Hasher().fingerprint(tmp_path / "missing.png")


@pytest.mark.parametrize(
    ("count", "expected"),
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5 MB"),
        (3 * 1024**3, "3 GB"),
    ],
)
def test_format_bytes(count: int, expected: str) -> None:
    assert format_bytes(count) == expected
