"""Ledger persistence tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from imgopt import ledger as ledger_module
from imgopt.ledger import (
    DEFAULT_LEDGER_DIRNAME,
    CorruptLedgerError,
    Ledger,
    LedgerRecord,
    ledger_path,
)

FINGERPRINT = "a" * 64


def test_open_creates_directory_and_empty_file(tmp_path: Path) -> None:
    """Ensure opening a fresh project creates the ledger and notifies once.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    notices: list[str] = []

    ledger = Ledger.open(tmp_path, notify=notices.append)

    assert ledger.path == tmp_path / DEFAULT_LEDGER_DIRNAME / "assets.json"
    assert json.loads(ledger.path.read_text(encoding="utf-8")) == {}
    assert len(ledger) == 0
    assert len(notices) == 1
    assert "assets.json" in notices[0]

    Ledger.open(tmp_path, notify=notices.append)
    assert len(notices) == 1


def test_exists_does_not_create(tmp_path: Path) -> None:
    assert Ledger.exists(tmp_path) is False
    assert not (tmp_path / DEFAULT_LEDGER_DIRNAME).exists()

    Ledger.open(tmp_path)

    assert Ledger.exists(tmp_path) is True


def test_record_is_memory_only_until_flush(tmp_path: Path) -> None:
    """Confirm record() leaves the file alone and flush() persists it.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    ledger = Ledger.open(tmp_path)

    ledger.record(FINGERPRINT, {"quality": 80, "original_bytes": 10, "optimized_bytes": 5})

    assert ledger.lookup(FINGERPRINT)
    assert json.loads(ledger.path.read_text(encoding="utf-8")) == {}

    ledger.flush()
    reopened = Ledger.open(tmp_path)

    assert reopened.lookup(FINGERPRINT)
    assert not reopened.lookup("b" * 64)
    stored = json.loads(reopened.path.read_text(encoding="utf-8"))[FINGERPRINT]
    assert stored == {"quality": 80, "original_bytes": 10, "optimized_bytes": 5}


def test_flush_writes_sorted_keys(tmp_path: Path) -> None:
    ledger = Ledger.open(tmp_path)
    ledger.record("f" * 64)
    ledger.record("0" * 64, LedgerRecord(quality=50))

    ledger.flush()

    data = json.loads(ledger.path.read_text(encoding="utf-8"))
    assert list(data) == ["0" * 64, "f" * 64]
    assert data["0" * 64] == {"quality": 50}
    assert data["f" * 64] == {}


def test_invalid_json_raises_and_preserves_file(tmp_path: Path) -> None:
    """Ensure a corrupt ledger is surfaced instead of being reset.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    path = ledger_path(tmp_path)
    path.parent.mkdir()
    path.write_text("not json", encoding="utf-8")

    with pytest.raises(CorruptLedgerError):
        Ledger.open(tmp_path)

    assert path.read_text(encoding="utf-8") == "not json"


@pytest.mark.parametrize("content", ["[]", '"text"', '{"abc": "not-a-record"}'])
def test_structurally_invalid_ledger_raises(tmp_path: Path, content: str) -> None:
    path = ledger_path(tmp_path)
    path.parent.mkdir()
    path.write_text(content, encoding="utf-8")

    with pytest.raises(CorruptLedgerError):
        Ledger.open(tmp_path)


def test_undecodable_ledger_raises_and_preserves_file(tmp_path: Path) -> None:
    path = ledger_path(tmp_path)
    path.parent.mkdir()
    path.write_bytes(b"\xff\xfe{}")

    with pytest.raises(CorruptLedgerError):
        Ledger.open(tmp_path)

    assert path.read_bytes() == b"\xff\xfe{}"


def test_presence_markers_are_accepted(tmp_path: Path) -> None:
    path = ledger_path(tmp_path)
    path.parent.mkdir()
    path.write_text(json.dumps({FINGERPRINT: True}), encoding="utf-8")

    ledger = Ledger.open(tmp_path)

    assert ledger.lookup(FINGERPRINT)
    assert len(ledger) == 1


def test_failed_flush_leaves_previous_file_intact(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verify an interrupted write never exposes a partial ledger.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Pytest fixture used to simulate a failing rename.
    """
    ledger = Ledger.open(tmp_path)
    ledger.record(FINGERPRINT)
    ledger.flush()
    before = ledger.path.read_text(encoding="utf-8")

    def _fail(*_: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(ledger_module.os, "replace", _fail)
    ledger.record("b" * 64)

    with pytest.raises(OSError):
        ledger.flush()

    assert ledger.path.read_text(encoding="utf-8") == before
    assert sorted(p.name for p in ledger.path.parent.iterdir()) == ["assets.json"]


def test_prune_removes_unlisted_entries(tmp_path: Path) -> None:
    ledger = Ledger.open(tmp_path)
    ledger.record("a" * 64)
    ledger.record("b" * 64)

    removed = ledger.prune(["a" * 64, "c" * 64])

    assert removed == ["b" * 64]
    assert ledger.lookup("a" * 64)
    assert not ledger.lookup("b" * 64)
    assert len(ledger) == 1
