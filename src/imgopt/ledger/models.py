"""Ledger record models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class LedgerRecord(BaseModel):
    """Metadata stored for a fingerprint that is known to be optimized."""

    quality: Optional[int] = None
    original_bytes: Optional[int] = None
    optimized_bytes: Optional[int] = None
    optimized_at: Optional[datetime] = None


__all__ = ["LedgerRecord"]
