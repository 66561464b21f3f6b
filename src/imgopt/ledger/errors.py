"""Ledger persistence errors."""


class LedgerError(Exception):
    """Base exception for ledger operations."""


class CorruptLedgerError(LedgerError):
    """Raised when an existing ledger file cannot be parsed."""
