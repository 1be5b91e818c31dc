"""Ledger services package."""

from actual_context.services.ledger.interface import LedgerClient
from actual_context.services.ledger.actual_client import ActualLedgerClient

__all__ = [
    "ActualLedgerClient",
    "LedgerClient",
]
