"""RWA Ledger: fractional ownership ledger and order book for real-world assets."""

from rwa_ledger.client import LedgerClient, LedgerClientError
from rwa_ledger.common.exceptions import LedgerError

__all__ = [
    "LedgerClient",
    "LedgerClientError",
    "LedgerError",
]
__version__ = "0.1.0"
