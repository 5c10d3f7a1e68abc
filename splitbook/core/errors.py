class StoreError(Exception):
    """Raised when the ledger store can't be read or written."""


class SettlementWriteError(StoreError):
    """Raised when a settlement insert is rejected or fails."""
