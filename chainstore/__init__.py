"""In-memory and on-disk storage for blocks, transactions, events and versioned ledger registers."""

__version__ = "0.1.0"