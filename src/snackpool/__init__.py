"""snackpool: shared consumable orders and a settled balance ledger."""

__version__ = "0.4.0"
