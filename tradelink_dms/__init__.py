"""TradeLink DMS: pricing, returns, stock ledger and purchase bills for a distribution back office."""

__version__ = "1.0.0"
