"""Per-symbol state store."""

from .symbol_store import SymbolDataStore

__all__ = ["SymbolDataStore"]
