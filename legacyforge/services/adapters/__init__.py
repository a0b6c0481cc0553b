"""Entry adapter loading, validation and scaffolding."""

from .service import AdapterService, exported_symbols, leading_statements

__all__ = ["AdapterService", "exported_symbols", "leading_statements"]
