from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class DiagnosticKind(str, Enum):
    syntax_error = "syntax_error"
    unknown_variable = "unknown_variable"
    division_by_zero = "division_by_zero"
    numeric_overflow = "numeric_overflow"
    negative_quantity = "negative_quantity"
    catalog_entry_missing = "catalog_entry_missing"


class Diagnostic(BaseModel):
    """A non-fatal problem found while recalculating one line item."""

    item_id: str
    kind: DiagnosticKind
    message: str
    position: int | None = None


__all__ = ["Diagnostic", "DiagnosticKind"]
