from __future__ import annotations


class EstimationError(Exception):
    """Base class for every error raised by the estimate engine."""


class FormulaError(EstimationError):
    """A quantity formula could not be evaluated.

    ``kind`` matches the diagnostic kind reported for the failing line item and
    ``position`` is the 0-based offset into the formula, when one applies.
    """

    kind = "formula_error"

    def __init__(self, message: str, *, position: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.position = position


class FormulaSyntaxError(FormulaError):
    kind = "syntax_error"

    def __init__(self, message: str, *, position: int) -> None:
        super().__init__(f"{message} at position {position}", position=position)


class UnknownVariable(FormulaError):
    kind = "unknown_variable"

    def __init__(self, name: str, *, position: int | None = None) -> None:
        super().__init__(f"Unknown variable: {name}", position=position)
        self.name = name


class UnknownSlope(FormulaError):
    kind = "unknown_variable"

    def __init__(self, slope: str) -> None:
        super().__init__(f"Unknown roof slope: {slope}")
        self.slope = slope


class DivisionByZero(FormulaError):
    kind = "division_by_zero"

    def __init__(self, *, position: int | None = None) -> None:
        super().__init__("Division by zero", position=position)


class NumericOverflow(FormulaError):
    kind = "numeric_overflow"

    def __init__(self, *, position: int | None = None) -> None:
        super().__init__("Formula produced a non-finite value", position=position)


class CatalogEntryMissing(EstimationError):
    def __init__(self, line_item_type_id: str) -> None:
        super().__init__(f"Catalog entry not found: {line_item_type_id}")
        self.line_item_type_id = line_item_type_id


class InvalidPercentage(EstimationError):
    def __init__(self, field: str, value: float, low: float, high: float) -> None:
        super().__init__(f"{field} must be between {low:g} and {high:g}, got {value!r}")
        self.field = field
        self.value = value


class InvalidStatusTransition(EstimationError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move estimate from {current} to {target}")
        self.current = current
        self.target = target


class EstimateNotDeletable(EstimationError):
    def __init__(self, estimate_id: str, status: str) -> None:
        super().__init__(f"Estimate {estimate_id} is {status}; only drafts can be deleted")
        self.estimate_id = estimate_id
        self.status = status


class InvalidAdjustment(EstimationError):
    pass


class EstimateNotFound(EstimationError):
    def __init__(self, estimate_id: str) -> None:
        super().__init__(f"Estimate not found: {estimate_id}")
        self.estimate_id = estimate_id


class LineItemNotFound(EstimationError):
    def __init__(self, estimate_id: str, item_id: str) -> None:
        super().__init__(f"Line item {item_id} not found on estimate {estimate_id}")
        self.estimate_id = estimate_id
        self.item_id = item_id


class AdjustmentNotFound(EstimationError):
    def __init__(self, estimate_id: str, adjustment_id: str) -> None:
        super().__init__(f"Adjustment {adjustment_id} not found on estimate {estimate_id}")
        self.estimate_id = estimate_id
        self.adjustment_id = adjustment_id


class RevisionConflict(EstimationError):
    """The estimate changed between snapshot and write."""

    def __init__(self, estimate_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Estimate {estimate_id} is at revision {actual}, expected {expected}"
        )
        self.estimate_id = estimate_id
        self.expected = expected
        self.actual = actual


__all__ = [
    "AdjustmentNotFound",
    "CatalogEntryMissing",
    "DivisionByZero",
    "EstimateNotDeletable",
    "EstimateNotFound",
    "EstimationError",
    "FormulaError",
    "FormulaSyntaxError",
    "InvalidAdjustment",
    "InvalidPercentage",
    "InvalidStatusTransition",
    "LineItemNotFound",
    "NumericOverflow",
    "RevisionConflict",
    "UnknownSlope",
    "UnknownVariable",
]
