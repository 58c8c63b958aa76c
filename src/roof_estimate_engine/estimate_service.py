from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Sequence

from .adjustments import apply_adjustment, remove_adjustment, replay_adjustments
from .calculator import round2
from .catalog import CatalogLookup
from .dictionaries import DEFAULT_OVERHEAD_PERCENT, DEFAULT_PROFIT_PERCENT, DEFAULT_TAX_PERCENT
from .errors import CatalogEntryMissing, LineItemNotFound
from .estimate_store import EstimateStore
from .formula import suggested_formula
from .geographic import GeographicPricingLookup, resolve_multipliers
from .macros import apply_macro
from .models.adjustment import AdjustmentType, PriceAdjustment
from .models.estimate import Estimate, EstimateStatus
from .models.line_item import EstimateLineItem
from .models.macro import EstimateMacro
from .models.variables import RoofVariables
from .recalculation import EstimateRecalculator, RecalculationResult
from .rollup import PriceBandPolicy, validate_percentages
from .versioning import (
    VersioningPolicy,
    current_estimate,
    current_estimates,
    ensure_deletable,
    expire_due,
    plan_new_version,
    transition,
)

logger = logging.getLogger(__name__)

EDITABLE_LINE_ITEM_FIELDS = frozenset(
    {
        "quantity",
        "quantity_formula",
        "slope",
        "waste_factor",
        "material_unit_cost",
        "labor_unit_cost",
        "equipment_unit_cost",
        "is_included",
        "is_optional",
        "sort_order",
        "group_name",
        "notes",
    }
)
_COST_FIELDS = frozenset({"material_unit_cost", "labor_unit_cost", "equipment_unit_cost"})

EDITABLE_ESTIMATE_FIELDS = frozenset(
    {
        "name",
        "variables",
        "geographic_pricing_id",
        "overhead_percent",
        "profit_percent",
        "tax_percent",
        "internal_notes",
        "customer_notes",
        "valid_until",
    }
)
# Fields whose change invalidates stored quantities, costs or totals.
_PRICING_FIELDS = frozenset(
    {"variables", "geographic_pricing_id", "overhead_percent", "profit_percent", "tax_percent"}
)


def _new_estimate_id() -> str:
    return f"est_{uuid.uuid4().hex[:12]}"


def _new_item_id() -> str:
    return f"eli_{uuid.uuid4().hex[:12]}"


class EstimateService:
    """Estimate lifecycle on top of an ``EstimateStore``.

    Every write goes through ``save_estimate`` with the revision of the
    snapshot it was computed from, so concurrent edits surface as
    ``RevisionConflict`` instead of being lost.
    """

    def __init__(
        self,
        *,
        store: EstimateStore,
        catalog: CatalogLookup,
        geographic: GeographicPricingLookup | None = None,
        policy: VersioningPolicy = VersioningPolicy.additive,
        band: PriceBandPolicy | None = None,
        max_line_items: int | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._geographic = geographic
        self._policy = policy
        self.recalculator = EstimateRecalculator(
            store=store,
            catalog=catalog,
            geographic=geographic,
            band=band,
            max_line_items=max_line_items,
        )

    @property
    def policy(self) -> VersioningPolicy:
        return self._policy

    def get_estimate(self, estimate_id: str) -> Estimate:
        return self._store.get_estimate(estimate_id)

    def list_estimates(self, lead_id: str) -> list[Estimate]:
        """Estimates that count for the lead under the active policy, newest first."""
        return current_estimates(self._store.list_estimates(lead_id), self._policy)

    def current_estimate(self, lead_id: str) -> Estimate | None:
        return current_estimate(self._store.list_estimates(lead_id), self._policy)

    def create_estimate(
        self,
        lead_id: str,
        *,
        name: str | None = None,
        variables: RoofVariables | None = None,
        geographic_pricing_id: str | None = None,
        overhead_percent: float = DEFAULT_OVERHEAD_PERCENT,
        profit_percent: float = DEFAULT_PROFIT_PERCENT,
        tax_percent: float = DEFAULT_TAX_PERCENT,
        internal_notes: str | None = None,
        customer_notes: str | None = None,
        valid_until: datetime | None = None,
        copy_from_id: str | None = None,
    ) -> Estimate:
        """Create the next version of the lead's estimate.

        A new estimate starts empty with zeroed totals. With ``copy_from_id``
        it starts from copies of that estimate's line items (and its
        variables, unless new ones are given) and is priced immediately.
        """
        validate_percentages(overhead_percent, profit_percent, tax_percent)
        source = self._store.get_estimate(copy_from_id) if copy_from_id else None
        plan = plan_new_version(self._store.list_estimates(lead_id), self._policy)
        if variables is None:
            variables = source.variables if source else RoofVariables.empty()
        multipliers = resolve_multipliers(geographic_pricing_id, self._geographic)
        estimate = Estimate(
            id=_new_estimate_id(),
            lead_id=lead_id,
            name=name or f"Estimate v{plan.version}",
            version=plan.version,
            variables=variables,
            geographic_pricing_id=geographic_pricing_id,
            geographic_adjustment=round2(multipliers.adjustment),
            overhead_percent=overhead_percent,
            profit_percent=profit_percent,
            tax_percent=tax_percent,
            internal_notes=internal_notes,
            customer_notes=customer_notes,
            valid_until=valid_until,
        )
        if source is not None:
            estimate = self.recalculator.compute(
                estimate.model_copy(update={"line_items": clone_line_items(source.line_items)})
            ).estimate
        for superseded_id in plan.supersede_ids:
            previous = self._store.get_estimate(superseded_id)
            self._store.save_estimate(
                previous.model_copy(update={"is_superseded": True}),
                expected_revision=previous.revision,
            )
        created = self._store.add_estimate(estimate)
        logger.info(
            "Created estimate",
            extra={
                "estimate_id": created.id,
                "lead_id": lead_id,
                "version": created.version,
                "superseded": len(plan.supersede_ids),
            },
        )
        return created

    def update_estimate(self, estimate_id: str, **changes: Any) -> RecalculationResult:
        """Edit header fields; pricing inputs trigger a full recalculation."""
        unknown = set(changes) - EDITABLE_ESTIMATE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        snapshot = self._store.get_estimate(estimate_id)
        merged = {**snapshot.model_dump(), **changes}
        validate_percentages(merged["overhead_percent"], merged["profit_percent"], merged["tax_percent"])
        updated = Estimate.model_validate(merged)
        if _PRICING_FIELDS & set(changes):
            return self._commit(snapshot, updated)
        stored = self._store.save_estimate(updated, expected_revision=snapshot.revision)
        return RecalculationResult(estimate=stored, recalculated=0)

    def add_line_item(
        self,
        estimate_id: str,
        line_item_type_id: str,
        *,
        quantity: float | None = None,
        quantity_formula: str | None = None,
        slope: str | None = None,
        waste_factor: float | None = None,
        is_optional: bool = False,
        group_name: str | None = None,
        notes: str | None = None,
    ) -> RecalculationResult:
        """Add a catalog entry to the estimate and recalculate.

        An explicit ``quantity`` is kept as an override; otherwise the quantity
        comes from the given formula, the catalog formula, or the suggested
        formula for the entry's category, in that order.
        """
        entry = self._catalog.get(line_item_type_id)
        if entry is None or not entry.is_active:
            raise CatalogEntryMissing(line_item_type_id)
        snapshot = self._store.get_estimate(estimate_id)
        if quantity is not None:
            formula = quantity_formula
        else:
            formula = quantity_formula or entry.quantity_formula or suggested_formula(entry.category)
        item = EstimateLineItem(
            id=_new_item_id(),
            line_item_type_id=entry.id,
            item_code=entry.item_code,
            name=entry.name,
            category=entry.category,
            unit_type=entry.unit_type,
            quantity=quantity or 0.0,
            quantity_formula=formula,
            quantity_override=quantity is not None and not formula,
            slope=slope,
            waste_factor=waste_factor if waste_factor is not None else entry.default_waste_factor,
            is_optional=is_optional,
            sort_order=max((existing.sort_order for existing in snapshot.line_items), default=0) + 1,
            group_name=group_name,
            notes=notes,
        )
        updated = snapshot.model_copy(update={"line_items": [*snapshot.line_items, item]})
        return self._commit(snapshot, updated)

    def add_macro(self, estimate_id: str, macro: EstimateMacro) -> RecalculationResult:
        """Append every line item of a macro to the estimate."""
        snapshot = self._store.get_estimate(estimate_id)
        multipliers = resolve_multipliers(snapshot.geographic_pricing_id, self._geographic)
        application = apply_macro(macro, self._catalog, snapshot.variables, multipliers)
        offset = max((existing.sort_order for existing in snapshot.line_items), default=0)
        items = [
            item.model_copy(update={"sort_order": offset + item.sort_order})
            for item in application.line_items
        ]
        updated = snapshot.model_copy(update={"line_items": [*snapshot.line_items, *items]})
        result = self._commit(snapshot, updated)
        result.diagnostics = [*application.diagnostics, *result.diagnostics]
        return result

    def update_line_item(self, estimate_id: str, item_id: str, **changes: Any) -> RecalculationResult:
        """Edit one line item.

        Setting ``quantity`` pins it as an override (and drops the formula
        unless a new one is given); setting a formula clears the override.
        Setting any unit cost pins all three costs as an override.
        """
        unknown = set(changes) - EDITABLE_LINE_ITEM_FIELDS
        if unknown:
            raise ValueError(f"Line item fields cannot be edited: {', '.join(sorted(unknown))}")
        snapshot = self._store.get_estimate(estimate_id)
        item = snapshot.line_item(item_id)
        if item is None:
            raise LineItemNotFound(estimate_id, item_id)

        merged = {**item.model_dump(), **changes}
        if changes.get("quantity") is not None:
            merged["quantity_override"] = True
            merged["quantity_formula"] = changes.get("quantity_formula")
        elif changes.get("quantity_formula"):
            merged["quantity_override"] = False
        if _COST_FIELDS & {key for key, value in changes.items() if value is not None}:
            merged["cost_override"] = True
        edited = EstimateLineItem.model_validate(merged)

        items = [edited if existing.id == item_id else existing for existing in snapshot.line_items]
        return self._commit(snapshot, snapshot.model_copy(update={"line_items": items}))

    def remove_line_item(self, estimate_id: str, item_id: str) -> RecalculationResult:
        snapshot = self._store.get_estimate(estimate_id)
        if snapshot.line_item(item_id) is None:
            raise LineItemNotFound(estimate_id, item_id)
        items = [existing for existing in snapshot.line_items if existing.id != item_id]
        return self._commit(snapshot, snapshot.model_copy(update={"line_items": items}))

    def recalculate(self, estimate_id: str, *, max_attempts: int = 1) -> RecalculationResult:
        return self.recalculator.recalculate(estimate_id, max_attempts=max_attempts)

    def change_status(
        self, estimate_id: str, target: EstimateStatus, *, now: datetime | None = None
    ) -> Estimate:
        snapshot = self._store.get_estimate(estimate_id)
        updated = transition(snapshot, target, now=now)
        stored = self._store.save_estimate(updated, expected_revision=snapshot.revision)
        logger.info(
            "Estimate status changed",
            extra={"estimate_id": estimate_id, "from": snapshot.status.value, "to": target.value},
        )
        return stored

    def delete_estimate(self, estimate_id: str) -> None:
        ensure_deletable(self._store.get_estimate(estimate_id))
        self._store.delete_estimate(estimate_id)
        logger.info("Deleted estimate", extra={"estimate_id": estimate_id})

    def apply_adjustment(
        self,
        estimate_id: str,
        adjustment_type: AdjustmentType,
        value: float,
        *,
        description: str | None = None,
        reason: str | None = None,
    ) -> tuple[Estimate, PriceAdjustment]:
        snapshot = self._store.get_estimate(estimate_id)
        updated, adjustment = apply_adjustment(
            snapshot, adjustment_type, value, description=description, reason=reason
        )
        stored = self._store.save_estimate(updated, expected_revision=snapshot.revision)
        logger.info(
            "Applied price adjustment",
            extra={
                "estimate_id": estimate_id,
                "adjustment_type": adjustment_type.value,
                "new_price": adjustment.new_price,
            },
        )
        return stored, adjustment

    def remove_adjustment(self, estimate_id: str, adjustment_id: str) -> tuple[Estimate, PriceAdjustment]:
        """Undo one adjustment; the remaining ones are replayed from the likely price."""
        snapshot = self._store.get_estimate(estimate_id)
        updated, removed = remove_adjustment(snapshot, adjustment_id)
        stored = self._store.save_estimate(updated, expected_revision=snapshot.revision)
        logger.info(
            "Removed price adjustment",
            extra={
                "estimate_id": estimate_id,
                "adjustment_id": adjustment_id,
                "new_price": stored.adjusted_price,
            },
        )
        return stored, removed

    def rebase_adjustments(self, estimate_id: str) -> Estimate:
        """Replay every adjustment against the current likely price."""
        snapshot = self._store.get_estimate(estimate_id)
        return self._store.save_estimate(replay_adjustments(snapshot), expected_revision=snapshot.revision)

    def expire_due(self, lead_id: str, *, now: datetime | None = None) -> list[Estimate]:
        """Expire the lead's estimates whose ``valid_until`` has passed."""
        snapshots = {estimate.id: estimate for estimate in self._store.list_estimates(lead_id)}
        expired = []
        for estimate in expire_due(list(snapshots.values()), now=now):
            expired.append(
                self._store.save_estimate(estimate, expected_revision=snapshots[estimate.id].revision)
            )
        return expired

    def _commit(self, snapshot: Estimate, updated: Estimate) -> RecalculationResult:
        result = self.recalculator.compute(updated)
        result.estimate = self._store.save_estimate(result.estimate, expected_revision=snapshot.revision)
        return result


def clone_line_items(items: Sequence[EstimateLineItem]) -> list[EstimateLineItem]:
    """Copies of ``items`` with fresh ids, for starting a new version from an old one."""
    return [item.model_copy(update={"id": _new_item_id()}) for item in items]


__all__ = [
    "EDITABLE_ESTIMATE_FIELDS",
    "EDITABLE_LINE_ITEM_FIELDS",
    "EstimateService",
    "clone_line_items",
]
