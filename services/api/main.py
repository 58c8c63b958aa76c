from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from roof_estimate_engine.catalog import LocalCatalog
from roof_estimate_engine.config import load_settings
from roof_estimate_engine.dictionaries import (
    COMMON_FORMULAS,
    DEFAULT_OVERHEAD_PERCENT,
    DEFAULT_PROFIT_PERCENT,
    DEFAULT_TAX_PERCENT,
)
from roof_estimate_engine.errors import (
    AdjustmentNotFound,
    CatalogEntryMissing,
    EstimateNotDeletable,
    EstimateNotFound,
    EstimationError,
    FormulaError,
    InvalidStatusTransition,
    LineItemNotFound,
    RevisionConflict,
)
from roof_estimate_engine.estimate_service import EstimateService
from roof_estimate_engine.estimate_store import InMemoryEstimateStore
from roof_estimate_engine.firestore_estimate_store import FirestoreEstimateStore
from roof_estimate_engine.formula import evaluate, validate_formula
from roof_estimate_engine.geographic import InMemoryGeographicPricing
from roof_estimate_engine.logging_config import setup_logging
from roof_estimate_engine.measurements import validate_variables, variables_from_dimensions, variables_from_intake
from roof_estimate_engine.models.adjustment import AdjustmentType, PriceAdjustment
from roof_estimate_engine.models.catalog import CatalogLineItem
from roof_estimate_engine.models.diagnostics import Diagnostic
from roof_estimate_engine.models.estimate import Estimate, EstimateStatus
from roof_estimate_engine.models.macro import EstimateMacro
from roof_estimate_engine.models.variables import RoofVariables
from roof_estimate_engine.pricing_tiers import PricingTiers, calculate_pricing_tiers
from roof_estimate_engine.recalculation import RecalculationResult
from roof_estimate_engine.summary import render_summary_markdown, summarize


class CreateEstimateRequest(BaseModel):
    name: str | None = None
    variables: RoofVariables | None = None
    geographic_pricing_id: str | None = None
    overhead_percent: float = DEFAULT_OVERHEAD_PERCENT
    profit_percent: float = DEFAULT_PROFIT_PERCENT
    tax_percent: float = DEFAULT_TAX_PERCENT
    internal_notes: str | None = None
    customer_notes: str | None = None
    valid_until: datetime | None = None
    copy_from_id: str | None = Field(default=None, description="Start from this estimate's line items")


class UpdateEstimateRequest(BaseModel):
    name: str | None = None
    variables: RoofVariables | None = None
    geographic_pricing_id: str | None = None
    overhead_percent: float | None = None
    profit_percent: float | None = None
    tax_percent: float | None = None
    internal_notes: str | None = None
    customer_notes: str | None = None
    valid_until: datetime | None = None
    status: EstimateStatus | None = None


class AddLineItemRequest(BaseModel):
    line_item_type_id: str
    quantity: float | None = Field(default=None, ge=0)
    quantity_formula: str | None = None
    slope: str | None = None
    waste_factor: float | None = None
    is_optional: bool = False
    group_name: str | None = None
    notes: str | None = None


class UpdateLineItemRequest(BaseModel):
    quantity: float | None = Field(default=None, ge=0)
    quantity_formula: str | None = None
    slope: str | None = None
    waste_factor: float | None = None
    material_unit_cost: float | None = Field(default=None, ge=0)
    labor_unit_cost: float | None = Field(default=None, ge=0)
    equipment_unit_cost: float | None = Field(default=None, ge=0)
    is_included: bool | None = None
    is_optional: bool | None = None
    sort_order: int | None = None
    group_name: str | None = None
    notes: str | None = None


class AdjustmentRequest(BaseModel):
    adjustment_type: AdjustmentType
    value: float
    description: str | None = None
    reason: str | None = None


class AdjustmentResponse(BaseModel):
    estimate: Estimate
    adjustment: PriceAdjustment


class RecalculationResponse(BaseModel):
    estimate: Estimate
    diagnostics: list[Diagnostic]
    recalculated: int

    @staticmethod
    def from_result(result: RecalculationResult) -> "RecalculationResponse":
        return RecalculationResponse(
            estimate=result.estimate,
            diagnostics=list(result.diagnostics),
            recalculated=result.recalculated,
        )


class ValidateFormulaRequest(BaseModel):
    formula: str
    variables: RoofVariables | None = Field(default=None, description="Evaluate against these when given")
    slope: str | None = None


class ValidateFormulaResponse(BaseModel):
    valid: bool
    required_variables: list[str]
    error: str | None = None
    position: int | None = None
    value: float | None = None


class DimensionsRequest(BaseModel):
    length_ft: float = Field(gt=0)
    width_ft: float = Field(gt=0)
    pitch: float = Field(ge=0, description="Rise per 12 in of run")
    skylights: int = Field(default=0, ge=0)
    chimneys: int = Field(default=0, ge=0)
    pipe_boots: int = Field(default=2, ge=0)
    vents: int = Field(default=0, ge=0)
    gutter_lf: float | None = Field(default=None, ge=0)
    downspouts: int = Field(default=2, ge=0)


class IntakeRequest(BaseModel):
    roof_size_sqft: float | None = Field(default=None, gt=0)
    roof_pitch: str | None = None
    stories: int | None = Field(default=None, ge=1)
    has_skylights: bool = False
    has_chimneys: bool = False


class VariablesResponse(BaseModel):
    variables: RoofVariables
    warnings: list[str]

    @staticmethod
    def for_variables(variables: RoofVariables) -> "VariablesResponse":
        return VariablesResponse(variables=variables, warnings=validate_variables(variables).warnings)


class SummaryResponse(BaseModel):
    total_cost: float
    cost_per_square: float
    material_percentage: int
    labor_percentage: int
    included_items: int
    optional_items: int
    markdown: str


# Environment configuration
settings = load_settings()

# Setup logging
setup_logging(environment=settings.environment, project_id=settings.project_id)

app = FastAPI(title="Roof Estimate Engine API", version="0.1.0")

# Use Firestore in production, in-memory for dev
if settings.environment == "dev":
    estimate_store = InMemoryEstimateStore()
else:
    estimate_store = FirestoreEstimateStore(project_id=settings.project_id)

catalog = LocalCatalog(path=settings.catalog_path.resolve())
geographic = (
    InMemoryGeographicPricing.from_file(settings.geographic_pricing_path.resolve())
    if settings.geographic_pricing_path
    else None
)
service = EstimateService(
    store=estimate_store,
    catalog=catalog,
    geographic=geographic,
    policy=settings.versioning_policy,
    band=settings.band,
    max_line_items=settings.max_line_items,
)

_ERROR_STATUS: list[tuple[type[EstimationError], int]] = [
    (EstimateNotFound, 404),
    (LineItemNotFound, 404),
    (AdjustmentNotFound, 404),
    (CatalogEntryMissing, 422),
    (InvalidStatusTransition, 409),
    (EstimateNotDeletable, 409),
    (RevisionConflict, 409),
]


@app.exception_handler(EstimationError)
async def estimation_error_handler(request: Request, exc: EstimationError) -> JSONResponse:
    status_code = next((code for kind, code in _ERROR_STATUS if isinstance(exc, kind)), 400)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.post("/v1/leads/{lead_id}/estimates", response_model=Estimate, status_code=201)
async def create_estimate(lead_id: str, request: CreateEstimateRequest) -> Estimate:
    return service.create_estimate(lead_id, **request.model_dump())


@app.get("/v1/leads/{lead_id}/estimates", response_model=list[Estimate])
async def list_estimates(lead_id: str) -> list[Estimate]:
    return service.list_estimates(lead_id)


@app.post("/v1/leads/{lead_id}/estimates:expire", response_model=list[Estimate])
async def expire_estimates(lead_id: str) -> list[Estimate]:
    return service.expire_due(lead_id)


@app.get("/v1/estimates/{estimate_id}", response_model=Estimate)
async def get_estimate(estimate_id: str) -> Estimate:
    return service.get_estimate(estimate_id)


@app.patch("/v1/estimates/{estimate_id}", response_model=RecalculationResponse)
async def update_estimate(estimate_id: str, request: UpdateEstimateRequest) -> RecalculationResponse:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    status = changes.pop("status", None)
    result = None
    if changes:
        try:
            result = service.update_estimate(estimate_id, **changes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    if status is not None:
        estimate = service.change_status(estimate_id, status)
        if result is None:
            return RecalculationResponse(estimate=estimate, diagnostics=[], recalculated=0)
        result.estimate = estimate
    if result is None:
        raise HTTPException(status_code=400, detail="No changes given")
    return RecalculationResponse.from_result(result)


@app.delete("/v1/estimates/{estimate_id}", status_code=204)
async def delete_estimate(estimate_id: str) -> None:
    service.delete_estimate(estimate_id)


@app.post("/v1/estimates/{estimate_id}/line-items", response_model=RecalculationResponse, status_code=201)
async def add_line_item(estimate_id: str, request: AddLineItemRequest) -> RecalculationResponse:
    fields = request.model_dump()
    line_item_type_id = fields.pop("line_item_type_id")
    try:
        result = service.add_line_item(estimate_id, line_item_type_id, **fields)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RecalculationResponse.from_result(result)


@app.patch("/v1/estimates/{estimate_id}/line-items/{item_id}", response_model=RecalculationResponse)
async def update_line_item(
    estimate_id: str, item_id: str, request: UpdateLineItemRequest
) -> RecalculationResponse:
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes given")
    try:
        result = service.update_line_item(estimate_id, item_id, **changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RecalculationResponse.from_result(result)


@app.delete("/v1/estimates/{estimate_id}/line-items/{item_id}", response_model=RecalculationResponse)
async def remove_line_item(estimate_id: str, item_id: str) -> RecalculationResponse:
    return RecalculationResponse.from_result(service.remove_line_item(estimate_id, item_id))


@app.post("/v1/estimates/{estimate_id}/macros", response_model=RecalculationResponse)
async def add_macro(estimate_id: str, macro: EstimateMacro) -> RecalculationResponse:
    try:
        result = service.add_macro(estimate_id, macro)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RecalculationResponse.from_result(result)


@app.post("/v1/estimates/{estimate_id}:recalculate", response_model=RecalculationResponse)
async def recalculate_estimate(estimate_id: str) -> RecalculationResponse:
    try:
        result = service.recalculate(estimate_id, max_attempts=settings.recalculation_max_attempts)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RecalculationResponse.from_result(result)


@app.post("/v1/estimates/{estimate_id}/adjustments", response_model=AdjustmentResponse, status_code=201)
async def add_adjustment(estimate_id: str, request: AdjustmentRequest) -> AdjustmentResponse:
    estimate, adjustment = service.apply_adjustment(
        estimate_id,
        request.adjustment_type,
        request.value,
        description=request.description,
        reason=request.reason,
    )
    return AdjustmentResponse(estimate=estimate, adjustment=adjustment)


@app.delete("/v1/estimates/{estimate_id}/adjustments/{adjustment_id}", response_model=AdjustmentResponse)
async def remove_adjustment(estimate_id: str, adjustment_id: str) -> AdjustmentResponse:
    estimate, adjustment = service.remove_adjustment(estimate_id, adjustment_id)
    return AdjustmentResponse(estimate=estimate, adjustment=adjustment)


@app.post("/v1/estimates/{estimate_id}/adjustments:rebase", response_model=Estimate)
async def rebase_adjustments(estimate_id: str) -> Estimate:
    return service.rebase_adjustments(estimate_id)


@app.get("/v1/estimates/{estimate_id}/tiers", response_model=PricingTiers)
async def get_pricing_tiers(
    estimate_id: str, material: str | None = None, recommended: str = "better"
) -> PricingTiers:
    estimate = service.get_estimate(estimate_id)
    try:
        return calculate_pricing_tiers(estimate.totals, material, recommended)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/v1/estimates/{estimate_id}/summary", response_model=SummaryResponse)
async def get_summary(estimate_id: str) -> SummaryResponse:
    estimate = service.get_estimate(estimate_id)
    summary = summarize(estimate)
    return SummaryResponse(
        total_cost=summary.total_cost,
        cost_per_square=summary.cost_per_square,
        material_percentage=summary.material_percentage,
        labor_percentage=summary.labor_percentage,
        included_items=summary.included_items,
        optional_items=summary.optional_items,
        markdown=render_summary_markdown(estimate),
    )


@app.get("/v1/catalog/line-items", response_model=list[CatalogLineItem])
async def list_catalog(category: str | None = None) -> list[CatalogLineItem]:
    items = catalog.by_category(category) if category else catalog.all()
    return [item for item in items if item.is_active]


@app.post("/v1/measurements:dimensions", response_model=VariablesResponse)
async def variables_for_dimensions(request: DimensionsRequest) -> VariablesResponse:
    return VariablesResponse.for_variables(variables_from_dimensions(**request.model_dump()))


@app.post("/v1/measurements:intake", response_model=VariablesResponse)
async def variables_for_intake(request: IntakeRequest) -> VariablesResponse:
    return VariablesResponse.for_variables(variables_from_intake(**request.model_dump()))


@app.get("/v1/formulas", response_model=dict[str, str])
async def list_common_formulas() -> dict[str, str]:
    return dict(COMMON_FORMULAS)


@app.post("/v1/formulas:validate", response_model=ValidateFormulaResponse)
async def validate_formula_endpoint(request: ValidateFormulaRequest) -> ValidateFormulaResponse:
    known = request.variables.known_variables() if request.variables else None
    validation = validate_formula(request.formula, known)
    response = ValidateFormulaResponse(
        valid=validation.valid,
        required_variables=validation.required_variables,
        error=validation.error,
        position=validation.position,
    )
    if validation.valid and request.variables is not None and request.formula.strip():
        try:
            response.value = evaluate(request.formula, request.variables.bindings(request.slope))
        except FormulaError as exc:
            response.valid = False
            response.error = str(exc)
            response.position = exc.position
    return response


@app.get("/health")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok"})
