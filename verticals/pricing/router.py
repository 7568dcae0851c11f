"""Pricing API router: rule CRUD, simulate, apply, resale table.

Standard router pattern:
- Rule CRUD + reorder over the tenant's RuleStore
- Simulation preview held per tenant until applied or discarded
- Apply only with an explicit {"confirm": true}
- Tenant isolation via middleware
- Services injected via FastAPI Depends
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from api.middleware import get_current_tenant
from core.engine.template_engine import TemplateEngine
from core.errors import ConfirmationRequired, NotFound
from patterns.workflow_states import SimulationState
from verticals.pricing.models.schemas import (
    ApplyRequest,
    ApplyResponse,
    ReorderRequest,
    ResaleResponse,
    RuleCreate,
    RuleResponse,
    RuleUpdate,
    SimulationResponse,
)
from verticals.pricing.resale import build_resale_table, list_groups
from verticals.pricing.service import PricingService, get_pricing_service
from verticals.pricing.simulation import PriceUpdateWorkflow, summarize

router = APIRouter()


def _simulation_payload(workflow: PriceUpdateWorkflow) -> dict:
    return {
        "state": workflow.current_state.value,
        "summary": summarize(workflow.preview),
        "results": [r.to_dict() for r in workflow.preview],
    }


def _render_options(service: PricingService) -> dict:
    return {"currency": service.config.pricing.currency_symbol}


# ============================================================================
# Rule Endpoints
# ============================================================================

@router.get("/rules", response_model=list[RuleResponse])
async def list_rules(
    active: Optional[bool] = None,
    service: PricingService = Depends(get_pricing_service),
):
    """All rules in evaluation order (optionally only active/inactive)."""
    store = await service.rule_store(get_current_tenant())
    rules = store.list()
    if active is not None:
        rules = tuple(r for r in rules if r.active == active)
    return [r.to_dict() for r in rules]


@router.post("/rules", status_code=201, response_model=RuleResponse)
async def create_rule(
    request: RuleCreate,
    service: PricingService = Depends(get_pricing_service),
):
    """Append a rule; the id is assigned by the store."""
    store = await service.rule_store(get_current_tenant())
    rule = await store.create(**request.model_dump())
    return rule.to_dict()


@router.get("/rules/{rule_id}", response_model=RuleResponse)
async def get_rule(
    rule_id: str,
    service: PricingService = Depends(get_pricing_service),
):
    store = await service.rule_store(get_current_tenant())
    return store.get(rule_id).to_dict()


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: str,
    request: RuleUpdate,
    service: PricingService = Depends(get_pricing_service),
):
    """Partial update; the rule keeps its position."""
    store = await service.rule_store(get_current_tenant())
    rule = await store.update(rule_id, request.model_dump(exclude_unset=True))
    return rule.to_dict()


@router.delete("/rules/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: str,
    service: PricingService = Depends(get_pricing_service),
):
    store = await service.rule_store(get_current_tenant())
    await store.remove(rule_id)


@router.post("/rules/reorder", response_model=list[RuleResponse])
async def reorder_rules(
    request: ReorderRequest,
    service: PricingService = Depends(get_pricing_service),
):
    """Move the rule at from_index to to_index."""
    store = await service.rule_store(get_current_tenant())
    rules = await store.reorder(request.from_index, request.to_index)
    return [r.to_dict() for r in rules]


# ============================================================================
# Simulation Endpoints
# ============================================================================

@router.post("/simulations", response_model=SimulationResponse)
async def run_simulation(service: PricingService = Depends(get_pricing_service)):
    """Fetch the catalog and evaluate every product against the rules."""
    tenant_id = get_current_tenant()
    store = await service.rule_store(tenant_id)
    workflow = service.workflow(tenant_id)
    await workflow.simulate(store)
    return _simulation_payload(workflow)


@router.get("/simulations/current", response_model=SimulationResponse)
async def get_simulation(
    format: str = Query("json", pattern="^(json|markdown)$"),
    service: PricingService = Depends(get_pricing_service),
):
    """Current preview, as JSON or as a markdown table."""
    workflow = service.workflow(get_current_tenant())
    if workflow.current_state != SimulationState.PREVIEW_READY:
        raise NotFound("No simulation preview; run a simulation first")
    payload = _simulation_payload(workflow)
    if format == "markdown":
        return PlainTextResponse(
            TemplateEngine.render("simulation", payload, "pricing", _render_options(service)),
            media_type="text/markdown",
        )
    return payload


@router.delete("/simulations/current", status_code=204)
async def discard_simulation(service: PricingService = Depends(get_pricing_service)):
    """Drop the preview and go back to rule editing; 409 while a run is in progress."""
    service.workflow(get_current_tenant()).discard_preview()


@router.post("/simulations/current/apply", response_model=ApplyResponse)
async def apply_simulation(
    request: ApplyRequest,
    service: PricingService = Depends(get_pricing_service),
):
    """Push every changed price to the ERP. Irreversible; needs confirm=true."""
    if not request.confirm:
        raise ConfirmationRequired("Applying price changes requires {\"confirm\": true}")
    workflow = service.workflow(get_current_tenant())
    report = await workflow.apply_changes(confirm=lambda count: request.confirm)
    return report.to_dict()


@router.post("/simulations/current/cancel", status_code=202)
async def cancel_apply(service: PricingService = Depends(get_pricing_service)):
    """Stop a running apply after the in-flight item; nothing is rolled back."""
    workflow = service.workflow(get_current_tenant())
    workflow.cancel()
    return {"state": workflow.current_state.value}


# ============================================================================
# Catalog Endpoints
# ============================================================================

@router.get("/resale", response_model=ResaleResponse)
async def resale_table(
    markup: Optional[Decimal] = None,
    group: Optional[str] = None,
    format: str = Query("json", pattern="^(json|markdown)$"),
    service: PricingService = Depends(get_pricing_service),
):
    """Catalog prices plus markup, rounded up to the resale increment."""
    markup_pct = service.config.pricing.default_markup_pct if markup is None else markup
    products = await service.catalog(get_current_tenant()).fetch_products()
    rows = build_resale_table(products, markup_pct, group, service.config.pricing.resale_rounding)
    payload = {"data": rows, "count": len(rows), "markup_pct": markup_pct, "group": group}
    if format == "markdown":
        return PlainTextResponse(
            TemplateEngine.render("resale", payload, "pricing", _render_options(service)),
            media_type="text/markdown",
        )
    return payload


@router.get("/groups")
async def get_groups(service: PricingService = Depends(get_pricing_service)):
    """Product group names present in the catalog."""
    products = await service.catalog(get_current_tenant()).fetch_products()
    groups = list_groups(products)
    return {"data": groups, "count": len(groups)}
