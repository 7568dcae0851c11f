"""Pydantic schemas for API request/response validation."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from patterns.rules_engine import Condition


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class RuleCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=200)
    product_type: str = Field(..., min_length=1, max_length=200)
    reference_price: Decimal = Field(..., ge=0)
    condition: Condition
    adjustment_percentage: Decimal
    exception_quantity: int = Field(0, ge=0)
    active: bool = True


class RuleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=200)
    product_type: Optional[str] = Field(None, min_length=1, max_length=200)
    reference_price: Optional[Decimal] = Field(None, ge=0)
    condition: Optional[Condition] = None
    adjustment_percentage: Optional[Decimal] = None
    exception_quantity: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class ApplyRequest(BaseModel):
    confirm: bool = False


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class RuleResponse(BaseModel):
    id: str
    name: str
    product_type: str
    reference_price: Decimal
    condition: Condition
    adjustment_percentage: Decimal
    exception_quantity: int
    active: bool


class SimulationSummary(BaseModel):
    total: int
    changed: int
    unchanged: int


class SimulationResultResponse(BaseModel):
    product_id: str
    product_name: str
    group_name: str
    stock: int
    old_price: str
    new_price: str
    matched_rule_name: Optional[str] = None
    status: str
    reason: str = ""


class SimulationResponse(BaseModel):
    state: str
    summary: SimulationSummary
    results: list[SimulationResultResponse]


class ApplyFailureResponse(BaseModel):
    product_id: str
    reason: str


class ApplyResponse(BaseModel):
    succeeded: int
    total: int
    failed: int = 0
    failures: list[ApplyFailureResponse] = []
    cancelled: bool = False
    all_succeeded: bool = True


class ResaleRow(BaseModel):
    id: str
    name: str
    group_name: str
    base_price: Decimal
    markup_pct: Decimal
    resale_price: Decimal


class ResaleResponse(BaseModel):
    data: list[ResaleRow]
    count: int
    markup_pct: Decimal
    group: Optional[str] = None
