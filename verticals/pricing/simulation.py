"""Simulate-then-apply workflow for rule-based price updates.

1. run_simulation: evaluate every product against the ordered rules and keep
   the resulting preview. Read-only with respect to the catalog.
2. apply_changes: after explicit confirmation, push each changed price to the
   catalog one item at a time. Best effort: a failed item is recorded and
   the batch continues. No retry, no rollback.

Per-item failures never raise out of apply_changes; the caller gets an
ApplyReport with the success count and the failures.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from core.errors import InvalidInput, NoRulesConfigured
from patterns.domain_config import PricingConfig
from patterns.rule_store import RuleStore
from patterns.workflow_states import SimulationState, WorkflowInstance
from verticals.pricing.erp_adapter import CatalogProvider
from verticals.pricing.rules import PriceRule, ProductSnapshot, evaluate_product

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[int], "bool | Awaitable[bool]"]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class ResultStatus(str, Enum):
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class SimulationResult:
    """One product's line in the preview."""

    product: ProductSnapshot
    old_price: Decimal
    new_price: Decimal
    matched_rule_name: str | None
    status: ResultStatus
    reason: str = ""

    @property
    def changed(self) -> bool:
        return self.status == ResultStatus.CHANGED

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product.id,
            "product_name": self.product.name,
            "group_name": self.product.group_name,
            "stock": self.product.stock,
            "old_price": str(self.old_price),
            "new_price": str(self.new_price),
            "matched_rule_name": self.matched_rule_name,
            "status": self.status.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ApplyFailure:
    product_id: str
    reason: str


@dataclass
class ApplyReport:
    """Aggregate outcome of an apply run."""

    succeeded: int = 0
    total: int = 0
    failures: list[ApplyFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def all_succeeded(self) -> bool:
        return not self.cancelled and self.succeeded == self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "total": self.total,
            "failed": len(self.failures),
            "failures": [{"product_id": f.product_id, "reason": f.reason} for f in self.failures],
            "cancelled": self.cancelled,
            "all_succeeded": self.all_succeeded,
        }


def summarize(results: Sequence[SimulationResult]) -> dict[str, int]:
    changed = sum(1 for r in results if r.changed)
    return {"total": len(results), "changed": changed, "unchanged": len(results) - changed}


def simulate_product(
    product: ProductSnapshot,
    rules: Sequence[PriceRule],
    config: PricingConfig | None = None,
) -> SimulationResult:
    """Evaluate one product; malformed data is flagged instead of raised."""
    policy = (config or PricingConfig()).rule_rounding
    try:
        outcome = evaluate_product(product, rules, policy)
    except InvalidInput as exc:
        logger.warning("Skipping product id=%s: %s", product.id, exc)
        return SimulationResult(
            product=product,
            old_price=product.current_price,
            new_price=product.current_price,
            matched_rule_name=None,
            status=ResultStatus.UNCHANGED,
            reason=f"invalid input: {exc}",
        )
    return SimulationResult(
        product=product,
        old_price=product.current_price,
        new_price=outcome.new_price,
        matched_rule_name=outcome.matched_rule_name,
        status=ResultStatus.CHANGED if outcome.changed else ResultStatus.UNCHANGED,
        reason=outcome.reason,
    )


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class PriceUpdateWorkflow:
    """Drives idle -> simulating -> preview_ready -> applying -> idle.

    Usage::

        workflow = PriceUpdateWorkflow(catalog)
        preview = await workflow.simulate(store)
        report = await workflow.apply_changes(confirm=lambda n: ask_user(n))
    """

    def __init__(
        self,
        catalog: CatalogProvider,
        config: PricingConfig | None = None,
        workflow_id: str = "default",
    ):
        self.catalog = catalog
        self.config = config or PricingConfig()
        self.state = WorkflowInstance(workflow_id=workflow_id)
        self.preview: list[SimulationResult] = []
        self._cancel_requested = False

    @property
    def current_state(self) -> SimulationState:
        return self.state.current_state

    # -- Simulation --

    async def simulate(self, rule_store: RuleStore) -> list[SimulationResult]:
        """Fetch the full catalog once, then run the store's rules over it."""
        rules = rule_store.list()
        if not rules:
            raise NoRulesConfigured()
        self._require_transition(SimulationState.SIMULATING)
        products = await self.catalog.fetch_products()
        return await self.run_simulation(products, rules)

    async def run_simulation(
        self,
        products: Sequence[ProductSnapshot],
        rules: Sequence[PriceRule],
    ) -> list[SimulationResult]:
        """Evaluate every product. Raises NoRulesConfigured before any work."""
        if not rules:
            raise NoRulesConfigured()

        self.state.transition(SimulationState.SIMULATING, metadata={"products": len(products)})
        try:
            results: list[SimulationResult] = []
            chunk = max(self.config.evaluation_chunk_size, 1)
            for start in range(0, len(products), chunk):
                if start:
                    await asyncio.sleep(0)  # let other tasks run between slices
                results.extend(
                    simulate_product(p, rules, self.config) for p in products[start:start + chunk]
                )
        except BaseException:
            self.preview = []
            self.state.transition(SimulationState.IDLE, metadata={"error": True})
            raise

        self.preview = results
        summary = summarize(results)
        self.state.transition(SimulationState.PREVIEW_READY, metadata=summary)
        logger.info(
            "Simulation finished: %d products, %d changed, %d unchanged",
            summary["total"], summary["changed"], summary["unchanged"],
        )
        return results

    def discard_preview(self) -> None:
        """Abandon the preview and go back to rule editing.

        Only a ready preview can be discarded; a running simulation or apply
        owns the state until it finishes.
        """
        if self.current_state == SimulationState.IDLE:
            self.preview = []
            return
        if self.current_state != SimulationState.PREVIEW_READY:
            raise ValueError(f"Cannot discard the preview while {self.current_state.value}")
        self.state.transition(SimulationState.IDLE, metadata={"discarded": len(self.preview)})
        self.preview = []

    # -- Apply --

    def cancel(self) -> None:
        """Stop issuing price updates; changes already applied stay applied."""
        if self.current_state == SimulationState.APPLYING:
            self._cancel_requested = True

    async def apply_changes(
        self,
        results: Sequence[SimulationResult] | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> ApplyReport:
        """Commit every `changed` result after confirmation.

        `results` defaults to the current preview. `confirm(count)` is the
        manual gate (sync or async); without it nothing is applied.
        """
        source = self.preview if results is None else list(results)
        changed = [r for r in source if r.changed]
        if not changed:
            return ApplyReport()

        self.state.transition(SimulationState.APPLYING, metadata={"changed": len(changed)})
        try:
            confirmed = await _ask(confirm, len(changed))
        except BaseException:
            self._back_to_preview_or_idle()
            raise
        if not confirmed:
            logger.info("Apply of %d price changes declined", len(changed))
            self._back_to_preview_or_idle()
            return ApplyReport(succeeded=0, total=len(changed), cancelled=True)

        self._cancel_requested = False
        report = ApplyReport(total=len(changed))
        try:
            if self.config.apply_concurrency > 1:
                await self._apply_bounded(changed, report)
            else:
                for item in changed:
                    if self._cancel_requested:
                        report.cancelled = True
                        break
                    await self._apply_one(item, report)
        finally:
            self._cancel_requested = False
            self.preview = []
            self.state.transition(SimulationState.IDLE, metadata=report.to_dict())

        logger.info(
            "Applied price changes: %d/%d succeeded, %d failed%s",
            report.succeeded, report.total, len(report.failures),
            " (cancelled)" if report.cancelled else "",
        )
        return report

    async def _apply_one(self, item: SimulationResult, report: ApplyReport) -> None:
        try:
            await self.catalog.update_product_price(item.product.id, item.new_price)
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__
            logger.warning("Price update failed for product id=%s: %s", item.product.id, reason)
            report.failures.append(ApplyFailure(product_id=item.product.id, reason=reason))
            return
        report.succeeded += 1

    async def _apply_bounded(self, changed: list[SimulationResult], report: ApplyReport) -> None:
        semaphore = asyncio.Semaphore(self.config.apply_concurrency)

        async def worker(item: SimulationResult) -> None:
            async with semaphore:
                if self._cancel_requested:
                    report.cancelled = True
                    return
                await self._apply_one(item, report)

        await asyncio.gather(*(worker(item) for item in changed))

    def _require_transition(self, target: SimulationState) -> None:
        if not self.state.can_transition(target):
            raise ValueError(
                f"Cannot transition from {self.current_state.value} to {target.value}"
            )

    def _back_to_preview_or_idle(self) -> None:
        target = SimulationState.PREVIEW_READY if self.preview else SimulationState.IDLE
        self.state.transition(target, metadata={"declined": True})


async def _ask(confirm: ConfirmCallback | None, count: int) -> bool:
    if confirm is None:
        return False
    answer = confirm(count)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)
