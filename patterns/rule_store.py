"""Ordered, persisted rule collection.

RuleStore owns the in-memory ordered list and delegates durability to an
injected RuleStorage (load/save of the whole collection). Every mutation:

1. builds the new list,
2. awaits storage.save(new_list),
3. only then swaps it in.

A failed save therefore leaves the store exactly as it was and the error
propagates to the caller.

Example::

    store = RuleStore(JsonFileRuleStorage(path))
    await store.load()
    rule = await store.create(product_type="Frontal", reference_price="100",
                              condition=">", adjustment_percentage="10")
    await store.set_active(rule.id, False)
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import uuid
from typing import Any, Protocol, Sequence

from core.errors import DuplicateId, IndexOutOfRange, InvalidInput, NotFound
from patterns.rules_engine import RULE_FIELDS, PriceRule, default_rule_name

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = ("id",)


# ---------------------------------------------------------------------------
# Storage port
# ---------------------------------------------------------------------------

class RuleStorage(Protocol):
    """Durable backing for a rule collection. Saves are full replacements."""

    async def load(self) -> list[PriceRule]: ...

    async def save(self, rules: Sequence[PriceRule]) -> None: ...


class InMemoryRuleStorage:
    """Process-local storage, used for tests and ephemeral tenants."""

    def __init__(self, rules: Sequence[PriceRule] | None = None):
        self._rules: list[PriceRule] = list(rules or [])
        self.save_count = 0

    async def load(self) -> list[PriceRule]:
        return list(self._rules)

    async def save(self, rules: Sequence[PriceRule]) -> None:
        self._rules = list(rules)
        self.save_count += 1


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class RuleStore:
    """CRUD + reorder over an ordered rule list with synchronous persistence."""

    def __init__(self, storage: RuleStorage):
        self.storage = storage
        self._rules: list[PriceRule] = []
        self._lock = asyncio.Lock()

    async def load(self) -> tuple[PriceRule, ...]:
        """(Re)read the persisted collection."""
        async with self._lock:
            rules = await self.storage.load()
            ids = [r.id for r in rules]
            if len(ids) != len(set(ids)):
                raise DuplicateId("Persisted rule collection contains duplicate ids")
            self._rules = list(rules)
            logger.debug("Loaded %d price rules", len(self._rules))
            return tuple(self._rules)

    # -- Reads --

    def list(self) -> tuple[PriceRule, ...]:
        """All rules (active and inactive) in evaluation order."""
        return tuple(self._rules)

    def active_rules(self) -> tuple[PriceRule, ...]:
        return tuple(r for r in self._rules if r.active)

    def get(self, rule_id: str) -> PriceRule:
        return self._rules[self._index_of(rule_id)]

    def __len__(self) -> int:
        return len(self._rules)

    # -- Mutations --

    async def add(self, rule: PriceRule) -> PriceRule:
        """Append a rule. Raises DuplicateId if the id is already stored."""
        async with self._lock:
            if any(r.id == rule.id for r in self._rules):
                raise DuplicateId(f"Rule {rule.id} already exists", details={"id": rule.id})
            await self._commit([*self._rules, rule])
            logger.info("Added price rule id=%s name=%r", rule.id, rule.name)
            return rule

    async def create(self, *, name: str | None = None, active: bool = True, **fields: Any) -> PriceRule:
        """Build a rule with a fresh id (and derived name if none) and add it."""
        if "id" in fields:
            raise InvalidInput("Rule ids are assigned by the store")
        try:
            label = name or default_rule_name(
                fields["product_type"], fields["condition"], fields["reference_price"]
            )
        except KeyError as exc:
            raise InvalidInput(f"Missing rule field: {exc.args[0]}") from exc
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc
        try:
            rule = PriceRule(id=str(uuid.uuid4()), name=label, active=active, **fields)
        except TypeError as exc:
            raise InvalidInput(str(exc)) from exc
        return await self.add(rule)

    async def update(self, rule_id: str, changes: dict[str, Any]) -> PriceRule:
        """Merge `changes` into the rule, keeping its position."""
        unknown = set(changes) - set(RULE_FIELDS)
        if unknown:
            raise InvalidInput(f"Unknown rule fields: {sorted(unknown)}")
        if any(f in changes and changes[f] != rule_id for f in _IMMUTABLE_FIELDS):
            raise InvalidInput("Rule id cannot be changed")

        async with self._lock:
            idx = self._index_of(rule_id)
            updated = dataclasses.replace(self._rules[idx], **changes)
            new_rules = list(self._rules)
            new_rules[idx] = updated
            await self._commit(new_rules)
            logger.info("Updated price rule id=%s fields=%s", rule_id, sorted(changes))
            return updated

    async def set_active(self, rule_id: str, active: bool) -> PriceRule:
        return await self.update(rule_id, {"active": active})

    async def remove(self, rule_id: str) -> PriceRule:
        """Delete a rule. Raises NotFound if absent."""
        async with self._lock:
            idx = self._index_of(rule_id)
            removed = self._rules[idx]
            await self._commit(self._rules[:idx] + self._rules[idx + 1:])
            logger.info("Removed price rule id=%s", rule_id)
            return removed

    async def reorder(self, from_index: int, to_index: int) -> tuple[PriceRule, ...]:
        """Move the rule at `from_index` to `to_index`, shifting the others."""
        async with self._lock:
            size = len(self._rules)
            for label, idx in (("from_index", from_index), ("to_index", to_index)):
                if not 0 <= idx < size:
                    raise IndexOutOfRange(
                        f"{label} {idx} out of range for {size} rules",
                        details={label: idx, "size": size},
                    )
            new_rules = list(self._rules)
            moved = new_rules.pop(from_index)
            new_rules.insert(to_index, moved)
            await self._commit(new_rules)
            logger.info("Moved price rule id=%s from %d to %d", moved.id, from_index, to_index)
            return tuple(self._rules)

    # -- Internals --

    def _index_of(self, rule_id: str) -> int:
        for idx, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return idx
        raise NotFound(f"Rule {rule_id} not found", details={"id": rule_id})

    async def _commit(self, new_rules: list[PriceRule]) -> None:
        await self.storage.save(new_rules)
        self._rules = new_rules
