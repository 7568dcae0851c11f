"""
Data Normalizer: vendor-agnostic schema mapping.

Maps vendor-specific API payloads to canonical field names. Supports
nested field access, named transform functions, per-field defaults and
per-adapter mapping configurations.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable


# ---------------------------------------------------------------------------
# Field mapping
# ---------------------------------------------------------------------------

@dataclass
class FieldMapping:
    """Maps a source vendor field to a canonical target field."""
    source_field: str       # Dot-notation path, e.g. "meta.total_paginas"
    target_field: str       # Canonical field name, e.g. "total_pages"
    transform: str | None = None  # Optional transform name
    default: Any = None     # Default if source is missing or the transform fails


@dataclass
class SchemaMapping:
    """Complete mapping config for an adapter + entity type."""
    adapter_name: str
    entity_type: str  # product | product_group | ...
    mappings: list[FieldMapping] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Transform functions
# ---------------------------------------------------------------------------

def _to_decimal(value: Any) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("empty decimal")
    # Some ERPs send "1.234,50"; a lone comma is a decimal separator
    text = str(value).strip()
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal: {value!r}") from exc


def _to_int(value: Any) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    return int(_to_decimal(value))


TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "str": lambda v: str(v) if v is not None else "",
    "strip": lambda v: str(v).strip() if v else "",
    "int": _to_int,
    "decimal": _to_decimal,
}


# ---------------------------------------------------------------------------
# DataNormalizer
# ---------------------------------------------------------------------------

class DataNormalizer:
    """Normalizes vendor data to canonical dicts using registered mappings."""

    def __init__(self):
        self._mappings: dict[str, SchemaMapping] = {}  # key: {adapter}:{entity_type}

    def register_mapping(self, mapping: SchemaMapping) -> None:
        """Register a schema mapping for an adapter + entity type."""
        key = f"{mapping.adapter_name}:{mapping.entity_type}"
        self._mappings[key] = mapping

    def has_mapping(self, adapter_name: str, entity_type: str) -> bool:
        return f"{adapter_name}:{entity_type}" in self._mappings

    def normalize(
        self,
        adapter_name: str,
        entity_type: str,
        raw_data: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Normalize raw vendor data to canonical field names.

        Unmapped entity types come back as {"raw_data": ...} only. A transform
        that fails falls back to the field default instead of raising.
        """
        result: dict[str, Any] = {"raw_data": raw_data}
        mapping = self._mappings.get(f"{adapter_name}:{entity_type}")
        if not mapping:
            return result

        for fm in mapping.mappings:
            value = self._get_nested(raw_data, fm.source_field)
            if value is None:
                value = fm.default

            if fm.transform and fm.transform in TRANSFORMS:
                try:
                    value = TRANSFORMS[fm.transform](value)
                except (ValueError, TypeError, KeyError, ArithmeticError):
                    value = fm.default

            result[fm.target_field] = value

        return result

    @staticmethod
    def _get_nested(data: dict[str, Any], path: str) -> Any:
        """Access nested dict values via dot notation (e.g. 'meta.total_paginas')."""
        current: Any = data
        for part in path.split("."):
            if isinstance(current, dict):
                current = current.get(part)
            else:
                return None
            if current is None:
                return None
        return current
