"""
Error taxonomy for the price-updates service.

Structural and precondition errors (store contract violations, missing
rules) are raised to the caller. ExternalCallFailure is raised by adapters
but collected per item by the apply workflow instead of aborting a batch.
"""
from __future__ import annotations

import logging
from typing import Any


class PricingError(Exception):
    """Base class for all domain errors. `code` is stable and API-facing."""

    code: str = "pricing_error"

    def __init__(self, message: str = "", *, details: Any = None):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidInput(PricingError, ValueError):
    code = "invalid_input"


class NotFound(PricingError, LookupError):
    code = "not_found"


class DuplicateId(PricingError):
    code = "duplicate_id"


class IndexOutOfRange(PricingError, IndexError):
    code = "index_out_of_range"


class NoRulesConfigured(PricingError):
    code = "no_rules_configured"

    def __init__(self, message: str = "Add at least one rule before running a simulation"):
        super().__init__(message)


class ExternalCallFailure(PricingError):
    code = "external_call_failure"

    def __init__(self, message: str = "", *, status_code: int | None = None, details: Any = None):
        super().__init__(message, details=details)
        self.status_code = status_code


class ConfirmationRequired(PricingError):
    code = "confirmation_required"


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """Log an exception with key=value context appended to the message."""
    parts = [f"{k}={v}" for k, v in (extra or {}).items() if v is not None]
    suffix = f" {' '.join(parts)}" if parts else ""
    if exc is not None:
        logger.error(f"{msg}{suffix}: {exc}", exc_info=exc)
        return
    logger.exception(f"{msg}{suffix}")
