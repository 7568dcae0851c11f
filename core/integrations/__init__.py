"""
Core integrations: vendor-agnostic adapter infrastructure.

- AdapterBase: HTTP adapter with auth, rate limiting, circuit breaker, retries
- DataNormalizer: vendor payload -> canonical field mapping
"""
from core.integrations.adapter_base import (
    AdapterBase,
    AdapterRequest,
    AdapterResponse,
    AuthCredentials,
    AuthType,
    IntegrationHealth,
    RateLimiter,
)
from core.integrations.normalizer import (
    DataNormalizer,
    FieldMapping,
    SchemaMapping,
    TRANSFORMS,
)

__all__ = [
    # Adapter
    "AdapterBase",
    "AdapterRequest",
    "AdapterResponse",
    "AuthCredentials",
    "AuthType",
    "IntegrationHealth",
    "RateLimiter",
    # Normalizer
    "DataNormalizer",
    "FieldMapping",
    "SchemaMapping",
    "TRANSFORMS",
]
