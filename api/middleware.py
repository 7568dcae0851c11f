"""Tenant resolution for the pricing API.

The tenant comes from the X-Tenant-ID header, or from the leading host
label when the API is served on per-tenant subdomains. It is kept in a
ContextVar so rule stores, workflows and the ERP binding can call
get_current_tenant() without threading it through every signature.

Tenant ids end up in rule file names and in the 64-char tenant_id column,
so anything outside [A-Za-z0-9_.-]{1,64} is refused with a 400 envelope.
"""

import logging
import re
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from api.errors import build_error_envelope

logger = logging.getLogger(__name__)

DEFAULT_TENANT = "default"
TENANT_HEADER = "X-Tenant-ID"
TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")

# Host labels that name the service rather than a tenant
RESERVED_SUBDOMAINS = frozenset({"www", "api"})

# ---------------------------------------------------------------------------
# Context variable
# ---------------------------------------------------------------------------

_current_tenant: ContextVar[str] = ContextVar("current_tenant", default=DEFAULT_TENANT)


def get_current_tenant() -> str:
    """Return the tenant ID for the current request.

    Usage::

        tenant = get_current_tenant()
        store = await service.rule_store(tenant)
    """
    return _current_tenant.get()


def tenant_from_host(host: str) -> Optional[str]:
    """`acme.pricing.example.com` -> "acme"; bare or reserved hosts -> None."""
    hostname = host.split(":", 1)[0].strip().lower()
    labels = hostname.split(".")
    if len(labels) <= 2 or labels[0] in RESERVED_SUBDOMAINS:
        return None
    return labels[0] or None


def is_valid_tenant_id(tenant_id: str) -> bool:
    return bool(TENANT_ID_PATTERN.match(tenant_id)) and tenant_id not in {".", ".."}


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class TenantMiddleware(BaseHTTPMiddleware):
    """Bind the request's tenant for the duration of the call.

    An explicit header wins over the subdomain; with neither, the request
    runs as "default".
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        header = request.headers.get(TENANT_HEADER)
        tenant_id = header.strip() if header else tenant_from_host(request.headers.get("host", ""))
        tenant_id = tenant_id or DEFAULT_TENANT

        if not is_valid_tenant_id(tenant_id):
            logger.info("Rejected tenant id %r on %s", tenant_id[:80], request.url.path)
            return JSONResponse(
                build_error_envelope(
                    code="invalid_tenant",
                    message="Tenant id must be 1-64 characters of letters, digits, '_', '-' or '.'",
                    details={"tenant_id": tenant_id[:80]},
                ),
                status_code=400,
            )

        token = _current_tenant.set(tenant_id)
        try:
            return await call_next(request)
        finally:
            _current_tenant.reset(token)
