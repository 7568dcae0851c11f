"""
Universal HTTP adapter framework.

Every external API integration (the ERP catalog today) inherits from
AdapterBase. Provides:
- Per-tenant credential headers
- Per-tenant rate limiting (sliding window)
- Built-in circuit breaker (closed/open/half_open)
- Retries with exponential backoff, for requests marked retryable
- Health tracking (latency, errors)
- Standardized request/response envelope
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import asyncio
import logging
import time

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class AuthType(str, Enum):
    NONE = "none"
    CUSTOM = "custom"


@dataclass
class AuthCredentials:
    """Tenant-scoped credentials for an adapter."""
    tenant_id: str
    adapter_name: str
    auth_type: AuthType = AuthType.NONE
    custom_headers: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response envelope
# ---------------------------------------------------------------------------

@dataclass
class AdapterRequest:
    """Standardized outbound request."""
    method: str  # GET, POST, PUT, PATCH, DELETE
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0
    retryable: bool = True
    use_circuit: bool = True


@dataclass
class AdapterResponse:
    """Standardized inbound response."""
    status_code: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float = 0.0
    adapter_name: str = ""
    tenant_id: str = ""
    error: str | None = None
    retries: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and self.error is None


# ---------------------------------------------------------------------------
# Rate Limiter (sliding window)
# ---------------------------------------------------------------------------

class RateLimiter:
    """Per-tenant per-adapter sliding window rate limiter.

    `acquire` waits for a free slot instead of rejecting, so a long batch
    of writes is paced to the window rather than truncated.
    """

    def __init__(self, max_requests: int = 300, window_seconds: float = 60.0):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._counters: dict[str, list[float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _take_slot(self, key: str, now: float) -> float:
        """Take a slot and return 0, or return the seconds until one frees up."""
        cutoff = now - self.window_seconds
        window = [t for t in self._counters.get(key, []) if t > cutoff]
        self._counters[key] = window
        if len(window) < self.max_requests:
            window.append(now)
            return 0.0
        return max(window[0] - cutoff, 0.001)

    async def acquire(self, tenant_id: str, adapter_name: str) -> float:
        """Wait until a slot is free and take it. Returns the seconds waited."""
        key = f"{tenant_id}:{adapter_name}"
        lock = self._locks.setdefault(key, asyncio.Lock())
        waited = 0.0
        async with lock:
            while True:
                delay = self._take_slot(key, time.monotonic())
                if not delay:
                    return waited
                if not waited:
                    logger.info("Rate limit reached for %s; waiting %.2fs", key, delay)
                waited += delay
                await asyncio.sleep(delay)


# ---------------------------------------------------------------------------
# Health tracking
# ---------------------------------------------------------------------------

@dataclass
class IntegrationHealth:
    """Health metrics for an adapter."""
    adapter_name: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_latency_ms: float = 0.0
    circuit_state: str = "closed"
    last_success: datetime | None = None
    last_failure: datetime | None = None
    last_error: str | None = None

    @property
    def error_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.failed_requests / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "adapter_name": self.adapter_name,
            "total_requests": self.total_requests,
            "successful": self.successful_requests,
            "failed": self.failed_requests,
            "error_rate": round(self.error_rate, 4),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "circuit_state": self.circuit_state,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "last_error": self.last_error,
        }


# ---------------------------------------------------------------------------
# AdapterBase
# ---------------------------------------------------------------------------

class AdapterBase:
    """
    Base class for external API adapters.

    Subclasses set:
        name: str      - adapter identifier
        base_url: str  - API root URL (may also be passed to __init__)

    An `httpx.AsyncClient` can be injected (shared pool, or a MockTransport
    in tests); otherwise one client is opened per request.
    """

    name: str = ""
    base_url: str = ""

    # Circuit breaker defaults
    CB_FAILURE_THRESHOLD: int = 5
    CB_RECOVERY_TIMEOUT: float = 30.0

    # Retry defaults
    MAX_RETRIES: int = 2
    BACKOFF_BASE: float = 0.5
    BACKOFF_MAX: float = 10.0

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        if base_url is not None:
            self.base_url = base_url
        self._client = client
        self._credentials: dict[str, AuthCredentials] = {}  # tenant_id -> creds
        self._rate_limiter = rate_limiter or RateLimiter()
        self._health = IntegrationHealth(adapter_name=self.name)
        self._latencies: list[float] = []

        # Circuit breaker state
        self._cb_state: str = "closed"
        self._cb_failure_count: int = 0
        self._cb_opened_at: float | None = None

    # --- Credentials ---

    def set_credentials(self, creds: AuthCredentials) -> None:
        """Store credentials for a tenant."""
        self._credentials[creds.tenant_id] = creds

    def get_credentials(self, tenant_id: str) -> AuthCredentials | None:
        return self._credentials.get(tenant_id) or self._credentials.get("*")

    def get_auth_headers(self, tenant_id: str) -> dict[str, str]:
        """Build auth headers for the given tenant ("*" credentials apply to all)."""
        creds = self.get_credentials(tenant_id)
        if not creds:
            return {}

        if creds.auth_type == AuthType.CUSTOM:
            return dict(creds.custom_headers)

        return {}

    # --- Circuit breaker ---

    @property
    def circuit_state(self) -> str:
        return self._cb_state

    def _check_circuit(self) -> bool:
        """Return True if request should proceed."""
        if self._cb_state == "closed":
            return True
        if self._cb_state == "open":
            if self._cb_opened_at is not None and (
                time.monotonic() - self._cb_opened_at
            ) > self.CB_RECOVERY_TIMEOUT:
                self._cb_state = "half_open"
                self._health.circuit_state = "half_open"
                return True
            return False
        # half_open: allow a probe request
        return True

    def _record_success(self) -> None:
        if self._cb_state != "closed":
            logger.info("Circuit for %s closed again", self.name)
        self._cb_failure_count = 0
        self._cb_state = "closed"
        self._health.circuit_state = "closed"

    def _record_failure(self) -> None:
        self._cb_failure_count += 1
        if self._cb_state == "half_open" or self._cb_failure_count >= self.CB_FAILURE_THRESHOLD:
            if self._cb_state != "open":
                logger.warning(
                    "Circuit for %s opened after %d failures", self.name, self._cb_failure_count
                )
            self._cb_state = "open"
            self._cb_opened_at = time.monotonic()
            self._health.circuit_state = "open"

    # --- Health ---

    def _update_health(
        self,
        latency_ms: float,
        success: bool,
        error: str | None = None,
        server_fault: bool = True,
    ) -> None:
        """Record one outcome. Only server or transport faults count toward the
        breaker; a 4xx means the ERP is up and answering."""
        self._health.total_requests += 1
        self._latencies.append(latency_ms)
        if len(self._latencies) > 1000:
            self._latencies = self._latencies[-500:]

        now = datetime.now(timezone.utc)
        if success:
            self._health.successful_requests += 1
            self._health.last_success = now
            self._record_success()
        else:
            self._health.failed_requests += 1
            self._health.last_failure = now
            self._health.last_error = error
            if server_fault:
                self._record_failure()

        self._health.avg_latency_ms = sum(self._latencies) / len(self._latencies)

    def get_health(self) -> IntegrationHealth:
        return self._health

    # --- Core request ---

    async def request(self, req: AdapterRequest, tenant_id: str = "default") -> AdapterResponse:
        """
        Execute a request through the adapter pipeline:
        Rate Limit (waits) -> Circuit Breaker -> Auth -> Retry w/ Backoff -> Health

        Requests with `use_circuit=False` skip the breaker check, so each
        item of a write batch reaches the ERP and gets its own answer.

        Never raises for transport problems; inspect `AdapterResponse.ok`.
        """
        await self._rate_limiter.acquire(tenant_id, self.name)

        if req.use_circuit and not self._check_circuit():
            return AdapterResponse(
                status_code=503,
                error=f"Circuit breaker OPEN for {self.name}",
                adapter_name=self.name,
                tenant_id=tenant_id,
            )

        url = f"{self.base_url.rstrip('/')}/{req.path.lstrip('/')}"
        headers = {**self.get_auth_headers(tenant_id), **req.headers}
        max_retries = self.MAX_RETRIES if req.retryable else 0

        if self._client is not None:
            return await self._send(self._client, req, url, headers, tenant_id, max_retries)
        async with httpx.AsyncClient() as client:
            return await self._send(client, req, url, headers, tenant_id, max_retries)

    async def _send(
        self,
        client: httpx.AsyncClient,
        req: AdapterRequest,
        url: str,
        headers: dict[str, str],
        tenant_id: str,
        max_retries: int,
    ) -> AdapterResponse:
        last_error: str | None = None
        latency = 0.0
        retries = 0

        for attempt in range(max_retries + 1):
            start = time.monotonic()
            try:
                resp = await client.request(
                    method=req.method,
                    url=url,
                    params=req.params or None,
                    json=req.body,
                    headers=headers,
                    timeout=req.timeout,
                )
                latency = (time.monotonic() - start) * 1000

                if resp.status_code < 500:
                    success = resp.status_code < 400
                    error = None if success else f"HTTP {resp.status_code}: {resp.text[:200]}"
                    self._update_health(latency, success, error, server_fault=False)
                    return AdapterResponse(
                        status_code=resp.status_code,
                        data=_decode_body(resp),
                        headers=dict(resp.headers),
                        latency_ms=latency,
                        adapter_name=self.name,
                        tenant_id=tenant_id,
                        error=error,
                        retries=retries,
                    )

                last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"

            except httpx.HTTPError as exc:
                latency = (time.monotonic() - start) * 1000
                last_error = f"{exc.__class__.__name__}: {exc}"

            if attempt < max_retries:
                retries += 1
                backoff = min(self.BACKOFF_BASE * (2 ** attempt), self.BACKOFF_MAX)
                logger.warning(
                    "%s %s failed (%s); retry %d/%d in %.1fs",
                    req.method, req.path, last_error, retries, max_retries, backoff,
                )
                await asyncio.sleep(backoff)

        self._update_health(latency, False, last_error)
        return AdapterResponse(
            status_code=502,
            error=last_error,
            adapter_name=self.name,
            tenant_id=tenant_id,
            retries=retries,
        )


def _decode_body(resp: httpx.Response) -> Any:
    if resp.headers.get("content-type", "").startswith("application/json"):
        try:
            return resp.json()
        except ValueError:
            return resp.text
    return resp.text
