"""Tiered, per-partition rate limiting for the HTTP pipeline.

Every inbound request is checked, in order, against:
- a user partition, when an authenticated principal is present
- an IP partition, always

Requests are classified into a traffic tier (default, AI, admin) that selects
the limit and window. Each partition keeps its own counting window guarded by
its own lock, so unrelated partitions never contend. Stale partitions are
swept lazily from the request path to bound memory.

Responses carry X-RateLimit-Limit / X-RateLimit-Remaining / X-RateLimit-Reset,
and denials additionally carry Retry-After.
"""

from __future__ import annotations

import enum
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import PlainTextResponse
from starlette.datastructures import MutableHeaders

from ado_gateway.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitInfo
from ado_gateway.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from ado_gateway.core.config import RateLimitSettings
from ado_gateway.core.exception_handlers import general_exception_handler

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 300

# IP quotas never drop below these floors for the stricter tiers
AI_IP_FLOOR = 5
ADMIN_IP_FLOOR = 10

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"

HeaderCallback = Callable[[MutableHeaders, bool], None]


class Tier(str, enum.Enum):
    DEFAULT = "default"
    AI = "ai"
    ADMIN = "admin"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Limits applied to a request once its tier is known.

    Attributes:
        tier: Traffic tier the request was classified into.
        user_limit: Max requests per window for the user partition.
        ip_limit: Max requests per window for the IP partition.
        window_seconds: Window length shared by both partitions.
    """

    tier: Tier
    user_limit: int
    ip_limit: int
    window_seconds: int


@dataclass(frozen=True)
class PartitionDecision:
    """Outcome of consuming one request from a partition."""

    key: str
    allowed: bool
    limit: int
    reset_after_seconds: int
    info: RateLimitInfo


def classify_request(
    path: str,
    method: str,
    roles: frozenset[str] | set[str],
    config: RateLimitSettings,
) -> Tier:
    """Assign a request to exactly one traffic tier.

    AI endpoints win over admin classification. Admin covers holders of the
    admin role and DELETE requests against protected resources.
    """
    lowered = path.lower()
    if config.ai_path_marker and config.ai_path_marker.lower() in lowered:
        return Tier.AI

    if config.admin_role in roles:
        return Tier.ADMIN

    if (
        config.protected_path_marker
        and config.protected_path_marker.lower() in lowered
        and method.upper() == "DELETE"
    ):
        return Tier.ADMIN

    return Tier.DEFAULT


def resolve_policy(tier: Tier, config: RateLimitSettings) -> RateLimitPolicy:
    """Map a tier onto its configured limits."""
    if tier is Tier.AI:
        limit, window = config.ai_max_requests, config.ai_window_seconds
        ip_limit = max(AI_IP_FLOOR, limit)
    elif tier is Tier.ADMIN:
        limit, window = config.admin_max_requests, config.admin_window_seconds
        ip_limit = max(ADMIN_IP_FLOOR, limit)
    else:
        limit, window = config.default_max_requests, config.default_window_seconds
        ip_limit = limit

    return RateLimitPolicy(
        tier=tier,
        user_limit=limit,
        ip_limit=ip_limit,
        window_seconds=window,
    )


def user_partition_key(subject: str, policy: RateLimitPolicy) -> str:
    return f"user:{subject}:{policy.tier.value}:{policy.window_seconds}s"


def ip_partition_key(client_ip: str, policy: RateLimitPolicy) -> str:
    return f"ip:{client_ip}:{policy.tier.value}:{policy.window_seconds}s"


def _seconds_until_reset(info: RateLimitInfo, now: float) -> int:
    # Caller holds info.lock
    return max(0, int(math.ceil(info.last_reset + info.window_seconds - now)))


class SlidingWindowRateLimiter:
    """Per-partition counting windows with lazy eviction.

    Both the store and the clock are injected so tests can own isolated state
    and simulate the passage of time.
    """

    def __init__(
        self,
        store: AbstractRateLimitStore | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._sweep_lock = threading.Lock()
        self._last_sweep = clock()

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def maybe_sweep(self) -> int:
        """Evict stale partitions if the sweep interval has elapsed.

        The sweep lock is held only to decide and mark the sweep time; the
        eviction itself runs outside it.

        Returns:
            Number of entries evicted (0 when no sweep was due).
        """
        now = self._clock()
        if now - self._last_sweep <= self._sweep_interval:
            return 0

        with self._sweep_lock:
            if now - self._last_sweep <= self._sweep_interval:
                return 0
            self._last_sweep = now

        return self._store.evict_stale(now)

    def consume(self, key: str, *, limit: int, window_seconds: int) -> PartitionDecision:
        """Count one request against a partition.

        Resets the window when it has elapsed, denies without incrementing
        once the limit is reached, and increments otherwise.

        Args:
            key: Partition key.
            limit: Max requests per window, used when the partition is new.
            window_seconds: Window length, used when the partition is new.

        Returns:
            PartitionDecision describing the outcome.
        """
        now = self._clock()
        info = self._store.get_or_add(
            key,
            lambda: RateLimitInfo(
                last_reset=now,
                request_count=0,
                limit=limit,
                window_seconds=window_seconds,
            ),
        )

        with info.lock:
            if now - info.last_reset > info.window_seconds:
                info.last_reset = now
                info.request_count = 0

            allowed = info.request_count < info.limit
            if allowed:
                info.request_count += 1
            reset_after = _seconds_until_reset(info, now)

        return PartitionDecision(
            key=key,
            allowed=allowed,
            limit=info.limit,
            reset_after_seconds=reset_after,
            info=info,
        )

    def header_callback(self, decision: PartitionDecision) -> HeaderCallback:
        """Build a callback that publishes the partition's headers.

        Values are read from the partition when the callback runs, i.e. when
        the response is about to be sent. The callback's ``overwrite`` flag
        selects between replacing existing headers and filling missing ones.

        Args:
            decision: Partition whose state should be published.
        """
        info = decision.info

        def publish(headers: MutableHeaders, overwrite: bool) -> None:
            now = self._clock()
            with info.lock:
                limit = info.limit
                remaining = max(0, info.limit - info.request_count)
                reset_after = _seconds_until_reset(info, now)

            values = {
                LIMIT_HEADER: str(limit),
                REMAINING_HEADER: str(remaining),
                RESET_HEADER: str(reset_after),
            }
            for name, value in values.items():
                if overwrite:
                    headers[name] = value
                else:
                    headers.setdefault(name, value)

        return publish


def _declared_content_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _client_ip(request: Request) -> str:
    return request.client.host if request.client and request.client.host else "unknown"


def _remaining_on_denial(limit: int, used: int = 0) -> int:
    return max(0, limit - used)


class RateLimitingMiddleware:
    """HTTP middleware enforcing tiered user and IP quotas.

    Reads the authenticated principal from ``request.state.principal`` (set
    by the principal middleware, which must run before this one).

    Usage:
        app.middleware("http")(RateLimitingMiddleware(settings.rate_limit))
    """

    def __init__(
        self,
        config: RateLimitSettings,
        limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        self.config = config
        self.limiter = limiter or SlidingWindowRateLimiter()

    async def __call__(self, request: Request, call_next) -> Response:
        if not self.config.enabled:
            return await call_next(request)

        self.limiter.maybe_sweep()

        rejection = self._reject_malformed(request)
        if rejection is not None:
            return rejection

        principal = getattr(request.state, "principal", None)
        roles = principal.roles if principal is not None else frozenset()
        tier = classify_request(request.url.path, request.method, roles, self.config)
        policy = resolve_policy(tier, self.config)

        # (callback, overwrite): the user partition wins over the IP partition
        callbacks: list[tuple[HeaderCallback, bool]] = []

        if principal is not None and principal.subject:
            decision = self.limiter.consume(
                user_partition_key(principal.subject, policy),
                limit=policy.user_limit,
                window_seconds=policy.window_seconds,
            )
            if not decision.allowed:
                return self._deny(decision, policy, partition="user", subject=principal.subject)
            callbacks.append((self.limiter.header_callback(decision), True))

        client_ip = _client_ip(request)
        decision = self.limiter.consume(
            ip_partition_key(client_ip, policy),
            limit=policy.ip_limit,
            window_seconds=policy.window_seconds,
        )
        if not decision.allowed:
            return self._deny(decision, policy, partition="ip", subject=client_ip)
        callbacks.append((self.limiter.header_callback(decision), False))

        try:
            response: Response = await call_next(request)
        except Exception as exc:
            # Render here so the 500 still carries the quota headers
            response = await general_exception_handler(request, exc)
        for callback, overwrite in callbacks:
            callback(response.headers, overwrite)
        return response

    def _reject_malformed(self, request: Request) -> Response | None:
        """Shed oversized requests before any partition is touched."""
        content_length = _declared_content_length(request)
        if content_length is not None and content_length > self.config.max_request_body_size_bytes:
            logger.warning(
                "rate_limit.body_too_large",
                extra={
                    "content_length": content_length,
                    "max_bytes": self.config.max_request_body_size_bytes,
                    "route": request.url.path,
                },
            )
            return PlainTextResponse(
                "Request body too large",
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )

        query_length = len(request.scope.get("query_string", b""))
        if query_length > self.config.max_query_string_length:
            logger.warning(
                "rate_limit.query_too_long",
                extra={
                    "query_length": query_length,
                    "max_length": self.config.max_query_string_length,
                    "route": request.url.path,
                },
            )
            return PlainTextResponse(
                "Query string too long",
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        return None

    def _deny(
        self,
        decision: PartitionDecision,
        policy: RateLimitPolicy,
        *,
        partition: str,
        subject: str,
    ) -> Response:
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "partition": partition,
                "subject": subject,
                "tier": policy.tier.value,
                "limit": decision.limit,
                "window_s": policy.window_seconds,
                "retry_after_s": decision.reset_after_seconds,
            },
        )

        return PlainTextResponse(
            "Rate limit exceeded",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={
                RETRY_AFTER_HEADER: str(decision.reset_after_seconds),
                LIMIT_HEADER: str(decision.limit),
                REMAINING_HEADER: str(_remaining_on_denial(decision.limit)),
                RESET_HEADER: str(decision.reset_after_seconds),
            },
        )
