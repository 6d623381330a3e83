"""Audit trail for security-relevant actions.

Audit events go through the regular logging pipeline (JSON lines with
correlation and redaction) under the ``audit.event`` message, so they can be
filtered downstream by logger name or message.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from fastapi import Request

from ado_gateway.core.logging import get_actor, get_request_id

logger = logging.getLogger(__name__)


@dataclass
class AuditEvent:
    """A single audited action.

    Attributes:
        action: What was attempted (e.g. ``llm.chat``).
        actor: Principal subject, None for anonymous callers.
        client_ip: Remote address of the caller.
        user_agent: User-Agent header of the caller.
        request_id: Correlation id of the request.
        success: Whether the action completed.
        error: Failure reason when ``success`` is False.
    """

    action: str
    actor: str | None = None
    client_ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    success: bool = True
    error: str | None = None
    timestamp_utc: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_request(
        cls,
        request: Request,
        action: str,
        *,
        success: bool = True,
        error: str | None = None,
    ) -> "AuditEvent":
        """Build an event from the caller details recorded by principal_middleware."""
        state = request.state
        principal = getattr(state, "principal", None)
        return cls(
            action=action,
            actor=principal.subject if principal is not None else get_actor(),
            client_ip=getattr(state, "client_ip", None),
            user_agent=getattr(state, "user_agent", None),
            request_id=getattr(state, "request_id", None) or get_request_id(),
            success=success,
            error=error,
        )


def audit(event: AuditEvent) -> None:
    """Emit an audit event; failures are logged at warning level."""
    level = logging.INFO if event.success else logging.WARNING
    logger.log(level, "audit.event", extra=asdict(event))
