"""API key authentication and principal resolution.

Keys are validated against comma-separated lists from environment variables.
A valid key resolves to a Principal whose subject is a short hash of the key
(never the key itself) and whose roles come from configuration:
- keys listed in APP_ADMIN_API_KEYS carry the admin role
- every other valid key carries APP_DEFAULT_ROLE

Design principles:
- Single Responsibility: Only handles API key validation and identity
- Dependency Injection: Used via FastAPI Depends() for loose coupling
- Configuration-driven: Keys managed via env vars, not hardcoded
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Header, HTTPException, status

from ado_gateway.core.config import settings
from ado_gateway.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller.

    Attributes:
        subject: Stable, non-secret identifier for the caller.
        roles: Role names granted to the caller.
    """

    subject: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_role(self, role: str) -> bool:
        return role in self.roles


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Args:
        keys_string: Comma-separated string of API keys, or None.

    Returns:
        Set of trimmed, non-empty API keys.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def hash_api_key(api_key: str) -> str:
    """Hash an API key for logging and identity without exposing it."""
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


def validate_api_key(provided_key: str) -> None:
    """Validate that provided API key matches configured keys.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: API key to validate.

    Raises:
        AuthenticationAppError: If key is invalid or authentication is required but no keys configured.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)

    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={
                "reason": "api_keys_not_configured",
                "auth_required": settings.app.api_key_required,
            },
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if provided_key not in valid_keys:
        logger.warning(
            "api_key_validation_failed",
            extra={
                "reason": "invalid_api_key",
                "api_key_hash": hash_api_key(provided_key),
                "auth_required": settings.app.api_key_required,
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
            details={"provided_key_length": len(provided_key) if provided_key else 0},
        )


def resolve_principal(api_key: str | None) -> Principal | None:
    """Resolve an API key into a Principal.

    Unknown or missing keys resolve to None; rejecting them is left to
    ``verify_api_key`` on the routes that require authentication.

    Args:
        api_key: Raw X-API-Key header value.

    Returns:
        Principal for a configured key, otherwise None.
    """
    if not api_key:
        return None

    if api_key not in parse_api_keys(settings.app.api_keys):
        return None

    if api_key in parse_api_keys(settings.app.admin_api_keys):
        roles = frozenset({settings.rate_limit.admin_role})
    else:
        roles = frozenset({settings.app.default_role})

    return Principal(subject=f"api_key:{hash_api_key(api_key)}", roles=roles)


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency for API key authentication.

    Validates the X-API-Key header against configured API keys.
    Can be disabled by setting APP_API_KEY_REQUIRED=false in configuration.

    Usage:
        @router.post("/protected", dependencies=[Depends(verify_api_key)])
        async def protected_endpoint():
            return {"message": "Authenticated!"}

    Args:
        x_api_key: API key from X-API-Key header (injected by FastAPI).

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    if not settings.app.api_key_required:
        logger.debug(
            "auth.skipped",
            extra={"reason": "auth_required_false"},
        )
        return

    if not x_api_key:
        logger.warning(
            "auth.missing_key",
            extra={
                "auth_required": True,
                "api_key_present": False,
            },
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        validate_api_key(x_api_key)
        logger.info(
            "auth.success",
            extra={
                "auth_required": True,
                "api_key_present": True,
                "api_key_hash": hash_api_key(x_api_key),
            },
        )
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc
