"""Unit tests for API key authentication module."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from ado_gateway.core.auth import Principal, parse_api_keys, resolve_principal, validate_api_key, verify_api_key
from ado_gateway.core.errors import AuthenticationAppError
from ado_gateway.core.middleware import principal_middleware


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    def test_parse_single_key(self) -> None:
        """Test parsing a single API key."""
        result = parse_api_keys("my-secret-key")
        assert result == {"my-secret-key"}

    def test_parse_multiple_keys(self) -> None:
        """Test parsing multiple comma-separated keys."""
        result = parse_api_keys("key1,key2,key3")
        assert result == {"key1", "key2", "key3"}

    def test_parse_keys_with_whitespace(self) -> None:
        """Test that whitespace is trimmed from keys."""
        result = parse_api_keys("key1 , key2  ,  key3")
        assert result == {"key1", "key2", "key3"}

    def test_parse_none_returns_empty_set(self) -> None:
        """Test that None input returns empty set."""
        result = parse_api_keys(None)
        assert result == set()


class TestValidateAPIKey:
    """Test core API key validation logic."""

    @patch("ado_gateway.core.auth.settings")
    def test_validate_bypassed_when_auth_disabled(self, mock_settings) -> None:
        """Test that validation is skipped when API_KEY_REQUIRED=false."""
        mock_settings.app.api_key_required = False

        # Should not raise even with invalid key
        validate_api_key("any-random-key")
        validate_api_key("")

    @patch("ado_gateway.core.auth.settings")
    def test_validate_raises_when_no_keys_configured(self, mock_settings) -> None:
        """Test error when authentication is required but no keys are configured."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"
        assert "no valid keys are configured" in exc_info.value.message

    @patch("ado_gateway.core.auth.settings")
    def test_validate_accepts_valid_key(self, mock_settings) -> None:
        """Test that valid API key passes validation."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key-1,valid-key-2"

        # Should not raise
        validate_api_key("valid-key-1")
        validate_api_key("valid-key-2")

    @patch("ado_gateway.core.auth.settings")
    def test_validate_rejects_invalid_key(self, mock_settings) -> None:
        """Test that invalid API key is rejected."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key-1,valid-key-2"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("invalid-key")

        assert exc_info.value.code == "invalid_api_key"
        assert "Invalid or missing API key" in exc_info.value.message
class TestVerifyAPIKeyDependency:
    """Test FastAPI dependency for API key verification."""

    @pytest.mark.asyncio
    @patch("ado_gateway.core.auth.settings")
    async def test_verify_bypassed_when_auth_disabled(self, mock_settings) -> None:
        """Test that dependency allows requests when auth is disabled."""
        mock_settings.app.api_key_required = False

        # Should not raise even without header
        await verify_api_key(x_api_key=None)

    @pytest.mark.asyncio
    @patch("ado_gateway.core.auth.settings")
    async def test_verify_raises_403_when_header_missing(self, mock_settings) -> None:
        """Test that missing X-API-Key header returns 403."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key=None)

        assert exc_info.value.status_code == 403
        assert "Missing API key" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("ado_gateway.core.auth.settings")
    async def test_verify_raises_403_when_key_invalid(self, mock_settings) -> None:
        """Test that invalid API key returns 403."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="wrong-key")

        assert exc_info.value.status_code == 403
        assert "Invalid or missing API key" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("ado_gateway.core.auth.settings")
    async def test_verify_accepts_valid_key(self, mock_settings) -> None:
        """Test that valid API key passes verification."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "my-valid-key,another-key"

        # Should not raise
        await verify_api_key(x_api_key="my-valid-key")
        await verify_api_key(x_api_key="another-key")

    @pytest.mark.asyncio
    @patch("ado_gateway.core.auth.settings")
    async def test_verify_raises_403_when_keys_not_configured(self, mock_settings) -> None:
        """Test that dependency returns 403 when no keys are configured."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="some-key")

        assert exc_info.value.status_code == 403
        assert "no valid keys are configured" in exc_info.value.detail


class TestResolvePrincipal:
    """Resolution of X-API-Key into a caller identity."""

    @patch("ado_gateway.core.auth.settings")
    def test_admin_key_gets_admin_role(self, mock_settings) -> None:
        mock_settings.app.api_keys = "reader-key,admin-key"
        mock_settings.app.admin_api_keys = "admin-key"
        mock_settings.app.default_role = "ADO.ReadOnly"
        mock_settings.rate_limit.admin_role = "ADO.Admin"

        principal = resolve_principal("admin-key")

        assert principal is not None
        assert principal.has_role("ADO.Admin")
        assert not principal.has_role("ADO.ReadOnly")

    @patch("ado_gateway.core.auth.settings")
    def test_regular_key_gets_default_role(self, mock_settings) -> None:
        mock_settings.app.api_keys = "reader-key,admin-key"
        mock_settings.app.admin_api_keys = "admin-key"
        mock_settings.app.default_role = "ADO.ReadOnly"
        mock_settings.rate_limit.admin_role = "ADO.Admin"

        principal = resolve_principal("reader-key")

        assert principal == Principal(subject=principal.subject, roles=frozenset({"ADO.ReadOnly"}))

    @patch("ado_gateway.core.auth.settings")
    def test_subject_never_contains_raw_key(self, mock_settings) -> None:
        mock_settings.app.api_keys = "super-secret-key"
        mock_settings.app.admin_api_keys = None

        principal = resolve_principal("super-secret-key")

        assert principal is not None
        assert principal.subject.startswith("api_key:")
        assert "super-secret-key" not in principal.subject
        assert principal.subject == resolve_principal("super-secret-key").subject

    @patch("ado_gateway.core.auth.settings")
    def test_unknown_or_missing_key_is_anonymous(self, mock_settings) -> None:
        mock_settings.app.api_keys = "reader-key"
        mock_settings.app.admin_api_keys = None

        assert resolve_principal("other-key") is None
        assert resolve_principal(None) is None
        assert resolve_principal("") is None


class TestPrincipalMiddleware:
    """principal_middleware populates request.state for later stages."""

    def _app(self):
        app = FastAPI()
        app.middleware("http")(principal_middleware)

        @app.get("/whoami")
        async def whoami(request: Request) -> dict:
            principal = request.state.principal
            return {
                "subject": principal.subject if principal else None,
                "roles": sorted(principal.roles) if principal else [],
                "client_ip": request.state.client_ip,
            }

        return app

    def test_known_key_sets_principal(self) -> None:
        client = TestClient(self._app())
        data = client.get("/whoami", headers={"X-API-Key": "test-admin-key-789"}).json()

        assert data["subject"].startswith("api_key:")
        assert data["roles"] == ["ADO.Admin"]
        assert data["client_ip"] == "testclient"

    def test_missing_key_leaves_principal_empty(self) -> None:
        client = TestClient(self._app())
        data = client.get("/whoami").json()

        assert data["subject"] is None
        assert data["roles"] == []
