"""Tests for the AI chat endpoint."""

import logging
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from ado_gateway.adapters.llm.base import AbstractLLMClient
from ado_gateway.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from ado_gateway.api.routes.semantic_kernel import get_llm_client
from ado_gateway.core.app_factory import create_app
from ado_gateway.core.auth import hash_api_key
from ado_gateway.core.config import RateLimitSettings
from ado_gateway.core.errors import LLMAppError
from ado_gateway.core.rate_limit import SlidingWindowRateLimiter
from ado_gateway.schemas.chat import DEFAULT_SYSTEM_PROMPT

API_HEADERS = {"X-API-Key": "test-api-key-123"}


class RecordingLLM(AbstractLLMClient):
    model = "recording-model"

    def __init__(self, reply: str = "Three bugs are open.", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def llm() -> RecordingLLM:
    return RecordingLLM()


@pytest.fixture
def client(llm: RecordingLLM) -> TestClient:
    limiter = SlidingWindowRateLimiter(InMemoryRateLimitStore(), clock=Mock(return_value=0.0))
    app = create_app(rate_limit_settings=RateLimitSettings(), rate_limiter=limiter)
    app.dependency_overrides[get_llm_client] = lambda: llm
    return TestClient(app)


def test_chat_returns_model_output(client: TestClient, llm: RecordingLLM) -> None:
    response = client.post(
        "/v1/api/semantickernel/chat",
        json={"prompt": "How many bugs are open?"},
        headers=API_HEADERS,
    )

    assert response.status_code == 200
    assert response.json() == {"content": "Three bugs are open.", "model": "recording-model"}
    assert llm.calls == [(DEFAULT_SYSTEM_PROMPT, "How many bugs are open?")]


def test_chat_uses_custom_system_prompt(client: TestClient, llm: RecordingLLM) -> None:
    client.post(
        "/v1/api/semantickernel/chat",
        json={"prompt": "hi", "system_prompt": "Answer in French."},
        headers=API_HEADERS,
    )

    assert llm.calls == [("Answer in French.", "hi")]


def test_chat_is_in_ai_tier(client: TestClient) -> None:
    response = client.post("/v1/api/semantickernel/chat", json={"prompt": "hi"}, headers=API_HEADERS)

    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "9"


def test_chat_requires_api_key(client: TestClient, llm: RecordingLLM) -> None:
    response = client.post("/v1/api/semantickernel/chat", json={"prompt": "hi"})

    assert response.status_code == 403
    assert llm.calls == []


def test_chat_rejects_empty_prompt(client: TestClient) -> None:
    response = client.post("/v1/api/semantickernel/chat", json={"prompt": ""}, headers=API_HEADERS)

    assert response.status_code == 422


def test_llm_failure_is_rendered_as_json_error(client: TestClient, llm: RecordingLLM) -> None:
    llm.error = LLMAppError(code="llm_unavailable", message="Ollama service is not available")

    response = client.post("/v1/api/semantickernel/chat", json={"prompt": "hi"}, headers=API_HEADERS)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "llm_unavailable"


def test_openapi_documents_rate_limit_responses(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    chat = schema["paths"]["/v1/api/semantickernel/chat"]["post"]
    assert {"400", "413", "429"} <= set(chat["responses"])
    assert "Retry-After" in chat["responses"]["429"]["headers"]
    assert schema["components"]["securitySchemes"]["ApiKeyAuth"]["name"] == "X-API-Key"
    assert schema["paths"]["/health"]["get"]["security"] == []


def _audit_records(caplog: pytest.LogCaptureFixture) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "ado_gateway.core.audit" and r.getMessage() == "audit.event"]


def test_successful_chat_is_audited(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="ado_gateway.core.audit")

    client.post(
        "/v1/api/semantickernel/chat",
        json={"prompt": "hi"},
        headers={**API_HEADERS, "X-Request-ID": "req-audit-1", "User-Agent": "ado-ui/2.0"},
    )

    [record] = _audit_records(caplog)
    assert record.levelno == logging.INFO
    assert record.action == "llm.chat"
    assert record.success is True
    assert record.error is None
    assert record.actor == f"api_key:{hash_api_key('test-api-key-123')}"
    assert record.client_ip == "testclient"
    assert record.user_agent == "ado-ui/2.0"
    assert record.request_id == "req-audit-1"


def test_failed_chat_is_audited_with_error(
    client: TestClient, llm: RecordingLLM, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="ado_gateway.core.audit")
    llm.error = LLMAppError(code="llm_unavailable", message="Ollama service is not available")

    client.post("/v1/api/semantickernel/chat", json={"prompt": "hi"}, headers=API_HEADERS)

    [record] = _audit_records(caplog)
    assert record.levelno == logging.WARNING
    assert record.success is False
    assert record.error == "llm_unavailable"


def test_rejected_request_is_not_audited(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="ado_gateway.core.audit")

    client.post("/v1/api/semantickernel/chat", json={"prompt": "hi"})

    assert _audit_records(caplog) == []
