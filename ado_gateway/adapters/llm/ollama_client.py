"""Ollama client adapter (local models over the /api/generate endpoint)."""

from __future__ import annotations

import httpx

from ado_gateway.adapters.llm.base import AbstractLLMClient
from ado_gateway.core.errors import LLMAppError

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaClient(AbstractLLMClient):
    """Non-streaming client for a local Ollama server."""

    def __init__(
        self,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self.base_url = (base_url or DEFAULT_OLLAMA_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": f"{system_prompt}\n\n{user_prompt}",
            "stream": False,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMAppError(
                code="llm_unavailable",
                message="Ollama service is not available or model is not loaded.",
                details={
                    "provider": "ollama",
                    "model": self.model,
                    "http_status": exc.response.status_code,
                },
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message=f"Failed to generate response from Ollama: {exc}",
                details={"provider": "ollama", "model": self.model},
            ) from exc

        content = (data.get("response") or "").strip() if isinstance(data, dict) else ""
        if not content:
            raise LLMAppError(
                code="llm_empty_response",
                message="LLM returned empty response",
                details={"provider": "ollama", "model": self.model},
            )
        return content
