"""OpenAI and Azure OpenAI client adapter."""

from typing import Any

from openai import AsyncAzureOpenAI, AsyncOpenAI

from ado_gateway.adapters.llm.base import AbstractLLMClient
from ado_gateway.core.errors import LLMAppError


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI-compatible chat completions.

    Uses the official OpenAI Python SDK with async support. When
    ``azure_endpoint`` is given the Azure flavour of the client is used and
    ``model`` names the Azure deployment.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        *,
        azure_endpoint: str | None = None,
        api_version: str | None = None,
        temperature: float = 0.2,
    ) -> None:
        """Initialize the async client.

        Args:
            api_key: Provider API key.
            model: Model name, or deployment name for Azure.
            base_url: Optional custom base URL for the OpenAI API.
            timeout_seconds: Timeout for requests in seconds.
            azure_endpoint: Azure OpenAI resource endpoint.
            api_version: Azure OpenAI API version.
            temperature: Sampling temperature.
        """
        if azure_endpoint:
            self.client: AsyncOpenAI = AsyncAzureOpenAI(
                api_key=api_key,
                azure_endpoint=azure_endpoint,
                api_version=api_version,
                timeout=timeout_seconds,
            )
            self.provider = "azure_openai"
        else:
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
            )
            self.provider = "openai"
        self.model = model
        self.temperature = temperature

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except Exception as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message=f"{self.provider} request failed: {exc}",
                details={"provider": self.provider, "model": self.model},
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMAppError(
                code="llm_empty_response",
                message="LLM returned empty response",
                details={"provider": self.provider, "model": self.model},
            )
        return content.strip()
