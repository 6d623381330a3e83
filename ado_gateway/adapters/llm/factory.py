"""Factory pattern for creating LLM client instances."""

from ado_gateway.adapters.llm.base import AbstractLLMClient
from ado_gateway.adapters.llm.ollama_client import OllamaClient
from ado_gateway.adapters.llm.openai_client import OpenAIClient
from ado_gateway.core.config import LLMSettings, settings
from ado_gateway.core.errors import ValidationAppError

SUPPORTED_PROVIDERS = ("openai", "azure_openai", "ollama")


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the LLM client for the configured provider.

    Args:
        llm_settings: Optional settings; defaults to the global LLM settings.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider == "openai":
        if not cfg.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    if provider == "azure_openai":
        if not cfg.api_key or not cfg.base_url:
            raise ValidationAppError(
                code="llm_missing_azure_config",
                message="Azure OpenAI provider requires LLM_API_KEY and LLM_BASE_URL",
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            timeout_seconds=cfg.timeout_seconds,
            azure_endpoint=cfg.base_url,
            api_version=cfg.api_version,
        )

    if provider == "ollama":
        return OllamaClient(
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=(
            f"Unknown LLM provider: '{provider}'. "
            f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        ),
    )
