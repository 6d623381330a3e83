"""LLM adapter layer - abstracts over OpenAI, Azure OpenAI and Ollama."""

from ado_gateway.adapters.llm.base import AbstractLLMClient
from ado_gateway.adapters.llm.factory import create_llm_client
from ado_gateway.adapters.llm.ollama_client import OllamaClient
from ado_gateway.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OllamaClient",
    "OpenAIClient",
    "create_llm_client",
]
