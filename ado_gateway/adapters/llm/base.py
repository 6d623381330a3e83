from abc import ABC, abstractmethod


class AbstractLLMClient(ABC):
	"""Interface for LLM clients that turn a system/user prompt pair into text."""

	model: str

	@abstractmethod
	async def generate(self, system_prompt: str, user_prompt: str) -> str:
		"""Generate a completion for the given prompts.

		Args:
			system_prompt: Instructions framing the model's behavior.
			user_prompt: The caller's message.

		Returns:
			str: Model output with surrounding whitespace stripped.

		Raises:
			LLMAppError: If the provider call fails or returns no content.
		"""
		...
