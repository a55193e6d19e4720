from abc import ABC, abstractmethod
from typing import Any

from app.schemas.diagnosis import InlineImage


class AbstractLLMClient(ABC):
	"""Interface for LLM clients that return the model's free-text reply."""

	@abstractmethod
	async def generate_text(
		self,
		prompt: str,
		*,
		image: InlineImage | None = None,
		**kwargs: Any,
	) -> str:
		"""Send a single-turn prompt (optionally with an image) to the model.

		Args:
			prompt: User prompt to send to the model.
			image: Optional inline image forwarded verbatim.
			**kwargs: Provider-specific options.

		Returns:
			str: Text of the first candidate, or "" when the reply has none.

		Raises:
			UpstreamAppError: If the provider answers with a non-success status.
		"""
		...
