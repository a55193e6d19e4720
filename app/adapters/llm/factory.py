"""Factory pattern for creating LLM client instances."""

import logging

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.gemini_client import GeminiClient
from app.core.config import settings
from app.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


def create_llm_client() -> AbstractLLMClient:
    """Instantiate the Gemini client from current settings.

    Called per request so a key provisioned after startup is picked up and
    a missing key fails the request rather than the process.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ConfigurationAppError: If GEMINI_API_KEY is not configured.
    """
    if not settings.gemini.api_key:
        logger.error(
            "llm.missing_api_key",
            extra={"hint": "Set the GEMINI_API_KEY environment variable"},
        )
        raise ConfigurationAppError(
            code="llm_missing_api_key",
            message="API key is not configured on the server.",
        )

    return GeminiClient(
        api_key=settings.gemini.api_key,
        model=settings.gemini.model,
        base_url=settings.gemini.base_url,
        timeout_seconds=settings.gemini.timeout_seconds,
    )
