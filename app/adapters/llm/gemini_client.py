"""Gemini REST client adapter (generateContent over httpx)."""

import json
import logging
from typing import Any

import httpx

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError, UpstreamAppError
from app.schemas.diagnosis import InlineImage

logger = logging.getLogger(__name__)


def build_generate_content_payload(prompt: str, image: InlineImage | None = None) -> dict[str, Any]:
    """Build a single-turn ``generateContent`` request body.

    Args:
        prompt: Text part of the user message.
        image: Optional image appended as an ``inlineData`` part.

    Returns:
        dict[str, Any]: ``{"contents": [{"role": "user", "parts": [...]}]}``.
    """
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if image is not None:
        parts.append({"inlineData": image.model_dump(by_alias=True)})
    return {"contents": [{"role": "user", "parts": parts}]}


def extract_candidate_text(data: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or "" if any level is missing."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class GeminiClient(AbstractLLMClient):
    """Client for the Gemini ``generateContent`` endpoint.

    The API key travels as the ``key`` query parameter and the model id is
    part of the URL path. One HTTP connection is opened per call.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout_seconds: float = 45.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key: Gemini API key.
            model: Model identifier (e.g. "gemini-2.5-flash-preview-05-20").
            base_url: Base URL of the Generative Language API.
            timeout_seconds: Deadline applied to the upstream call.
            transport: Optional httpx transport (used by tests).
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_text(
        self,
        prompt: str,
        *,
        image: InlineImage | None = None,
        **kwargs: Any,
    ) -> str:
        """Call generateContent and return the first candidate's text.

        Raises:
            UpstreamAppError: If Gemini answers with a non-2xx status. The
                decoded JSON error body is carried for pass-through.
            LLMAppError: On network failures or timeouts.
            ValueError: If a response body is not valid JSON.
        """
        payload = build_generate_content_payload(prompt, image)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                # ASCII-escaped so lone surrogates in the prompt survive encoding
                response = await client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    content=json.dumps(payload),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            # httpx error messages may embed the request URL, which holds the key
            raise LLMAppError(
                code="upstream_unreachable",
                message=f"Gemini request failed: {type(exc).__name__}",
                details={"model": self.model},
            ) from exc

        if not response.is_success:
            error_body = response.json()
            logger.error(
                "gemini.upstream_error",
                extra={
                    "status_code": response.status_code,
                    "error_body": error_body,
                    "model": self.model,
                },
            )
            raise UpstreamAppError(
                code="upstream_error",
                message="Gemini API returned an error",
                details={"http_status": response.status_code, "model": self.model},
                status_code=response.status_code,
                body=error_body,
            )

        text = extract_candidate_text(response.json())
        logger.info(
            "gemini.response_received",
            extra={
                "model": self.model,
                "has_image": image is not None,
                "reply_chars": len(text),
            },
        )
        return text
