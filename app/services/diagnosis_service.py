"""Diagnosis service turning a prompt into a structured diagnosis.

The model is asked in free text; its reply is expected to carry bold
``**Diagnosis:**``, ``**Cause:**`` and ``**Solution:**`` markers. Each
section is captured up to the next marker that may follow it, or to the end
of the reply. Missing sections leave the corresponding defaults in place.
"""

import re
from dataclasses import dataclass

from app.adapters.llm.base import AbstractLLMClient
from app.schemas.diagnosis import DiagnosisRequest, DiagnosisResponse, InlineImage


@dataclass(frozen=True)
class SectionRule:
    """Capture rule for one labeled section of the reply."""

    name: str
    marker: str
    terminators: tuple[str, ...]

    @property
    def pattern(self) -> re.Pattern[str]:
        stops = "|".join(re.escape(t) for t in self.terminators)
        return re.compile(
            rf"{re.escape(self.marker)}\s*([\s\S]*?)(?={stops}|\Z)",
            re.IGNORECASE,
        )


SECTION_RULES: tuple[SectionRule, ...] = (
    SectionRule("diagnosis", "**Diagnosis:**", ("**Cause:**", "**Solution:**")),
    SectionRule("cause", "**Cause:**", ("**Solution:**",)),
    SectionRule("solution", "**Solution:**", ("**Prevention:**",)),
)

_COMPILED_RULES = {rule.name: rule.pattern for rule in SECTION_RULES}


def extract_sections(text: str) -> dict[str, str]:
    """Return the trimmed span of every section found in ``text``.

    Rules run independently over the whole text; only the first occurrence
    of each marker is used.
    """
    sections: dict[str, str] = {}
    for name, pattern in _COMPILED_RULES.items():
        match = pattern.search(text)
        if match:
            sections[name] = match.group(1).strip()
    return sections


def build_structured_response(text: str) -> DiagnosisResponse:
    """Map the model's reply onto a DiagnosisResponse.

    Diagnosis and cause go into ``likely_issues`` (cause prefixed with
    "Cause: "), solution replaces ``next_steps``. ``confidence`` and
    ``prevention`` always keep their defaults.
    """
    sections = extract_sections(text)
    response = DiagnosisResponse()

    if "diagnosis" in sections:
        response.likely_issues.append(sections["diagnosis"])
    if "cause" in sections:
        response.likely_issues.append(f"Cause: {sections['cause']}")
    if "solution" in sections:
        response.next_steps = sections["solution"]

    return response


def select_image(payload: DiagnosisRequest) -> InlineImage | None:
    """Attach an image only when both data and MIME type are provided."""
    if payload.base64_image_data and payload.image_type:
        return InlineImage(mime_type=payload.image_type, data=payload.base64_image_data)
    return None


class DiagnosisService:
    """Service orchestrating the upstream call and reply extraction.

    Attributes:
        llm: LLM client adapter returning the model's text reply.
    """

    def __init__(self, llm: AbstractLLMClient) -> None:
        self.llm = llm

    async def diagnose(self, payload: DiagnosisRequest) -> DiagnosisResponse:
        """Send the prompt (and image) upstream and structure the reply.

        Args:
            payload: Validated request payload with a non-empty prompt.

        Returns:
            DiagnosisResponse built from the reply text.

        Raises:
            UpstreamAppError: If the upstream rejects the request.
        """
        text = await self.llm.generate_text(payload.prompt or "", image=select_image(payload))
        return build_structured_response(text)
