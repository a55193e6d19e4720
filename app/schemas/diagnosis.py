"""Pydantic schemas for the diagnosis endpoint.

Wire names are camelCase to match what browser clients already send and
expect; Python attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CONFIDENCE = "N/A"
DEFAULT_NEXT_STEPS = "No specific steps provided."
DEFAULT_PREVENTION = "No prevention tips provided."
DEFAULT_DISCLAIMER = (
    "This is an AI-generated diagnosis and may not be accurate. "
    "Consult a professional for serious issues."
)


class DiagnosisRequest(BaseModel):
    """Inbound payload: a prompt and an optional base64-encoded image.

    Only the camelCase wire names are read; snake_case keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    prompt: str | None = Field(
        default=None,
        description="User prompt forwarded to the model. Required and non-empty.",
    )
    base64_image_data: str | None = Field(
        default=None,
        alias="base64ImageData",
        description="Base64 image bytes, forwarded verbatim.",
    )
    image_type: str | None = Field(
        default=None,
        alias="imageType",
        description="MIME type of the image (e.g. image/jpeg).",
    )


class InlineImage(BaseModel):
    """Image attached to the upstream request as an ``inlineData`` part."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(..., alias="mimeType")
    data: str


class DiagnosisResponse(BaseModel):
    """Structured diagnosis extracted from the model's free-text reply.

    Every field has a placeholder default; extraction only overrides
    ``likely_issues`` and ``next_steps``.
    """

    model_config = ConfigDict(populate_by_name=True)

    likely_issues: list[str] = Field(
        default_factory=list,
        alias="likelyIssues",
        description="Diagnosis and cause spans, in that order, when present.",
    )
    confidence: str = Field(default=DEFAULT_CONFIDENCE)
    next_steps: str = Field(
        default=DEFAULT_NEXT_STEPS,
        alias="nextSteps",
        description="Solution span, when present.",
    )
    prevention: str = Field(default=DEFAULT_PREVENTION)
    disclaimer: str = Field(default=DEFAULT_DISCLAIMER)
