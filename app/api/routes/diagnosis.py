import logging

from fastapi import APIRouter, Depends, Request

from app.adapters.llm.factory import create_llm_client
from app.core.errors import LLMAppError, UpstreamAppError
from app.core.payload_validation import read_diagnosis_payload
from app.core.rate_limit import enforce_rate_limit
from app.schemas.diagnosis import DiagnosisResponse
from app.services.diagnosis_service import DiagnosisService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Diagnosis"])


@router.post(
    "/gemini",
    response_model=DiagnosisResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def diagnose(request: Request) -> DiagnosisResponse:
    """Diagnose a problem from a prompt and optional photo.

    Accepts ``{"prompt": ..., "base64ImageData"?: ..., "imageType"?: ...}``,
    forwards it to Gemini and returns the reply split into likely issues and
    next steps.

    Args:
        request: Incoming request; the JSON body is read and validated here.

    Returns:
        DiagnosisResponse: Structured diagnosis.

    Raises:
        ConfigurationAppError: 500 when GEMINI_API_KEY is missing.
        ValidationAppError: 400 for malformed JSON or a missing prompt.
        PayloadTooLargeAppError: 413 when the payload exceeds the bound.
        UpstreamAppError: Upstream status and body passed through.
        LLMAppError: 500 for any other failure talking to the upstream.
    """
    # Step 1: Configuration check, before touching the body
    llm = create_llm_client()

    # Step 2: Parse and bound the payload
    payload = await read_diagnosis_payload(request)

    # Step 3: Call the model and structure its reply
    try:
        return await DiagnosisService(llm=llm).diagnose(payload)
    except UpstreamAppError:
        raise
    except Exception as exc:
        logger.error(
            "diagnosis.failed",
            extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        raise LLMAppError(
            code="internal_error",
            message="An internal server error occurred.",
        ) from exc
