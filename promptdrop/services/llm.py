import base64
import logging
from uuid import uuid4

import httpx
from openai import AsyncOpenAI
from openai import OpenAIError
from tenacity import RetryCallState
from tenacity import retry
from tenacity import stop_after_attempt
from tenacity import wait_exponential

from promptdrop.core.config import settings
from promptdrop.core.exceptions import ExternalCallFailure
from promptdrop.models.upload_models import FileRecord

# Configure module logger
logger = logging.getLogger(__name__)


class LLMError(ExternalCallFailure):
    """Raised when the text-generation call fails"""


# ---------------------------------------------------------------
# OpenAI-compatible client (OpenRouter by default)
# ---------------------------------------------------------------
timeout_config = httpx.Timeout(
    settings.LLM_CONNECT_TIMEOUT,
    read=settings.LLM_READ_TIMEOUT,
)

client = AsyncOpenAI(
    base_url=settings.llm_base_url,
    # The client refuses to build without a key; the call itself checks for a real one
    api_key=settings.openrouter_api_key or "missing-key",
    default_headers={"X-Title": "promptdrop"},
    timeout=timeout_config,
    max_retries=0,  # Retries are handled by tenacity below
)


# ---------------------------------------------------------------
# Helper predicate for tenacity retry
# ---------------------------------------------------------------


def _should_retry_llm_call(retry_state: RetryCallState) -> bool:
    """Retry only on rate limiting and transient server errors."""
    if not retry_state.outcome:
        return False

    exc = retry_state.outcome.exception()
    if not exc:
        return False

    # Unwrap our LLMError to get to the original cause (e.g., APIStatusError)
    actual_exception = exc.__cause__ if isinstance(exc, LLMError) and exc.__cause__ else exc

    status = getattr(actual_exception, "status", None) or getattr(actual_exception, "status_code", None)
    if status in {429, 500, 502, 503, 504}:
        logger.debug("Retryable API error status %s detected. Retrying...", status)
        return True
    return False


def _to_data_url(file: FileRecord) -> str:
    encoded = base64.b64encode(file.content).decode("ascii")
    return f"data:{file.mime_type or 'application/octet-stream'};base64,{encoded}"


def build_messages(prompt: str, file: FileRecord) -> list[dict]:
    """One user message: the prompt text followed by the file as base64 data."""
    data_url = _to_data_url(file)
    if file.mime_type.startswith("image/"):
        file_part = {"type": "image_url", "image_url": {"url": data_url}}
    else:
        file_part = {"type": "file", "file": {"filename": file.name, "file_data": data_url}}
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                file_part,
            ],
        }
    ]


@retry(
    wait=wait_exponential(multiplier=1, min=2, max=10),
    stop=stop_after_attempt(3),
    retry=_should_retry_llm_call,
    reraise=True,
)  # type: ignore
async def generate_text(prompt: str, file: FileRecord) -> str:
    """Send ``prompt`` and ``file`` to the model and return the first generated text."""
    request_id = str(uuid4())
    if not settings.openrouter_api_key:
        logger.error("[%s] No openrouter_api_key configured; cannot call %s", request_id, settings.model_id)
        raise LLMError("Text generation is not configured (openrouter_api_key is not set).")

    logger.info(
        "[%s] Making LLM API call with model %s for %s (%s, %d bytes)",
        request_id,
        settings.model_id,
        file.name,
        file.mime_type,
        file.size,
    )

    try:
        rsp = await client.chat.completions.create(
            model=settings.model_id,
            messages=build_messages(prompt, file),
        )

        logger.debug("[%s] Raw LLM response structure: %s", request_id, str(rsp))

        if not rsp or not getattr(rsp, "choices", None):
            logger.error("[%s] Invalid response structure from LLM API: %s", request_id, str(rsp))
            raise LLMError("Invalid response structure from LLM API")

        message = getattr(rsp.choices[0], "message", None)
        content = getattr(message, "content", None) if message is not None else None
        if content is None:
            logger.error("[%s] No content in first choice: %s", request_id, str(rsp.choices[0]))
            raise LLMError("LLM API response contained no text")

        logger.debug("[%s] LLM response received, length: %d chars", request_id, len(content))
        return content.strip()
    except LLMError:
        raise
    except OpenAIError as e:
        logger.error("[%s] OpenAI API error: %s", request_id, str(e), exc_info=True)
        raise LLMError(f"OpenAI API error: {str(e)}") from e
    except Exception as e:
        logger.exception("[%s] Unexpected error in LLM call", request_id)
        raise LLMError(f"Unexpected error in LLM call: {str(e)}") from e
