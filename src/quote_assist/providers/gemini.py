"""Google Gemini generation adapter.

Wraps ``google.genai`` so that a call returns ``Success(text)`` or
``Failure(GenerationError)`` instead of raising. Upstream errors are
classified by status code and message so callers can tell a bad key from an
exhausted quota or a safety block.
"""

import logging
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
import httpx

from quote_assist.config.types import FrozenConfig
from quote_assist.core.types import Failure, Result, Success
from quote_assist.exceptions import GenerationError, GenerationErrorKind

log = logging.getLogger(__name__)

PROVIDER_NAME = "Google Gemini"

_USER_MESSAGES = {
    GenerationErrorKind.INVALID_CREDENTIALS: "Invalid Gemini API key. Check your configuration.",
    GenerationErrorKind.QUOTA_EXHAUSTED: "Gemini quota exhausted. Check your plan in Google AI Studio.",
    GenerationErrorKind.RATE_LIMITED: "Gemini rate limit exceeded. Wait a few minutes.",
    GenerationErrorKind.SAFETY_BLOCKED: "Content blocked by Gemini safety filters.",
    GenerationErrorKind.NETWORK: "Could not reach the Gemini API.",
    GenerationErrorKind.TIMEOUT: "The Gemini API did not answer in time.",
    GenerationErrorKind.UNAVAILABLE: "The Gemini service is unavailable.",
}

# HTTP status codes
_UNAUTHORIZED = 401
_FORBIDDEN = 403
_TOO_MANY_REQUESTS = 429
_SERVER_ERROR = 500


def _kind_from_message(text: str, code: int | None) -> GenerationErrorKind:
    upper = text.upper()
    if "API_KEY_INVALID" in upper or "API KEY NOT VALID" in upper:
        return GenerationErrorKind.INVALID_CREDENTIALS
    if "QUOTA" in upper or "RESOURCE_EXHAUSTED" in upper:
        return GenerationErrorKind.QUOTA_EXHAUSTED
    if "RATE_LIMIT" in upper or "RATE LIMIT" in upper or code == _TOO_MANY_REQUESTS:
        return GenerationErrorKind.RATE_LIMITED
    if "SAFETY" in upper:
        return GenerationErrorKind.SAFETY_BLOCKED
    if code in (_UNAUTHORIZED, _FORBIDDEN):
        return GenerationErrorKind.INVALID_CREDENTIALS
    if (code is not None and code >= _SERVER_ERROR) or "UNAVAILABLE" in upper:
        return GenerationErrorKind.UNAVAILABLE
    return GenerationErrorKind.UNKNOWN


def classify_generation_error(error: Exception) -> GenerationError:
    """Map an exception raised by the SDK or transport to a `GenerationError`."""
    if isinstance(error, GenerationError):
        return error
    if isinstance(error, httpx.TimeoutException | TimeoutError):
        kind = GenerationErrorKind.TIMEOUT
    elif isinstance(error, httpx.TransportError | ConnectionError):
        kind = GenerationErrorKind.NETWORK
    else:
        code = error.code if isinstance(error, genai_errors.APIError) else None
        kind = _kind_from_message(str(error), code)

    message = _USER_MESSAGES.get(kind)
    text = f"{message} Original error: {error}" if message else f"Generation failed: {error}"
    generation_error = GenerationError(text, kind)
    generation_error.__cause__ = error
    return generation_error


class GeminiGenerator:
    """Callable ``(prompt, max_output_tokens) -> Result[str, GenerationError]``.

    The client is created lazily from ``config.api_key`` unless one is
    injected. Without an API key every call fails with kind ``UNAVAILABLE``
    and no request is made.
    """

    def __init__(self, config: FrozenConfig, client: Any | None = None) -> None:  # noqa: D107
        self.config = config
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.config.api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def _generation_config(
        self, max_output_tokens: int, response_schema: Any | None = None
    ) -> types.GenerateContentConfig:
        structured: dict[str, Any] = {}
        if response_schema is not None:
            structured = {
                "response_mime_type": "application/json",
                "response_schema": response_schema,
            }
        return types.GenerateContentConfig(
            temperature=self.config.temperature,
            top_k=self.config.top_k,
            top_p=self.config.top_p,
            max_output_tokens=max_output_tokens,
            **structured,
        )

    def _unavailable(self) -> Failure[GenerationError]:
        return Failure(
            GenerationError(
                "Gemini API key is not configured; set QUOTE_ASSIST_API_KEY.",
                GenerationErrorKind.UNAVAILABLE,
            )
        )

    def _to_result(self, response: Any) -> Result[str, GenerationError]:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            return Failure(
                GenerationError(
                    f"{_USER_MESSAGES[GenerationErrorKind.SAFETY_BLOCKED]} "
                    f"Reason: {block_reason}",
                    GenerationErrorKind.SAFETY_BLOCKED,
                )
            )
        text = getattr(response, "text", None)
        if not isinstance(text, str) or not text.strip():
            return Failure(
                GenerationError(
                    "Gemini returned an empty response.",
                    GenerationErrorKind.EMPTY_RESPONSE,
                )
            )
        return Success(text)

    def _failure(self, error: Exception) -> Failure[GenerationError]:
        classified = classify_generation_error(error)
        log.warning(
            "Gemini call failed (%s): %s", classified.kind.value, error, exc_info=True
        )
        return Failure(classified)

    def __call__(
        self,
        prompt: str,
        max_output_tokens: int,
        *,
        response_schema: Any | None = None,
    ) -> Result[str, GenerationError]:
        """Generate text for `prompt` with the given output-token ceiling.

        A `response_schema` (pydantic model or JSON schema) switches the call
        to JSON output constrained by that schema.
        """
        if not self.available:
            return self._unavailable()
        log.debug(
            "Calling %s with max_output_tokens=%d.", self.config.model, max_output_tokens
        )
        try:
            response = self._get_client().models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=self._generation_config(max_output_tokens, response_schema),
            )
        except Exception as e:
            return self._failure(e)
        return self._to_result(response)

    async def agenerate(
        self,
        prompt: str,
        max_output_tokens: int,
        *,
        response_schema: Any | None = None,
    ) -> Result[str, GenerationError]:
        """Async variant of calling the generator."""
        if not self.available:
            return self._unavailable()
        try:
            response = await self._get_client().aio.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=self._generation_config(max_output_tokens, response_schema),
            )
        except Exception as e:
            return self._failure(e)
        return self._to_result(response)

    def describe(self) -> dict[str, Any]:
        """Availability, provider, model and limits of this generator."""
        return {
            "available": self.available,
            "provider": PROVIDER_NAME,
            "model": self.config.model,
            "limits": {
                "requests_per_window": self.config.requests_per_window,
                "window_seconds": self.config.window_seconds,
                "max_task_suggestions": self.config.max_task_suggestions,
            },
        }
