"""LLM Client for the Gemini generateContent REST API."""
import re
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any
import httpx
import logging

from config import GEMINI_API_KEY, GEMINI_API_BASE, GEMINI_MODEL, REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*")
_CODE_FENCE_END = re.compile(r"\s*```$")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```) from a model reply."""
    return _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", text.strip()))


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for the Gemini text generation endpoint. One request per call, no retries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        api_base: str = GEMINI_API_BASE
    ):
        """
        Initialize LLM client with a Gemini API key.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY from environment)
            model: Model name used in the endpoint path
            timeout: Request timeout in seconds; a timed out request is aborted
            api_base: Base URL of the models collection
        """
        self.api_key = api_key or GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY must be provided or set in environment")

        self.model = model
        self.timeout = timeout
        self.api_url = f"{api_base}/{model}:generateContent"
        logger.info(f"LLMClient initialized for model {model} (timeout={timeout}s)")

    @staticmethod
    def build_payload(prompt: str, response_mime_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Build the generateContent request body.

        Args:
            prompt: Complete prompt text
            response_mime_type: Set to "application/json" to request a structured reply

        Returns:
            JSON-serialisable request body
        """
        payload: Dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}]
                }
            ]
        }
        if response_mime_type:
            payload["generationConfig"] = {"responseMimeType": response_mime_type}
        return payload

    def generate(self, prompt: str, response_mime_type: Optional[str] = None) -> LLMResponse:
        """
        Generate a response for a single user prompt.

        Args:
            prompt: Complete prompt text
            response_mime_type: Optional response MIME type for structured output

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()
        payload = self.build_payload(prompt, response_mime_type)

        try:
            logger.debug(f"Generating response with model: {self.model}")

            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.api_url,
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                    json=payload
                )
        except httpx.TimeoutException as e:
            raise self._error(
                "TIMEOUT_ERROR",
                f"Request timed out after {self.timeout}s.",
                start_time,
                e
            )
        except httpx.RequestError as e:
            raise self._error(
                "NETWORK_ERROR",
                f"Network error: {str(e)}",
                start_time,
                e
            )

        latency_ms = int((time.time() - start_time) * 1000)

        if not 200 <= response.status_code < 300:
            reason = f"{response.status_code} {response.reason_phrase} - {response.text}"
            if response.status_code in (401, 403):
                code, message = "AUTHENTICATION_ERROR", f"Authentication failed. Please check your API key. ({reason})"
            elif response.status_code == 429:
                code, message = "RATE_LIMIT_ERROR", f"Rate limit exceeded. ({reason})"
            else:
                code, message = "API_ERROR", f"Gemini API error: {reason}"
            raise self._error(code, message, start_time, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise self._error(
                "MALFORMED_RESPONSE",
                "Gemini API returned a non-JSON body.",
                start_time,
                e
            )

        text = self.extract_text(data)
        if text is None:
            raise self._error(
                "EMPTY_RESPONSE",
                "Gemini API response did not contain a text part.",
                start_time
            )

        usage = data.get("usageMetadata") or {}
        tokens_input = int(usage.get("promptTokenCount", 0))
        tokens_output = int(usage.get("candidatesTokenCount", 0))

        logger.info(
            f"Generated response: model={self.model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=self.model
        )

    @staticmethod
    def extract_text(data: Any) -> Optional[str]:
        """Return candidates[0].content.parts[0].text, or None if any step is missing."""
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None

    def _error(
        self,
        code: str,
        message: str,
        start_time: float,
        original: Optional[Exception] = None,
        status_code: Optional[int] = None
    ) -> LLMClientError:
        """Log a failed request and wrap it in an LLMClientError."""
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {
            "model": self.model,
            "latency_ms": latency_ms,
        }
        if status_code is not None:
            details["status_code"] = status_code
        if original is not None:
            details["original_error"] = str(original)
            details["error_type"] = type(original).__name__

        error = LLMError(code=code, message=message, details=details)
        logger.error(
            f"LLM request failed: code={code}, model={self.model}, latency={latency_ms}ms, error={message}",
            exc_info=original is not None,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
