"""HTTP client for the structured-output LLM endpoint.

This module provides the OpenAIClient class, which posts instructions, page
content and a JSON Schema to a ``/responses`` endpoint, retries transient
HTTP failures with exponential backoff, and pulls the generated text out
of the response envelope.

The client never parses the generated JSON itself. It only classifies the
raw text:

    - no text anywhere in the envelope      -> EMPTY_RESPONSE
    - text that does not start with "{"     -> NON_STRUCTURED
    - large text that does not end with "}" -> TRUNCATED
    - HTTP or network failure               -> TRANSPORT
"""

import logging
import time
from typing import Any, Callable

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.engines.models import FailureKind, LLMResult
from src.engines.schema_builder import build_text_format


logger = logging.getLogger(__name__)


RESPONSES_ENDPOINT = "/responses"

# Request fields
FIELD_MODEL = "model"
FIELD_INSTRUCTIONS = "instructions"
FIELD_INPUT = "input"
FIELD_TEXT = "text"
FIELD_FORMAT = "format"
FIELD_TEMPERATURE = "temperature"

# Envelope fields
FIELD_OUTPUT = "output"
FIELD_MESSAGE = "message"
FIELD_CONTENT = "content"
FIELD_VALUE = "value"
FIELD_STATUS = "status"
FIELD_ERROR = "error"

ERROR_EMPTY_RESPONSE = "OpenAI returned empty response"
ERROR_PLAIN_TEXT_RESPONSE = (
    "OpenAI failed to return structured data. "
    "Received plain text response instead of JSON."
)
ERROR_TRUNCATED_RESPONSE = (
    "Received incomplete response from AI service. The response appears to be truncated."
)

HTTP_REQUEST_TIMEOUT = 408
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR_THRESHOLD = 500


def is_retryable_status(status_code: int) -> bool:
    """Return True for rate limits, request timeouts and server errors."""
    return (
        status_code == HTTP_TOO_MANY_REQUESTS
        or status_code == HTTP_REQUEST_TIMEOUT
        or status_code >= HTTP_SERVER_ERROR_THRESHOLD
    )


def is_retryable_error(exc: BaseException) -> bool:
    """Decide whether a failed request should be retried.

    Only HTTP errors with a retryable status qualify. Connection errors,
    client-side timeouts and every other status fail immediately.
    """
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return is_retryable_status(exc.response.status_code)
    return False


# =============================================================================
# Envelope extraction
# =============================================================================


def extract_output_text(body: Any) -> str | None:
    """Collect every generated text fragment from a response envelope.

    Each element of the ``output`` array may carry text in any of these
    shapes, and an element may carry more than one of them:

        {"message": {"content": [{"text": {"value": "..."}}]}}
        {"message": {"content": [{"text": "..."}]}}
        {"content": [{"text": "..."}]}
        {"content": [{"text": {"value": "..."}}]}

    Fragments are concatenated in array order. Anything that does not
    match a known shape is skipped, and empty fragments count as no text.

    Args:
        body: Decoded JSON body of the HTTP response.

    Returns:
        The concatenated text, or None if no fragment was found.

    Example:
        >>> extract_output_text({"output": [{"content": [{"text": "{}"}]}]})
        '{}'
    """
    if not isinstance(body, dict):
        return None

    output = body.get(FIELD_OUTPUT)
    if not isinstance(output, list):
        return None

    fragments: list[str] = []
    for item in output:
        if not isinstance(item, dict):
            continue

        message = item.get(FIELD_MESSAGE)
        if isinstance(message, dict):
            fragments.extend(_content_fragments(message.get(FIELD_CONTENT)))

        fragments.extend(_content_fragments(item.get(FIELD_CONTENT)))

    text = "".join(fragments)
    return text or None


def _content_fragments(content: Any) -> list[str]:
    """Pull text out of a content part list, tolerating both text shapes."""
    if not isinstance(content, list):
        return []

    fragments = []
    for part in content:
        if not isinstance(part, dict):
            continue
        text = part.get(FIELD_TEXT)
        if isinstance(text, str):
            fragments.append(text)
        elif isinstance(text, dict):
            value = text.get(FIELD_VALUE)
            if isinstance(value, str):
                fragments.append(value)
    return fragments


def _describe_empty_body(body: Any) -> str:
    """Build the empty-response error, including any status/error fields."""
    message = ERROR_EMPTY_RESPONSE
    if isinstance(body, dict):
        status = body.get(FIELD_STATUS)
        error = body.get(FIELD_ERROR)
        if status is not None:
            message += f" (status={status})"
        if error is not None:
            message += f" (error={error})"
    return message


# =============================================================================
# Client
# =============================================================================


class OpenAIClient:
    """Client for a structured-output ``/responses`` endpoint.

    Every call is independent and holds no shared mutable state, so one
    client can serve many threads at once. Backoff sleeps only block the
    calling thread.

    Attributes:
        base_url: Base URL the endpoint path is appended to.
        model: Model identifier sent with each request.
        temperature: Sampling temperature sent with each request.
        timeout: Connect/read timeout in seconds for one HTTP call.
        max_retries: Retries after the first attempt for retryable statuses.
        initial_delay: First backoff delay in seconds.
        max_backoff: Upper bound for a single backoff delay in seconds.
        schema_name: Name placed in the structured-output format envelope.
        strict: Whether the upstream must follow the schema strictly.
        truncation_risk_chars: Size above which an unclosed payload is
            treated as truncated.

    Example:
        >>> client = OpenAIClient(api_key="sk-test")
        >>> result = client.analyze("instructions", "page text", schema)
        >>> if result.success:
        ...     payload = result.content
    """

    DEFAULT_BASE_URL: str = "https://api.openai.com/v1"
    DEFAULT_MODEL: str = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        timeout: float = 120.0,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_backoff: float = 5.0,
        schema_name: str = "content_ideas_schema",
        strict: bool = True,
        truncation_risk_chars: int = 15000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Bearer token for the Authorization header.
            base_url: Base URL of the API.
            model: Model identifier.
            temperature: Sampling temperature.
            timeout: Per-request timeout in seconds.
            max_retries: Retries after the first attempt.
            initial_delay: First backoff delay in seconds.
            max_backoff: Maximum backoff delay in seconds.
            schema_name: Structured-output schema name.
            strict: Structured-output strict flag.
            truncation_risk_chars: Truncation heuristic threshold.
            sleep: Function used to wait between attempts.
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_backoff = max_backoff
        self.schema_name = schema_name
        self.strict = strict
        self.truncation_risk_chars = truncation_risk_chars
        self._sleep = sleep
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "OpenAIClient":
        """Create a client from a Settings instance."""
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.model,
            temperature=settings.temperature,
            timeout=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
            initial_delay=settings.retry_initial_delay_seconds,
            max_backoff=settings.retry_max_backoff_seconds,
            schema_name=settings.schema_name,
            strict=settings.strict_schema,
            truncation_risk_chars=settings.truncation_risk_chars,
            **kwargs,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{RESPONSES_ENDPOINT}"

    def build_payload(
        self,
        instructions: str,
        input_text: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Build the JSON request body."""
        return {
            FIELD_MODEL: self.model,
            FIELD_INSTRUCTIONS: instructions,
            FIELD_INPUT: input_text,
            FIELD_TEXT: {
                FIELD_FORMAT: build_text_format(schema, self.schema_name, self.strict),
            },
            FIELD_TEMPERATURE: self.temperature,
        }

    def analyze(
        self,
        instructions: str,
        input_text: str,
        schema: dict[str, Any],
    ) -> LLMResult:
        """Request structured content ideas and return the raw payload text.

        Args:
            instructions: Rendered instruction prompt.
            input_text: Page content to analyze.
            schema: JSON Schema the output must follow.

        Returns:
            LLMResult with the raw JSON text on success, or an error message
            and failure kind otherwise. Never raises for HTTP, network or
            envelope problems.
        """
        payload = self.build_payload(instructions, input_text, schema)

        try:
            body = self._post_with_retry(payload)
        except requests.HTTPError as e:
            return self._http_failure(e)
        except ValueError as e:
            # requests.JSONDecodeError is both a ValueError and a RequestException
            logger.error(f"Response from {self.endpoint} was not valid JSON: {e}")
            return LLMResult.failure(
                f"Error: invalid JSON in response body: {e}", FailureKind.TRANSPORT
            )
        except requests.RequestException as e:
            logger.error(f"Request to {self.endpoint} failed: {e}")
            return LLMResult.failure(f"Error: {e}", FailureKind.TRANSPORT)

        return self._classify(body)

    def _post_with_retry(self, payload: dict[str, Any]) -> Any:
        """Post the payload, retrying retryable HTTP statuses with backoff.

        Raises:
            requests.HTTPError: For non-retryable statuses, or the last
                retryable one once retries are exhausted.
            requests.RequestException: For network-level failures.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.initial_delay,
                min=self.initial_delay,
                max=self.max_backoff,
            ),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(self._post, payload)

    def _post(self, payload: dict[str, Any]) -> Any:
        """Send one request and return the decoded body."""
        logger.debug(f"Sending request to model '{self.model}' at {self.endpoint}")
        response = requests.post(
            self.endpoint,
            json=payload,
            headers=self._headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _http_failure(self, error: requests.HTTPError) -> LLMResult:
        response = error.response
        status = response.status_code if response is not None else "unknown"
        body = response.text[:500] if response is not None else ""
        logger.error(f"OpenAI request failed with HTTP {status}: {body}")
        return LLMResult.failure(
            f"OpenAI request failed with HTTP {status}: {body}",
            FailureKind.TRANSPORT,
        )

    def _classify(self, body: Any) -> LLMResult:
        """Turn a decoded envelope into a success or a classified failure."""
        text = extract_output_text(body)

        if text is None:
            message = _describe_empty_body(body)
            logger.error(message)
            return LLMResult.failure(message, FailureKind.EMPTY_RESPONSE)

        trimmed = text.strip()

        if not trimmed.startswith("{"):
            logger.error(
                f"OpenAI returned plain text instead of structured JSON. Response: {trimmed[:500]}"
            )
            return LLMResult.failure(ERROR_PLAIN_TEXT_RESPONSE, FailureKind.NON_STRUCTURED)

        if len(trimmed) > self.truncation_risk_chars and not trimmed.endswith("}"):
            logger.warning(
                f"Response of {len(trimmed)} characters is not closed, treating as truncated"
            )
            return LLMResult.failure(ERROR_TRUNCATED_RESPONSE, FailureKind.TRUNCATED)

        return LLMResult.ok(text)
