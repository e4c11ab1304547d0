"""Analysis orchestrator for content idea generation.

This module drives one request from raw page text to a stored session:

    1. Reject requests without text content (no LLM call is made)
    2. Generate a session id and truncate oversized content up front
    3. Normalize the requested channels
    4. Call the LLM client with the rendered prompt and response schema
    5. Validate the payload structure, decode it and check the AI status
    6. Store the session and build the response

If the response comes back truncated and the content can still be
shortened, steps 4-6 run one more time with shorter content. Every
failure is returned as a FAILURE response, nothing is raised to callers.
"""

import logging
import threading
from collections import deque
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from src.config.settings import Settings
from src.engines.channels import Channel, normalize_channels
from src.engines.models import (
    AIAnalysis,
    AnalysisAttempt,
    AnalysisRequest,
    AnalysisResponse,
    AnalysisSession,
    AnalysisStatus,
    ChannelIdeas,
    FailureKind,
    generate_session_id,
)
from src.engines.observability import AnalysisMetrics, log_analysis_metrics
from src.engines.prompt_builder import PromptBuilder
from src.engines.response_validator import (
    ResponseDecodeError,
    decode_analysis,
    is_well_formed_json,
)
from src.engines.schema_builder import build_top_level_schema
from src.engines.session_store import SessionStore


logger = logging.getLogger(__name__)


ERROR_NO_CONTENT = (
    "No content provided for analysis - please ensure the page content is being "
    "captured properly by the extension. Check if the page has loaded completely "
    "or if there are any content extraction issues."
)
ERROR_INCOMPLETE_RESPONSE = "Received incomplete response from AI service. Please try again."
ERROR_AI_REJECTED = "AI could not analyze content"
SUCCESS_DEFAULT_SUMMARY = "Content analyzed successfully"
ANALYSIS_ERROR_PREFIX = "Analysis error: "
PARSE_ERROR_PREFIX = "Failed to parse AI response: "

STATUS_NOT_FOUND = "NOT_FOUND"

# Most recent per-analysis metrics kept in memory
METRICS_HISTORY_LIMIT = 1000


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for structured-output LLM clients."""

    def analyze(self, instructions: str, input_text: str, schema: dict[str, Any]):
        """Return an LLMResult for the given prompt, content and schema."""
        ...


class ContentAnalyzer:
    """Turn webpage content into per-channel content ideas.

    The analyzer holds no per-request state, so one instance can serve
    many threads. The session store is the only shared mutable resource.

    Attributes:
        settings: Configuration for prompts, schema bounds and truncation
        client: LLM client used for every analysis
        store: Session store receiving successful analyses
        prompt_builder: Renders the instruction text

    Example:
        >>> analyzer = ContentAnalyzer(settings, client, InMemorySessionStore())
        >>> response = analyzer.analyze(AnalysisRequest(full_text="..."))
        >>> analyzer.get_session(response.session_id)
    """

    def __init__(
        self,
        settings: Settings,
        client: LLMClient,
        store: SessionStore,
        prompt_builder: PromptBuilder | None = None,
        metrics_history: int = METRICS_HISTORY_LIMIT,
    ) -> None:
        self.settings = settings
        self.client = client
        self.store = store
        self.prompt_builder = prompt_builder or PromptBuilder(
            min_ideas=settings.idea_min_items,
            max_ideas=settings.idea_max_items,
        )
        self._metrics: deque[AnalysisMetrics] = deque(maxlen=metrics_history)
        self._metrics_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        """Analyze one request. Never raises."""
        response, _ = self.analyze_with_metrics(request)
        return response

    def analyze_with_metrics(
        self,
        request: AnalysisRequest,
    ) -> tuple[AnalysisResponse, AnalysisMetrics]:
        """Analyze one request and return its metrics alongside the response.

        Args:
            request: Page content and requested channels

        Returns:
            Tuple of (response, metrics). Unexpected errors are logged with
            a traceback and reported as a FAILURE response of kind
            UNEXPECTED, carrying the session id if one was generated.
        """
        metrics = AnalysisMetrics()
        started = time.monotonic()

        try:
            response = self._run(request, metrics)
        except Exception as e:
            logger.exception(f"Unexpected error analyzing content: {e}")
            response = AnalysisResponse.failed(
                f"{ANALYSIS_ERROR_PREFIX}{e}",
                FailureKind.UNEXPECTED,
                metrics.session_id,
            )

        metrics.status = response.status
        metrics.failure_kind = response.failure_kind
        metrics.channel_count = len(response.channels)
        metrics.idea_count = sum(len(ideas) for ideas in response.channels.values())
        metrics.duration_seconds = time.monotonic() - started

        log_analysis_metrics(metrics)
        with self._metrics_lock:
            self._metrics.append(metrics)

        return response, metrics

    def analyze_batch(
        self,
        requests: list[AnalysisRequest],
        max_workers: int | None = None,
    ) -> list[AnalysisResponse]:
        """Analyze independent requests concurrently.

        Each request runs its own pipeline on a worker thread, so one
        request backing off after a rate limit does not hold up the others.

        Args:
            requests: Requests to analyze
            max_workers: Thread pool size (defaults to settings.max_workers)

        Returns:
            Responses in the same order as the requests.
        """
        if not requests:
            return []

        workers = max_workers or self.settings.max_workers
        responses: list[AnalysisResponse | None] = [None] * len(requests)

        logger.info(f"Analyzing {len(requests)} requests with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self.analyze, request): index
                for index, request in enumerate(requests)
            }
            for future in as_completed(futures):
                responses[futures[future]] = future.result()

        return responses

    def _run(self, request: AnalysisRequest, metrics: AnalysisMetrics) -> AnalysisResponse:
        if not request.full_text or not request.full_text.strip():
            logger.warning("Rejecting analysis request without text content")
            return AnalysisResponse.failed(ERROR_NO_CONTENT, FailureKind.INPUT_REJECTED)

        session_id = generate_session_id()
        metrics.session_id = session_id
        created_at = datetime.now()
        logger.info(
            f"Starting analysis {session_id} for '{request.title or request.url or 'untitled'}' "
            f"({len(request.full_text)} characters)"
        )

        attempt = AnalysisAttempt.first(
            request.full_text,
            self.settings.max_content_length,
            self.settings.truncated_content_length,
        )
        if attempt.truncated:
            logger.warning(
                f"Content of {len(request.full_text)} characters exceeds "
                f"{self.settings.max_content_length}, truncated to {len(attempt.content)}"
            )

        channels = normalize_channels(request.channels, self.settings.default_channels)
        channel_keys = [channel.key for channel in channels]

        instructions = self.prompt_builder.build(
            channel_keys,
            self.settings.business_context,
            self.settings.target_audience,
        )
        schema = build_top_level_schema(
            channel_keys,
            self.settings.idea_min_items,
            self.settings.idea_max_items,
        )

        while True:
            metrics.content_truncated = attempt.truncated
            response = self._attempt(
                request, session_id, created_at, attempt, channels, instructions, schema, metrics
            )

            if (
                response.failure_kind is FailureKind.TRUNCATED
                and attempt.number == 1
                and len(attempt.content) > self.settings.truncated_content_length
            ):
                attempt = attempt.shrink(self.settings.truncated_content_length)
                metrics.shrink_retry_used = True
                logger.warning(
                    f"Retrying analysis {session_id} with content shortened "
                    f"to {len(attempt.content)} characters"
                )
                continue

            return response

    def _attempt(
        self,
        request: AnalysisRequest,
        session_id: str,
        created_at: datetime,
        attempt: AnalysisAttempt,
        channels: list[Channel],
        instructions: str,
        schema: dict[str, Any],
        metrics: AnalysisMetrics,
    ) -> AnalysisResponse:
        """Run one LLM call and turn its result into a response."""
        metrics.llm_calls += 1
        result = self.client.analyze(instructions, attempt.content, schema)

        if not result.success:
            logger.error(f"LLM call failed for session {session_id}: {result.error_message}")
            return AnalysisResponse.failed(
                f"{ANALYSIS_ERROR_PREFIX}{result.error_message or ERROR_INCOMPLETE_RESPONSE}",
                result.failure_kind or FailureKind.TRANSPORT,
                session_id,
            )

        if not is_well_formed_json(result.content):
            logger.warning(f"Incomplete or malformed JSON response for session {session_id}")
            return AnalysisResponse.failed(
                ERROR_INCOMPLETE_RESPONSE, FailureKind.TRUNCATED, session_id
            )

        try:
            analysis = decode_analysis(result.content, channels)
        except ResponseDecodeError as e:
            logger.error(f"Failed to decode AI response for session {session_id}: {e}")
            return AnalysisResponse.failed(
                f"{PARSE_ERROR_PREFIX}{e}", FailureKind.DECODE_FAILURE, session_id
            )

        if analysis.status != AnalysisStatus.SUCCESS.value:
            logger.warning(
                f"AI reported status {analysis.status} for session {session_id}: {analysis.summary}"
            )
            return AnalysisResponse.failed(
                analysis.summary or ERROR_AI_REJECTED,
                FailureKind.SEMANTIC_REJECTION,
                session_id,
            )

        session = self._build_session(request, session_id, created_at, attempt, analysis)
        self.store.store_session(session)

        return AnalysisResponse(
            status=AnalysisStatus.SUCCESS,
            summary=session.summary,
            session_id=session_id,
            channels={
                record.channel.key: list(record.ideas)
                for record in session.channels
                if record.ideas
            },
        )

    def _build_session(
        self,
        request: AnalysisRequest,
        session_id: str,
        created_at: datetime,
        attempt: AnalysisAttempt,
        analysis: AIAnalysis,
    ) -> AnalysisSession:
        """Assemble the session committed to the store."""
        session = AnalysisSession.from_request(
            request, session_id, content=attempt.content, created_at=created_at
        )
        session.summary = analysis.summary or SUCCESS_DEFAULT_SUMMARY

        for key, ideas in analysis.channels.items():
            record = ChannelIdeas(channel=Channel(key))
            for idea in ideas:
                record.add_idea(idea)
            session.add_channel(record)

        logger.info(
            f"Analysis {session_id} produced {session.total_ideas} ideas "
            f"across {len(session.channels)} channels"
        )
        return session

    # -------------------------------------------------------------------------
    # Retrieval
    # -------------------------------------------------------------------------

    def get_session(self, session_id: str) -> AnalysisSession | None:
        return self.store.get_session(session_id)

    def list_sessions(self) -> list[AnalysisSession]:
        return self.store.list_sessions()

    def stats(self) -> dict[str, Any]:
        return self.store.stats()

    def session_details(self, session_id: str) -> dict[str, Any]:
        """Return the monitoring view of a stored session.

        Returns:
            A dict with status SUCCESS and the session's metadata, counts
            and ideas, or status NOT_FOUND and a message.
        """
        session = self.store.get_session(session_id)
        if session is None:
            return {
                "sessionId": session_id,
                "status": STATUS_NOT_FOUND,
                "message": f"No session found for sessionId: {session_id}",
            }

        return {
            "sessionId": session.session_id,
            "status": AnalysisStatus.SUCCESS.value,
            "title": session.title,
            "url": session.url,
            "summary": session.summary,
            "createdAt": session.created_at.isoformat(),
            "channelCount": len(session.channels),
            "totalIdeas": session.total_ideas,
            "channels": [
                {
                    "channel": record.channel.key,
                    "channelId": record.channel_id,
                    "ideaCount": len(record.ideas),
                    "ideas": [idea.to_dict() for idea in record.ideas],
                }
                for record in session.channels
            ],
        }

    def recorded_metrics(self) -> list[AnalysisMetrics]:
        """Return metrics for the most recent analyses, oldest first."""
        with self._metrics_lock:
            return list(self._metrics)
