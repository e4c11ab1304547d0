"""Data models for content analysis.

Request and response shapes, the analysis session aggregate with its
channel and idea records, and the transient values passed between the
LLM client and the orchestrator.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.engines.channels import Channel


class AnalysisStatus(str, Enum):
    """Outcome reported to callers and by the model itself."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class FailureKind(str, Enum):
    """Classification of why an analysis did not succeed."""

    INPUT_REJECTED = "input_rejected"
    TRANSPORT = "transport"
    EMPTY_RESPONSE = "empty_response"
    NON_STRUCTURED = "non_structured"
    TRUNCATED = "truncated"
    SEMANTIC_REJECTION = "semantic_rejection"
    DECODE_FAILURE = "decode_failure"
    UNEXPECTED = "unexpected"


def generate_session_id() -> str:
    """Generate a unique analysis session identifier."""
    return str(uuid.uuid4())


def generate_channel_id() -> str:
    """Generate a unique channel record identifier."""
    return f"channel_{uuid.uuid4().hex}"


def generate_idea_id() -> str:
    """Generate a unique idea record identifier."""
    return f"idea_{uuid.uuid4().hex}"


@dataclass
class AnalysisRequest:
    """Webpage content submitted for analysis.

    Attributes:
        title: Page title
        full_text: Extracted page text, the only required field
        description: Page meta description
        url: Page URL
        headings: Headings extracted from the page
        channels: Requested channel names, defaults apply when empty
    """
    title: str | None = None
    full_text: str | None = None
    description: str | None = None
    url: str | None = None
    headings: list[str] = field(default_factory=list)
    channels: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisRequest":
        """Build a request from its JSON representation (camelCase keys)."""
        headings = data.get("headings") or []
        channels = data.get("channels")
        return cls(
            title=data.get("title"),
            full_text=data.get("fullText"),
            description=data.get("description"),
            url=data.get("url"),
            headings=[str(h) for h in headings],
            channels=[str(c) for c in channels] if channels is not None else None,
        )


@dataclass
class Idea:
    """A single content idea for one channel.

    pros and cons are always lists, possibly empty.
    """
    description: str
    rationale: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    idea_id: str = field(default_factory=generate_idea_id)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Return the external representation used in responses."""
        return {
            "idea": self.description,
            "rationale": self.rationale,
            "pros": list(self.pros),
            "cons": list(self.cons),
        }


@dataclass
class ChannelIdeas:
    """A channel record and the ideas generated for it, in source order."""
    channel: Channel
    ideas: list[Idea] = field(default_factory=list)
    channel_id: str = field(default_factory=generate_channel_id)
    created_at: datetime = field(default_factory=datetime.now)

    def add_idea(self, idea: Idea) -> None:
        self.ideas.append(idea)


@dataclass
class AnalysisSession:
    """Aggregate root for one analysis.

    Attributes:
        session_id: Unique identifier generated at request start
        original_content: Content that was sent to the model
        title: Page title
        description: Page description
        url: Page URL
        headings: Page headings
        summary: Summary returned by the model
        created_at: When the analysis started
        channels: Channel records in the order the model returned them
    """
    session_id: str
    original_content: str
    title: str | None = None
    description: str | None = None
    url: str | None = None
    headings: list[str] = field(default_factory=list)
    summary: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    channels: list[ChannelIdeas] = field(default_factory=list)

    @classmethod
    def from_request(
        cls,
        request: AnalysisRequest,
        session_id: str,
        content: str | None = None,
        created_at: datetime | None = None,
    ) -> "AnalysisSession":
        """Create a session for a request.

        Args:
            request: The analyzed request
            session_id: Identifier generated when the analysis started
            content: Content actually sent to the model, defaults to the
                request's full text
            created_at: When the analysis started, defaults to now
        """
        return cls(
            session_id=session_id,
            original_content=content if content is not None else (request.full_text or ""),
            title=request.title,
            description=request.description,
            url=request.url,
            headings=list(request.headings),
            created_at=created_at or datetime.now(),
        )

    def add_channel(self, channel_ideas: ChannelIdeas) -> None:
        self.channels.append(channel_ideas)

    @property
    def total_ideas(self) -> int:
        return sum(len(c.ideas) for c in self.channels)


@dataclass(frozen=True)
class AnalysisAttempt:
    """The content sent to the model on one pass of the pipeline.

    Truncation produces a new attempt instead of editing the session, so
    the session only receives its final content when it is committed.
    """
    content: str
    number: int = 1
    truncated: bool = False

    @classmethod
    def first(cls, content: str, max_length: int, truncated_length: int) -> "AnalysisAttempt":
        """Create the first attempt, cutting content over max_length down to truncated_length."""
        if len(content) > max_length:
            return cls(content=content[:truncated_length], truncated=True)
        return cls(content=content)

    def shrink(self, length: int) -> "AnalysisAttempt":
        """Return the next attempt with content cut to at most length chars."""
        return AnalysisAttempt(
            content=self.content[:length],
            number=self.number + 1,
            truncated=self.truncated or len(self.content) > length,
        )


@dataclass(frozen=True)
class LLMResult:
    """Outcome of one LLM client call.

    Exactly one of content and error_message is populated.
    """
    success: bool
    content: str | None = None
    error_message: str | None = None
    failure_kind: FailureKind | None = None

    @classmethod
    def ok(cls, content: str) -> "LLMResult":
        return cls(success=True, content=content)

    @classmethod
    def failure(cls, error_message: str, kind: FailureKind) -> "LLMResult":
        return cls(success=False, error_message=error_message, failure_kind=kind)


@dataclass
class AIAnalysis:
    """Typed view of the JSON payload produced by the model."""
    status: str
    summary: str | None
    channels: dict[str, list[Idea]] = field(default_factory=dict)


@dataclass
class AnalysisResponse:
    """Result returned to callers of the orchestrator.

    On failure channels is empty and summary carries the error message.
    failure_kind is internal and not part of the external representation.
    """
    status: AnalysisStatus
    summary: str
    session_id: str | None
    channels: dict[str, list[Idea]] = field(default_factory=dict)
    failure_kind: FailureKind | None = None

    @classmethod
    def failed(
        cls,
        summary: str,
        kind: FailureKind,
        session_id: str | None = None,
    ) -> "AnalysisResponse":
        return cls(
            status=AnalysisStatus.FAILURE,
            summary=summary,
            session_id=session_id,
            failure_kind=kind,
        )

    @property
    def success(self) -> bool:
        return self.status is AnalysisStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "sessionId": self.session_id,
            "status": self.status.value,
            "channels": {
                key: [idea.to_dict() for idea in ideas]
                for key, ideas in self.channels.items()
            },
        }
