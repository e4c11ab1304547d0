"""Engines module - core processing components."""

from src.engines.channels import Channel, normalize_channels
from src.engines.llm_client import OpenAIClient, extract_output_text
from src.engines.models import (
    AnalysisRequest,
    AnalysisResponse,
    AnalysisSession,
    AnalysisStatus,
    FailureKind,
    Idea,
    LLMResult,
)
from src.engines.response_validator import (
    ResponseDecodeError,
    decode_analysis,
    is_well_formed_json,
)
from src.engines.session_store import (
    InMemorySessionStore,
    SQLiteSessionStore,
    SessionStoreError,
    create_session_store,
)

__all__ = [
    # Channels
    "Channel",
    "normalize_channels",
    # LLM client
    "OpenAIClient",
    "extract_output_text",
    # Models
    "AnalysisRequest",
    "AnalysisResponse",
    "AnalysisSession",
    "AnalysisStatus",
    "FailureKind",
    "Idea",
    "LLMResult",
    # Validation
    "decode_analysis",
    "is_well_formed_json",
    # Session stores
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "create_session_store",
    # Exceptions
    "ResponseDecodeError",
    "SessionStoreError",
]
