"""Validation and decoding of the model's JSON payload.

Two stages run before the payload is trusted:

1. ``is_well_formed_json`` is a cheap structural pre-flight. It catches the
   dominant real-world failure, a generation cut off part way through, and
   lets the orchestrator classify it as a truncated response rather than
   a generic parse error.
2. ``decode_analysis`` maps the parsed tree onto ``AIAnalysis``, checking
   field types and normalizing optional lists.
"""

import json
import logging
from typing import Any

from src.engines.channels import Channel
from src.engines.models import AIAnalysis, AnalysisStatus, Idea
from src.engines.schema_builder import (
    FIELD_CHANNELS,
    FIELD_CONS,
    FIELD_IDEA,
    FIELD_PROS,
    FIELD_RATIONALE,
    FIELD_STATUS,
    FIELD_SUMMARY,
)


logger = logging.getLogger(__name__)


class ResponseDecodeError(ValueError):
    """Raised when a structurally valid payload does not match the expected shape.

    Attributes:
        path: Location of the offending value (e.g. "channels.instagram[0].idea")
        reason: What was wrong with it
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid value at '{path}': {reason}")


def is_well_formed_json(text: str | None) -> bool:
    """Check that text is a complete, balanced JSON object.

    Args:
        text: Raw payload text from the model.

    Returns:
        False for empty input, text not wrapped in braces, unbalanced
        braces or brackets outside string literals, or anything the JSON
        parser rejects. True otherwise.

    Example:
        >>> is_well_formed_json('{"a": "va\\\\"lue"}')
        True
        >>> is_well_formed_json('{"a": [1, 2}')
        False
    """
    if text is None or not text.strip():
        logger.warning("JSON content is null or empty")
        return False

    trimmed = text.strip()

    if not trimmed.startswith("{") or not trimmed.endswith("}"):
        logger.warning(f"JSON doesn't start with {{ or end with }}: {trimmed[:200]}")
        return False

    brace_count, bracket_count = _count_structure(trimmed)
    if brace_count != 0 or bracket_count != 0:
        logger.warning(
            f"Unbalanced JSON structure: braces={brace_count}, brackets={bracket_count}"
        )
        return False

    try:
        json.loads(trimmed)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON structure validation failed: {e}")
        return False

    return True


def _count_structure(text: str) -> tuple[int, int]:
    """Return net brace and bracket counts outside string literals."""
    brace_count = 0
    bracket_count = 0
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            brace_count += 1
        elif char == "}":
            brace_count -= 1
        elif char == "[":
            bracket_count += 1
        elif char == "]":
            bracket_count -= 1

    return brace_count, bracket_count


def decode_analysis(
    text: str,
    allowed_channels: list[Channel] | None = None,
) -> AIAnalysis:
    """Decode the model payload into an AIAnalysis.

    Args:
        text: Payload that already passed ``is_well_formed_json``.
        allowed_channels: Channels that were requested. Ideas under any
            other key are dropped with a warning. None accepts every
            known channel.

    Returns:
        The decoded analysis with channel keys in canonical form and
        ideas in source order.

    Raises:
        ResponseDecodeError: If a field is missing or has the wrong type.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseDecodeError("$", str(e)) from e

    if not isinstance(data, dict):
        raise ResponseDecodeError("$", "expected a JSON object")

    status = data.get(FIELD_STATUS)
    if not isinstance(status, str):
        raise ResponseDecodeError(FIELD_STATUS, "expected a string")

    summary = data.get(FIELD_SUMMARY)
    if summary is not None and not isinstance(summary, str):
        raise ResponseDecodeError(FIELD_SUMMARY, "expected a string")

    # A refusal keeps its summary; channels are not read
    if status != AnalysisStatus.SUCCESS.value:
        return AIAnalysis(status=status, summary=summary, channels={})

    raw_channels = data.get(FIELD_CHANNELS)
    if raw_channels is None:
        raw_channels = {}
    if not isinstance(raw_channels, dict):
        raise ResponseDecodeError(FIELD_CHANNELS, "expected an object")

    allowed = set(allowed_channels) if allowed_channels is not None else set(Channel)
    channels: dict[str, list[Idea]] = {}

    for name, raw_ideas in raw_channels.items():
        channel = Channel.from_name(name)
        if channel is None or channel not in allowed:
            logger.warning(f"Ignoring ideas for unrequested channel '{name}'")
            continue
        path = f"{FIELD_CHANNELS}.{name}"
        ideas = channels.setdefault(channel.key, [])
        ideas.extend(_decode_ideas(raw_ideas, path))

    return AIAnalysis(status=status, summary=summary, channels=channels)


def _decode_ideas(raw_ideas: Any, path: str) -> list[Idea]:
    if raw_ideas is None:
        return []
    if not isinstance(raw_ideas, list):
        raise ResponseDecodeError(path, "expected an array of ideas")

    ideas = []
    for index, raw in enumerate(raw_ideas):
        item_path = f"{path}[{index}]"
        if not isinstance(raw, dict):
            raise ResponseDecodeError(item_path, "expected an idea object")
        ideas.append(
            Idea(
                description=_require_string(raw, FIELD_IDEA, item_path),
                rationale=_require_string(raw, FIELD_RATIONALE, item_path),
                pros=_string_list(raw.get(FIELD_PROS), f"{item_path}.{FIELD_PROS}"),
                cons=_string_list(raw.get(FIELD_CONS), f"{item_path}.{FIELD_CONS}"),
            )
        )
    return ideas


def _require_string(raw: dict[str, Any], key: str, path: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        raise ResponseDecodeError(f"{path}.{key}", "expected a string")
    return value


def _string_list(value: Any, path: str) -> list[str]:
    """Missing or null lists become empty lists."""
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ResponseDecodeError(path, "expected an array of strings")
    return list(value)
