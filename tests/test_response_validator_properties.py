"""Property-based tests for payload validation and decoding.

Feature: content-ideas
Structural pre-flight checks and typed decoding of the model's JSON.
"""

import json

import pytest
from hypothesis import given, settings, strategies as st

from src.engines.channels import Channel
from src.engines.response_validator import (
    ResponseDecodeError,
    decode_analysis,
    is_well_formed_json,
)


json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-10**6, max_value=10**6),
    st.text(max_size=20),
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=10), children, max_size=4),
    ),
    max_leaves=20,
)
json_objects = st.dictionaries(st.text(max_size=10), json_values, max_size=5)


def _positions_outside_strings(text: str) -> list[int]:
    """Indices between characters that are not inside a string literal."""
    positions = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if not in_string:
            positions.append(index)
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
    positions.append(len(text))
    return positions


def _payload(**channels) -> str:
    return json.dumps({
        "status": "SUCCESS",
        "summary": "A short summary.",
        "channels": channels,
    })


def _idea(text: str = "Post a reel", **extra) -> dict:
    idea = {"idea": text, "rationale": "Reels reach new followers", "pros": ["reach"], "cons": []}
    idea.update(extra)
    return idea


class TestWellFormedJson:
    """Property tests for is_well_formed_json."""

    @given(obj=json_objects)
    @settings(max_examples=100)
    def test_valid_objects_accepted(self, obj):
        assert is_well_formed_json(json.dumps(obj))

    @given(obj=json_objects, data=st.data())
    @settings(max_examples=100)
    def test_extra_closing_brace_rejected(self, obj, data):
        text = json.dumps(obj)
        position = data.draw(st.sampled_from(_positions_outside_strings(text)))

        broken = text[:position] + "}" + text[position:]

        assert not is_well_formed_json(broken)

    def test_escaped_quote_inside_string(self):
        assert is_well_formed_json('{"a":"va\\"lue"}')

    def test_braces_inside_strings_ignored(self):
        assert is_well_formed_json('{"a": "}}]][[{{", "b": "\\\\"}')

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "   \n",
            "[1, 2]",
            "plain text",
            '{"a": 1',
            '{"a": [1, 2}',
            '{"a": 1}}',
            '{"a": 1,}',
            '{"a": "unterminated}',
        ],
    )
    def test_malformed_rejected(self, text):
        assert not is_well_formed_json(text)

    def test_surrounding_whitespace_allowed(self):
        assert is_well_formed_json('\n  {"a": 1}  \n')


class TestDecodeAnalysis:
    """Tests for decode_analysis."""

    def test_decodes_ideas_in_order(self):
        text = _payload(
            instagram=[_idea("first"), _idea("second")],
            linkedin=[_idea("third")],
        )

        analysis = decode_analysis(text, [Channel.INSTAGRAM, Channel.LINKEDIN])

        assert analysis.status == "SUCCESS"
        assert analysis.summary == "A short summary."
        assert list(analysis.channels) == ["instagram", "linkedin"]
        assert [i.description for i in analysis.channels["instagram"]] == ["first", "second"]
        assert analysis.channels["linkedin"][0].rationale == "Reels reach new followers"

    def test_missing_or_null_pros_cons_become_empty_lists(self):
        idea = {"idea": "Carousel", "rationale": "Swipeable", "pros": None}

        analysis = decode_analysis(_payload(instagram=[idea]), [Channel.INSTAGRAM])

        decoded = analysis.channels["instagram"][0]
        assert decoded.pros == []
        assert decoded.cons == []

    def test_channel_keys_canonicalized(self):
        analysis = decode_analysis(_payload(Twitter=[_idea()]), [Channel.X])

        assert list(analysis.channels) == ["x"]

    def test_unrequested_channels_ignored(self):
        text = _payload(instagram=[_idea()], facebook=[_idea()], x=[_idea()])

        analysis = decode_analysis(text, [Channel.INSTAGRAM])

        assert list(analysis.channels) == ["instagram"]

    def test_failure_status_decoded(self):
        text = json.dumps({"status": "FAILURE", "summary": "Page is a login form", "channels": {}})

        analysis = decode_analysis(text)

        assert analysis.status == "FAILURE"
        assert analysis.summary == "Page is a login form"
        assert analysis.channels == {}

    def test_failure_status_skips_channel_validation(self):
        text = json.dumps({
            "status": "FAILURE",
            "summary": "Page is a login wall",
            "channels": {"instagram": [{"rationale": "r", "pros": [], "cons": []}], "x": "oops"},
        })

        analysis = decode_analysis(text, [Channel.INSTAGRAM])

        assert analysis.status == "FAILURE"
        assert analysis.summary == "Page is a login wall"
        assert analysis.channels == {}

    def test_empty_idea_list_kept(self):
        analysis = decode_analysis(_payload(linkedin=[]), [Channel.LINKEDIN])

        assert analysis.channels == {"linkedin": []}

    @pytest.mark.parametrize(
        "payload,path",
        [
            ({"summary": "s", "channels": {}}, "status"),
            ({"status": "SUCCESS", "summary": 3, "channels": {}}, "summary"),
            ({"status": "SUCCESS", "summary": "s", "channels": []}, "channels"),
            ({"status": "SUCCESS", "summary": "s", "channels": {"x": "idea"}}, "channels.x"),
            ({"status": "SUCCESS", "summary": "s", "channels": {"x": ["idea"]}}, "channels.x[0]"),
            (
                {"status": "SUCCESS", "summary": "s", "channels": {"x": [{"rationale": "r"}]}},
                "channels.x[0].idea",
            ),
            (
                {
                    "status": "SUCCESS",
                    "summary": "s",
                    "channels": {"x": [{"idea": "i", "rationale": "r", "pros": [1]}]},
                },
                "channels.x[0].pros",
            ),
        ],
    )
    def test_wrong_shape_raises_with_path(self, payload, path):
        with pytest.raises(ResponseDecodeError) as exc_info:
            decode_analysis(json.dumps(payload))

        assert exc_info.value.path == path
        assert path in str(exc_info.value)

    def test_non_object_raises(self):
        with pytest.raises(ResponseDecodeError):
            decode_analysis("[]")

    def test_invalid_json_raises_value_error(self):
        with pytest.raises(ValueError):
            decode_analysis("{not json")
