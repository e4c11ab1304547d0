"""Property-based tests for instruction prompt rendering.

Feature: content-ideas
"""

from hypothesis import given, settings, strategies as st

from src.engines.prompt_builder import PromptBuilder, build_instructions


free_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    min_size=0,
    max_size=200,
)
channel_lists = st.lists(st.sampled_from(["instagram", "linkedin", "x"]), min_size=1, max_size=3)


class TestPromptBuilder:
    """Property tests for PromptBuilder.build."""

    @given(channels=channel_lists, context=free_text, audience=free_text)
    @settings(max_examples=100)
    def test_rendering_is_idempotent(self, channels, context, audience):
        builder = PromptBuilder()

        assert builder.build(channels, context, audience) == builder.build(
            channels, context, audience
        )

    @given(channels=channel_lists, context=free_text, audience=free_text)
    @settings(max_examples=100)
    def test_placeholders_substituted(self, channels, context, audience):
        text = PromptBuilder().build(channels, context, audience)

        assert ", ".join(channels) in text
        assert f"Business context: {context}" in text
        assert f"Target audience: {audience}" in text

    def test_braces_in_inputs_are_not_interpreted(self):
        text = PromptBuilder().build(["x"], "{business} {0}", "{audience}")

        assert "Business context: {business} {0}" in text
        assert "Target audience: {audience}" in text

    def test_instructs_summary_and_json_structure(self):
        text = PromptBuilder().build(["instagram", "linkedin"], "A bakery", "Locals")

        assert "2-3 sentences" in text
        assert "valid JSON" in text
        assert '"status": "SUCCESS"' in text
        assert '"channels": {' in text
        for key in ("instagram", "linkedin", "x"):
            assert f'"{key}": [array of idea objects]' in text

    def test_idea_range_rendering(self):
        assert "generate 1-2 unique" in PromptBuilder().build(["x"], "c", "a")
        assert "generate 3 unique" in PromptBuilder(3, 3).build(["x"], "c", "a")
        assert "generate 2-4 unique" in PromptBuilder(2, 4).build(["x"], "c", "a")

    def test_module_function_matches_default_builder(self):
        assert build_instructions(["x"], "c", "a") == PromptBuilder().build(["x"], "c", "a")
