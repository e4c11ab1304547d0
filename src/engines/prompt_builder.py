"""Instruction prompt construction for content idea generation."""

from src.engines.channels import Channel


class PromptBuilder:
    """Build the instruction text sent alongside the page content.

    The template is a fixed asset. Only the channel list, the business
    context and the target audience are substituted, so identical
    arguments always render identical text.

    Class Attributes:
        SYSTEM_PROMPT_TEMPLATE: Instruction template with three placeholders.

    Example:
        >>> builder = PromptBuilder()
        >>> text = builder.build(["instagram", "linkedin"], "A bakery", "Locals")
        >>> "instagram, linkedin" in text
        True
    """

    SYSTEM_PROMPT_TEMPLATE: str = """You are an expert social media strategist and content ideation assistant.
First generate a concise summary of the content answering what the main idea of the content is. Keep it short: 2-3 sentences.
Then generate {idea_range} unique, actionable content ideas for each of the following social media channels: {channels}.

Each idea should:
- Be highly specific and detailed so that producing content from the idea is easy.
- Be tailored to the platform's format, audience behavior and content trends, keeping in mind what works and what does not.
- Reflect the business's voice, tone and business context.

For each idea, provide:
1. A clear and creative content idea
2. Why it would perform well on the specific platform (platform rationale), why users would love it or find it useful
3. 2-3 benefits of posting it (pros)
4. 1-2 potential limitations (cons)

Make sure ideas are deeply personalized and practical, avoiding vague or generic suggestions.
Keep the tone helpful and professional.

Business context: {business_context}
Target audience: {target_audience}

Return your response as valid JSON with the following structure:
{{
  "status": "SUCCESS",
  "summary": "brief summary of the content",
  "channels": {{
{channel_examples}
  }}
}}
Each idea object should contain: idea, rationale, pros, cons.
Only include the channels listed above as keys under "channels".
If the content cannot be analyzed, return "status": "FAILURE" and explain why in "summary".
"""

    def __init__(self, min_ideas: int = 1, max_ideas: int = 2) -> None:
        """Initialize the builder.

        Args:
            min_ideas: Lower bound of ideas per channel stated in the prompt.
            max_ideas: Upper bound of ideas per channel stated in the prompt.
        """
        self.min_ideas = min_ideas
        self.max_ideas = max_ideas

    def build(
        self,
        channels: list[str],
        business_context: str,
        target_audience: str,
    ) -> str:
        """Render the instruction text.

        Args:
            channels: Canonical channel keys to generate ideas for.
            business_context: Description of the business posting the content.
            target_audience: Who the content is for.

        Returns:
            The rendered instructions.
        """
        return self.SYSTEM_PROMPT_TEMPLATE.format(
            idea_range=self._format_idea_range(),
            channels=", ".join(channels),
            business_context=business_context,
            target_audience=target_audience,
            channel_examples=self._format_channel_examples(),
        )

    def _format_idea_range(self) -> str:
        if self.min_ideas == self.max_ideas:
            return str(self.max_ideas)
        return f"{self.min_ideas}-{self.max_ideas}"

    def _format_channel_examples(self) -> str:
        """List every known channel key as an example entry of the JSON shape."""
        lines = [f'    "{channel.key}": [array of idea objects]' for channel in Channel]
        return ",\n".join(lines)


def build_instructions(
    channels: list[str],
    business_context: str,
    target_audience: str,
) -> str:
    """Render instructions with the default idea bounds."""
    return PromptBuilder().build(channels, business_context, target_audience)
