"""JSON Schema construction for structured model output.

The schema tells the model exactly which keys to produce: a status, a
summary and one idea array per requested channel. Every object in the
tree sets additionalProperties to False so the payload can be decoded
without guessing.
"""

from typing import Any


STATUS_VALUES: list[str] = ["SUCCESS", "FAILURE"]

FIELD_STATUS = "status"
FIELD_SUMMARY = "summary"
FIELD_CHANNELS = "channels"

FIELD_IDEA = "idea"
FIELD_RATIONALE = "rationale"
FIELD_PROS = "pros"
FIELD_CONS = "cons"

JSON_SCHEMA_TYPE = "json_schema"


class JsonSchemaBuilder:
    """Fluent builder for object schemas.

    Example:
        >>> schema = (
        ...     JsonSchemaBuilder()
        ...     .add_string_property("idea")
        ...     .add_string_array_property("pros")
        ...     .build()
        ... )
        >>> schema["required"]
        ['idea', 'pros']
    """

    def __init__(self) -> None:
        self._properties: dict[str, dict[str, Any]] = {}
        self._required: list[str] = []
        self._additional_properties = False

    def add_string_property(
        self,
        name: str,
        required: bool = True,
        enum: list[str] | None = None,
    ) -> "JsonSchemaBuilder":
        prop: dict[str, Any] = {"type": "string"}
        if enum:
            prop["enum"] = list(enum)
        return self.add_property(name, prop, required)

    def add_string_array_property(self, name: str, required: bool = True) -> "JsonSchemaBuilder":
        return self.add_array_property(name, {"type": "string"}, required)

    def add_array_property(
        self,
        name: str,
        item_schema: dict[str, Any],
        required: bool = True,
        min_items: int | None = None,
        max_items: int | None = None,
    ) -> "JsonSchemaBuilder":
        prop: dict[str, Any] = {"type": "array", "items": item_schema}
        if min_items is not None:
            prop["minItems"] = min_items
        if max_items is not None:
            prop["maxItems"] = max_items
        return self.add_property(name, prop, required)

    def add_object_property(
        self,
        name: str,
        properties: dict[str, dict[str, Any]],
        required_fields: list[str],
        required: bool = True,
    ) -> "JsonSchemaBuilder":
        """Add a nested closed object whose keys are given up front."""
        prop: dict[str, Any] = {
            "type": "object",
            "additionalProperties": False,
            "properties": dict(properties),
            "required": list(required_fields),
        }
        return self.add_property(name, prop, required)

    def add_property(
        self,
        name: str,
        definition: dict[str, Any],
        required: bool = True,
    ) -> "JsonSchemaBuilder":
        self._properties[name] = definition
        if required and name not in self._required:
            self._required.append(name)
        return self

    def build(self) -> dict[str, Any]:
        return {
            "type": "object",
            "additionalProperties": self._additional_properties,
            "properties": dict(self._properties),
            "required": list(self._required),
        }


def build_idea_item_schema() -> dict[str, Any]:
    """Schema for one idea object: idea, rationale, pros and cons."""
    return (
        JsonSchemaBuilder()
        .add_string_property(FIELD_IDEA)
        .add_string_property(FIELD_RATIONALE)
        .add_string_array_property(FIELD_PROS)
        .add_string_array_property(FIELD_CONS)
        .build()
    )


def build_idea_schema(min_items: int, max_items: int) -> dict[str, Any]:
    """Schema for a channel's idea array bounded by [min_items, max_items]."""
    return {
        "type": "array",
        "minItems": min_items,
        "maxItems": max_items,
        "items": build_idea_item_schema(),
    }


def build_top_level_schema(
    channel_keys: list[str],
    min_items: int = 1,
    max_items: int = 2,
) -> dict[str, Any]:
    """Build the full response schema for the given channel keys.

    Args:
        channel_keys: Canonical channel keys, in the order they should be
            listed as required. An empty list yields an empty channels object.
        min_items: Minimum ideas per channel
        max_items: Maximum ideas per channel

    Returns:
        A JSON Schema dict with required status, summary and channels.
    """
    channel_properties = {
        key: build_idea_schema(min_items, max_items) for key in channel_keys
    }

    return (
        JsonSchemaBuilder()
        .add_string_property(FIELD_STATUS, enum=STATUS_VALUES)
        .add_string_property(FIELD_SUMMARY)
        .add_object_property(FIELD_CHANNELS, channel_properties, list(channel_keys))
        .build()
    )


def build_text_format(
    schema: dict[str, Any],
    name: str,
    strict: bool = True,
) -> dict[str, Any]:
    """Wrap a response schema in the structured-output format envelope."""
    return {
        "type": JSON_SCHEMA_TYPE,
        "name": name,
        "strict": strict,
        "schema": schema,
    }
