"""Social media channel definitions and normalization."""

import logging
from enum import Enum


logger = logging.getLogger(__name__)


class Channel(Enum):
    """Supported social media channels.

    The enum value is the canonical channel key used in the schema, the
    prompt, the stored session and the response map.
    """

    INSTAGRAM = "instagram"
    LINKEDIN = "linkedin"
    X = "x"

    @property
    def key(self) -> str:
        """Return the canonical channel key."""
        return self.value

    @classmethod
    def from_name(cls, name: str | None) -> "Channel | None":
        """Resolve a channel name case-insensitively.

        Args:
            name: Channel name as supplied by a caller or the model

        Returns:
            The matching Channel, or None if the name is blank or unknown.
        """
        if name is None:
            return None
        cleaned = name.strip().lower()
        if not cleaned:
            return None
        cleaned = CHANNEL_ALIASES.get(cleaned, cleaned)
        for channel in cls:
            if channel.value == cleaned:
                return channel
        return None


# Alternate spellings accepted on input
CHANNEL_ALIASES: dict[str, str] = {
    "twitter": "x",
    "x.com": "x",
    "linked in": "linkedin",
    "ig": "instagram",
}


def normalize_channels(
    names: list[str] | None,
    default: list[str],
) -> list[Channel]:
    """Normalize requested channel names into an ordered, unique channel list.

    Names are matched case-insensitively. The first occurrence of each
    channel wins, unknown names are dropped with a warning. When the caller
    supplies nothing usable the default list is normalized instead.

    Args:
        names: Channel names from the request, may be None or empty
        default: Channel names to fall back to

    Returns:
        Channels in first-seen order without duplicates.

    Example:
        >>> normalize_channels(["instagram", "Instagram", "X"], ["linkedin"])
        [<Channel.INSTAGRAM: 'instagram'>, <Channel.X: 'x'>]
    """
    resolved = _resolve(names or [])
    if resolved:
        return resolved

    if names:
        logger.warning(
            f"None of the requested channels {names} are supported, "
            f"falling back to defaults {default}"
        )
    return _resolve(default)


def _resolve(names: list[str]) -> list[Channel]:
    """Map names to channels, de-duplicating while preserving order."""
    channels: list[Channel] = []
    seen: set[Channel] = set()

    for name in names:
        channel = Channel.from_name(name)
        if channel is None:
            if name and name.strip():
                logger.warning(f"Dropping unsupported channel '{name}'")
            continue
        if channel not in seen:
            seen.add(channel)
            channels.append(channel)

    return channels
