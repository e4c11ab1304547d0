"""Configuration module - settings and environment management."""

from src.config.settings import (
    ConfigurationError,
    DEFAULT_BUSINESS_CONTEXT,
    DEFAULT_CHANNELS,
    DEFAULT_TARGET_AUDIENCE,
    Settings,
    load_settings,
)

__all__ = [
    "ConfigurationError",
    "DEFAULT_BUSINESS_CONTEXT",
    "DEFAULT_CHANNELS",
    "DEFAULT_TARGET_AUDIENCE",
    "Settings",
    "load_settings",
]
