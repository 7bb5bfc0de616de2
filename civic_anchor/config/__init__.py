"""Configuration: environment-driven settings and pipeline constants."""

from .settings import ChainSettings, get_settings


__all__ = [
    "ChainSettings",
    "get_settings",
]
