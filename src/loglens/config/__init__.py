"""Configuration for loglens."""

from loglens.config.settings import CoreSettings, load_settings

__all__ = ["CoreSettings", "load_settings"]
