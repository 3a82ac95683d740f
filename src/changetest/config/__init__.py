"""Configuration for changetest."""

from changetest.config.settings import Settings, load_config

__all__ = ["Settings", "load_config"]
