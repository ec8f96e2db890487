"""Configuration package."""

from reality_radar.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
