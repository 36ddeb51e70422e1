"""Configuration module for exposure-risk."""

from exposure_risk.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
