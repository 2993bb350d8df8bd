"""Configuration loading and validation module."""

from src.config.effective import EffectiveConfig
from src.config.loader import ConfigLoader, ConfigValidationError


__all__ = [
    "ConfigLoader",
    "ConfigValidationError",
    "EffectiveConfig",
]
