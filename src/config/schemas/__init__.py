"""Configuration schema definitions."""

from src.config.schemas.app import (
    AppConfig,
    LimitsConfig,
    StorageConfig,
    WeeklyConfig,
)
from src.config.schemas.tracks import TrackConfig, TrackLimitsConfig, TracksConfig


__all__ = [
    "AppConfig",
    "LimitsConfig",
    "StorageConfig",
    "TrackConfig",
    "TrackLimitsConfig",
    "TracksConfig",
    "WeeklyConfig",
]
