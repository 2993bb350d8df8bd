"""Application configuration schema (config.yml)."""

import zoneinfo
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StorageConfig(BaseModel):
    """Storage locations.

    Attributes:
        root: Directory holding the database and per-document sidecars.
        db_filename: SQLite database file name under root.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root: Annotated[str, Field(min_length=1)]
    db_filename: Annotated[str, Field(min_length=1)] = "db.sqlite"

    @property
    def db_path(self) -> Path:
        """Get the full database path."""
        return Path(self.root) / self.db_filename


class LimitsConfig(BaseModel):
    """Digest size and selection limits.

    Attributes:
        max_items_per_digest: Global cap across all tracks.
        max_per_track_per_day: Default per-track cap.
        dedup_days: Trailing window (days, inclusive) for daily dedup.
        relevance_floor: Judged documents below this value are not
            delivered. None disables the floor.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_items_per_digest: Annotated[int, Field(ge=1, le=50)] = 5
    max_per_track_per_day: Annotated[int, Field(ge=1, le=10)] = 2
    dedup_days: Annotated[int, Field(ge=0, le=365)] = 7
    relevance_floor: Annotated[int | None, Field(ge=1, le=5)] = 3


class WeeklyConfig(BaseModel):
    """Weekly deep-dive settings.

    Attributes:
        shortlist_size: Number of candidates offered for the weekly pick.
        related_max: Number of related documents listed next to the pick.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    shortlist_size: Annotated[int, Field(ge=1, le=20)] = 3
    related_max: Annotated[int, Field(ge=0, le=50)] = 5


class AppConfig(BaseModel):
    """Root configuration for config.yml.

    Attributes:
        timezone: IANA timezone used to compute the digest calendar date.
        storage: Storage locations.
        limits: Digest limits.
        weekly: Weekly deep-dive settings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timezone: str = "UTC"
    storage: StorageConfig
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    weekly: WeeklyConfig = Field(default_factory=WeeklyConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            zoneinfo.ZoneInfo(v)
        except (KeyError, ValueError, zoneinfo.ZoneInfoNotFoundError) as e:
            msg = f"Unknown timezone: {v}"
            raise ValueError(msg) from e
        return v
