"""Effective configuration combining config.yml and tracks.yml."""

import hashlib
import json
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.config.schemas.app import AppConfig
from src.config.schemas.tracks import TrackConfig, TracksConfig


class EffectiveConfig(BaseModel):
    """Combined effective configuration for a run.

    Immutable once created; every command of a run reads from the same
    instance.

    Attributes:
        app: Validated application configuration.
        tracks: Validated tracks configuration.
        file_checksums: SHA-256 checksums of the loaded files.
        run_id: Unique identifier for the run.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    app: AppConfig
    tracks: TracksConfig
    file_checksums: Annotated[dict[str, str], Field(default_factory=dict)]
    run_id: str

    @property
    def max_items_per_digest(self) -> int:
        """Global cap, with the tracks.yml override taking precedence."""
        override = self.tracks.limits.max_items_per_digest
        if override is not None:
            return override
        return self.app.limits.max_items_per_digest

    @property
    def enabled_tracks(self) -> list[TrackConfig]:
        """Get enabled tracks in declaration order."""
        return self.tracks.enabled_tracks

    def to_normalized_json(self) -> str:
        """Convert to normalized JSON with stable key ordering.

        Returns:
            JSON string with sorted keys.
        """
        data = self.model_dump(mode="json", exclude={"run_id", "file_checksums"})
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    def compute_checksum(self) -> str:
        """Compute SHA-256 checksum of the normalized configuration.

        Returns:
            Hex digest, stable across runs for identical configuration.
        """
        return hashlib.sha256(self.to_normalized_json().encode("utf-8")).hexdigest()
