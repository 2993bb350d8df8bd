"""Tracks configuration schema (tracks.yml)."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TrackConfig(BaseModel):
    """Configuration for a single interest track.

    Attributes:
        name: Unique track name, used as the digest grouping key.
        enabled: Whether the track participates in matching.
        categories: Optional category pre-filter (e.g. 'cs.CL'). Empty means
            every document is considered.
        phrases: Exact phrases, worth 3 points each.
        keywords: Whole-word keywords, worth 1 point each.
        exclude: Terms that zero the score when present.
        threshold: Minimum score for a match to be recorded.
        max_per_day: Maximum items this track may contribute to one digest.
            None falls back to limits.max_per_track_per_day of config.yml.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: Annotated[str, Field(min_length=1, max_length=100)]
    enabled: bool = True
    categories: list[str] = Field(default_factory=list)
    phrases: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    threshold: Annotated[int, Field(ge=0)] = 0
    max_per_day: Annotated[int | None, Field(ge=1, le=20, alias="maxPerDay")] = None

    @model_validator(mode="after")
    def validate_has_terms(self) -> "TrackConfig":
        """Ensure an enabled track has at least one phrase or keyword."""
        if self.enabled and not any(t.strip() for t in self.phrases + self.keywords):
            msg = f"Track '{self.name}' needs at least one phrase or keyword"
            raise ValueError(msg)
        return self


class TrackLimitsConfig(BaseModel):
    """Optional digest limits declared alongside the tracks.

    Attributes:
        max_items_per_digest: Overrides the application-wide global cap.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    max_items_per_digest: Annotated[
        int | None, Field(ge=1, le=50, alias="maxItemsPerDigest")
    ] = None


class TracksConfig(BaseModel):
    """Root configuration for tracks.yml.

    Attributes:
        tracks: Track definitions, in declaration order.
        limits: Optional limits override.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tracks: list[TrackConfig] = Field(default_factory=list)
    limits: TrackLimitsConfig = Field(default_factory=TrackLimitsConfig)

    @model_validator(mode="after")
    def validate_unique_names(self) -> "TracksConfig":
        """Ensure track names are unique."""
        seen: set[str] = set()
        for track in self.tracks:
            if track.name in seen:
                msg = f"Duplicate track name: {track.name}"
                raise ValueError(msg)
            seen.add(track.name)
        return self

    @property
    def enabled_tracks(self) -> list[TrackConfig]:
        """Get enabled tracks in declaration order."""
        return [t for t in self.tracks if t.enabled]

    def track_caps(self) -> dict[str, int]:
        """Get the per-track caps declared in tracks.yml.

        Only enabled tracks that set maxPerDay appear; every other track
        uses the default cap from config.yml.

        Returns:
            Mapping of track name to max_per_day.
        """
        return {
            t.name: t.max_per_day
            for t in self.enabled_tracks
            if t.max_per_day is not None
        }
