"""Track keyword matcher."""

from src.matcher.track_matcher import (
    KEYWORD_WEIGHT,
    PHRASE_WEIGHT,
    MatchResult,
    TrackMatcher,
    match_track,
    normalize_text,
)


__all__ = [
    "KEYWORD_WEIGHT",
    "PHRASE_WEIGHT",
    "MatchResult",
    "TrackMatcher",
    "match_track",
    "normalize_text",
]
