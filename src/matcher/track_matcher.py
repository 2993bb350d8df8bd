"""Track keyword matching for ingested documents.

Scores a document against a track's phrases and keywords. Matching is a
pure function of the track definition and the text; `TrackMatcher` adds the
run-level policy (disabled tracks, category pre-filter, threshold) and
pre-compiles the keyword patterns once per run.
"""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from src.config.schemas.tracks import TrackConfig
from src.store.models import Document, TrackMatch


logger = structlog.get_logger()

PHRASE_WEIGHT = 3
KEYWORD_WEIGHT = 1

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class MatchResult:
    """Result of matching one text against one track.

    Attributes:
        score: Sum of phrase and keyword weights, 0 on exclusion.
        matched_terms: Matched phrases then keywords, as configured,
            deduplicated in first-seen order.
    """

    score: int
    matched_terms: list[str] = field(default_factory=list)


def normalize_text(text: str) -> str:
    """Lower-case and collapse runs of whitespace to a single space."""
    return _WHITESPACE.sub(" ", text.lower()).strip()


def _compile_keyword_pattern(keyword: str) -> re.Pattern[str]:
    """Compile a normalized keyword into a whole-word pattern.

    A word boundary is anything that is not an ASCII letter or digit, so
    "rag" matches "rag-based" but not "ragtime".

    Args:
        keyword: Normalized keyword.

    Returns:
        Compiled regex pattern.
    """
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])")


@dataclass
class CompiledTrack:
    """A track with normalized terms and pre-compiled keyword patterns.

    Attributes:
        config: Original track configuration.
        excludes: Normalized, non-empty exclusion terms.
        phrases: (configured, normalized) non-empty phrases.
        keywords: (configured, compiled pattern) non-empty keywords.
    """

    config: TrackConfig
    excludes: list[str] = field(default_factory=list)
    phrases: list[tuple[str, str]] = field(default_factory=list)
    keywords: list[tuple[str, re.Pattern[str]]] = field(default_factory=list)

    @classmethod
    def from_config(cls, track: TrackConfig) -> "CompiledTrack":
        """Normalize and compile a track's terms, dropping empty ones."""
        excludes = [e for e in (normalize_text(x) for x in track.exclude) if e]
        phrases = [(p, n) for p in track.phrases if (n := normalize_text(p))]
        keywords = [
            (k, _compile_keyword_pattern(n))
            for k in track.keywords
            if (n := normalize_text(k))
        ]
        return cls(config=track, excludes=excludes, phrases=phrases, keywords=keywords)

    def match(self, title: str, body: str) -> MatchResult:
        """Score a title and body against this track."""
        haystack = normalize_text(f"{title} {body}")

        if any(ex in haystack for ex in self.excludes):
            return MatchResult(score=0, matched_terms=[])

        score = 0
        terms: list[str] = []

        for phrase, normalized in self.phrases:
            if normalized in haystack:
                score += PHRASE_WEIGHT
                terms.append(phrase)

        for keyword, pattern in self.keywords:
            if pattern.search(haystack):
                score += KEYWORD_WEIGHT
                terms.append(keyword)

        return MatchResult(score=score, matched_terms=list(dict.fromkeys(terms)))


def match_track(track: TrackConfig, title: str, body: str) -> MatchResult:
    """Score a document's title and body against a track.

    Exclusion dominates: if any exclusion term occurs the score is 0 with
    no terms, whatever else matches. Phrases are substring matches worth 3
    points; keywords are whole-word matches worth 1 point.

    Args:
        track: Track definition.
        title: Document title.
        body: Document body (abstract).

    Returns:
        MatchResult with score and matched terms.
    """
    return CompiledTrack.from_config(track).match(title, body)


class TrackMatcher:
    """Matches documents against every enabled track.

    Pre-compiles patterns on initialization for efficient repeated
    matching operations.
    """

    def __init__(self, tracks: list[TrackConfig], run_id: str = "matcher") -> None:
        """Initialize the matcher with track configurations.

        Args:
            tracks: Track configurations, in declaration order.
            run_id: Run identifier for logging.
        """
        self._compiled = [CompiledTrack.from_config(t) for t in tracks if t.enabled]
        self._log = logger.bind(component="matcher", run_id=run_id)

    @property
    def track_count(self) -> int:
        """Get number of enabled tracks."""
        return len(self._compiled)

    def match_document(
        self, document: Document, now: datetime | None = None
    ) -> list[TrackMatch]:
        """Match a document against every enabled track.

        A match is emitted only when the score reaches the track's
        threshold and is positive. Tracks with a category filter skip
        documents outside those categories.

        Args:
            document: Document to match.
            now: Timestamp stamped on the matches (defaults to now).

        Returns:
            Track matches in track declaration order.
        """
        matched_at = now or datetime.now(UTC)
        doc_categories = set(document.categories)
        matches: list[TrackMatch] = []

        for compiled in self._compiled:
            track = compiled.config
            if track.categories and not doc_categories.intersection(track.categories):
                continue

            result = compiled.match(document.title, document.abstract)
            if result.score <= 0 or result.score < track.threshold:
                continue

            matches.append(
                TrackMatch(
                    document_id=document.document_id,
                    track_name=track.name,
                    score=result.score,
                    matched_terms=result.matched_terms,
                    matched_at=matched_at,
                )
            )

        self._log.debug(
            "document_matched",
            document_id=document.document_id,
            match_count=len(matches),
        )
        return matches

    def match_documents(
        self, documents: list[Document], now: datetime | None = None
    ) -> list[TrackMatch]:
        """Match several documents with one shared timestamp.

        Args:
            documents: Documents to match.
            now: Timestamp stamped on the matches (defaults to now).

        Returns:
            All matches, in document then track order.
        """
        matched_at = now or datetime.now(UTC)
        matches: list[TrackMatch] = []
        for document in documents:
            matches.extend(self.match_document(document, matched_at))

        self._log.info(
            "matching_complete",
            document_count=len(documents),
            match_count=len(matches),
        )
        return matches
