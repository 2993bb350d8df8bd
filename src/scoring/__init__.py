"""Relevance judgment access for the external judge."""

from src.scoring.models import (
    DEFAULT_JUDGE_MODEL,
    JudgmentBatch,
    JudgmentInput,
    ScorePlan,
    UnscoredDocument,
)
from src.scoring.unscored import ScoreStore, collect_unscored


__all__ = [
    "DEFAULT_JUDGE_MODEL",
    "JudgmentBatch",
    "JudgmentInput",
    "ScorePlan",
    "ScoreStore",
    "UnscoredDocument",
    "collect_unscored",
]
