"""Interest scoring of clustered articles."""

from curator.ranker.models import (
    ClusteredArticle,
    RankedArticle,
    RankingResult,
    ScoreComponents,
)
from curator.ranker.ranker import ArticleRanker
from curator.ranker.scorer import personalization_score, score_article


__all__ = [
    "ArticleRanker",
    "ClusteredArticle",
    "RankedArticle",
    "RankingResult",
    "ScoreComponents",
    "personalization_score",
    "score_article",
]
