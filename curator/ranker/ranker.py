"""Article ranker: scores clustered articles and persists the scores."""

from collections.abc import Sequence

import structlog

from curator.config.schemas import RankingConfig
from curator.ranker.models import ClusteredArticle, RankedArticle, RankingResult
from curator.ranker.scorer import score_article
from curator.store.models import ArticleScore
from curator.store.repositories import ArticleRepository, TopicRepository


logger = structlog.get_logger()


class ArticleRanker:
    """Blends significance and personalization into an interest score.

    All scores and cluster ids of a batch are written in one transaction.
    """

    def __init__(
        self,
        articles: ArticleRepository,
        topics: TopicRepository,
        config: RankingConfig | None = None,
        run_id: str = "",
    ) -> None:
        """Initialize the ranker.

        Args:
            articles: Article repository.
            topics: Topic repository for linked topics and affinities.
            config: Blend weights. Defaults apply when None.
            run_id: Run identifier for logging.
        """
        self._articles = articles
        self._topics = topics
        self._config = config or RankingConfig()
        self._log = logger.bind(component="ranker", run_id=run_id)

    def rank(self, clustered: Sequence[ClusteredArticle]) -> RankingResult:
        """Score, persist and order a batch of clustered articles.

        Args:
            clustered: Articles with cluster assignments.

        Returns:
            Ranked articles, highest interest score first.
        """
        if not clustered:
            return RankingResult()

        stored = self._articles.get_articles([c.article.id for c in clustered])
        present = [c for c in clustered if c.article.id in stored]
        skipped = [c.article.id for c in clustered if c.article.id not in stored]
        for article_id in skipped:
            self._log.warning("ranked_article_missing", article_id=article_id)

        linked = self._topics.get_linked_topics([c.article.id for c in present])

        ranked: list[RankedArticle] = []
        scores: list[ArticleScore] = []
        for item in present:
            components = score_article(
                item.significance, linked[item.article.id], self._config
            )
            scores.append(
                ArticleScore(
                    article_id=item.article.id,
                    cluster_id=item.cluster_id,
                    significance_score=components.significance,
                    personalization_score=components.personalization,
                    interest_score=components.interest,
                )
            )
            article = stored[item.article.id].model_copy(
                update={
                    "cluster_id": item.cluster_id,
                    "significance_score": components.significance,
                    "personalization_score": components.personalization,
                    "interest_score": components.interest,
                }
            )
            ranked.append(
                RankedArticle(
                    article=article, cluster_id=item.cluster_id, components=components
                )
            )

        self._articles.save_article_scores(scores)

        ranked.sort(
            key=lambda r: (
                -r.components.interest,
                -r.components.significance,
                r.article.id,
            )
        )

        personalized = sum(1 for r in ranked if r.components.personalized)
        self._log.info(
            "ranking_complete",
            ranked_count=len(ranked),
            personalized_count=personalized,
            skipped_count=len(skipped),
            top_score=round(ranked[0].interest_score, 4) if ranked else None,
        )
        return RankingResult(ranked=ranked, skipped_article_ids=skipped)
