import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from newsdesk.models.article import Article, LowCoverage, NewsRequest, NewsResponse
from newsdesk.pipeline.context import PipelineContext
from newsdesk.pipeline.pair_orchestrator import (
    DEFAULT_ADAPTER_TIMEOUT,
    DEFAULT_MIN_ARTICLES,
    PairOrchestrator,
    PairResult,
)
from newsdesk.services.provider_base import ProviderAdapter
from newsdesk.services.ranking_service import RankingOptions, RankingService, split_search_terms
from newsdesk.services.summarization_service import SummarizationService
from newsdesk.utils.date_extraction import is_within_window
from newsdesk.utils.logging_config import PerformanceTracker

DEFAULT_LOW_COVERAGE_THRESHOLD = 5
DEFAULT_SUMMARY_TOP_N = 3


class ConfigurationError(Exception):
    """The pipeline cannot run with the supplied configuration"""
    pass


class RequestCoordinator:
    """
    Top-level entry point for a news request.

    Fans the request out into (country, category) pairs, runs a pair
    orchestrator for each concurrently, then merges, globally re-ranks and
    trims the combined result to the requested window.
    """

    def __init__(
        self,
        context: PipelineContext,
        adapters: List[ProviderAdapter],
        ranking: Optional[RankingService] = None,
        summarizer: Optional[SummarizationService] = None,
        summary_top_n: int = DEFAULT_SUMMARY_TOP_N,
        min_articles: int = DEFAULT_MIN_ARTICLES,
        adapter_timeout: float = DEFAULT_ADAPTER_TIMEOUT,
        low_coverage_threshold: int = DEFAULT_LOW_COVERAGE_THRESHOLD,
        clock=None,
    ):
        if not adapters:
            raise ConfigurationError("No provider adapters configured - set NEWS_API_KEY or enable RSS feeds")

        self.context = context
        self.adapters = list(adapters)
        self.ranking = ranking or RankingService(clock=clock)
        self.summarizer = summarizer
        self.summary_top_n = summary_top_n
        self.low_coverage_threshold = low_coverage_threshold
        self._clock = clock or time.time
        self.orchestrator = PairOrchestrator(
            context,
            self.adapters,
            min_articles=min_articles,
            adapter_timeout=adapter_timeout,
            clock=clock,
        )
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Request coordinator ready with adapters: {[a.name for a in self.adapters]}")

    @staticmethod
    def expand_pairs(request: NewsRequest) -> List[Tuple[str, str]]:
        pairs: List[Tuple[str, str]] = []
        for country in request.countries:
            for category in request.categories:
                pair = (country.lower(), category.lower())
                if pair not in pairs:
                    pairs.append(pair)
        return pairs

    async def fetch_news(self, request: NewsRequest) -> NewsResponse:
        pairs = self.expand_pairs(request)
        if not pairs:
            self.logger.warning("Request named no countries or no categories")
            return NewsResponse(articles=[], total_results=0)

        self.logger.info(
            f"Fetching {len(pairs)} pairs (range={request.date_range}, query={request.search_query!r})"
        )

        with PerformanceTracker(f"fetch {len(pairs)} pairs", self.logger):
            outcomes = await asyncio.gather(
                *(self.orchestrator.run(country, category, request) for country, category in pairs),
                return_exceptions=True,
            )

        results: List[PairResult] = []
        failed = 0
        for (country, category), outcome in zip(pairs, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                failed += 1
                self.logger.error(f"Pair {country}/{category} failed: {outcome!r}")
                self.context.error_handler.handle_error(
                    outcome, "pipeline", "pair_fetch", {"country": country, "category": category}
                )
                continue
            results.append(outcome)

        merged = self._merge(results)
        ranked = self.ranking.rank_and_deduplicate(merged, self.ranking_options(request))
        windowed = self._enforce_window(ranked, request)
        if len(windowed) < len(ranked):
            self.logger.debug(f"Date window {request.date_range} dropped {len(ranked) - len(windowed)} articles")

        if request.limit is not None:
            windowed = windowed[:max(request.limit, 0)]

        if self.summarizer is not None and windowed:
            windowed = await self.summarizer.summarize_articles(windowed, self.summary_top_n)

        low_coverage = self.low_coverage_report(results)
        for lc in low_coverage:
            self.logger.warning(f"Low coverage for {lc.country}/{lc.category}: {lc.count} articles")

        cached = bool(results) and not failed and all(r.cache_hit for r in results)
        return NewsResponse(
            articles=windowed,
            total_results=len(windowed),
            cached=cached,
            low_coverage=low_coverage,
        )

    @staticmethod
    def ranking_options(request: NewsRequest) -> RankingOptions:
        categories = {c.lower() for c in request.categories}
        return RankingOptions(
            use_popularity=request.use_popularity,
            category=next(iter(categories)) if len(categories) == 1 else None,
            search_terms=split_search_terms(request.search_query),
            raw_keyword=request.search_query,
            keyword_mode=request.keyword_mode,
            range_hours=request.range_hours,
        )

    @staticmethod
    def _merge(results: List[PairResult]) -> List[Article]:
        seen = set()
        merged: List[Article] = []
        for result in results:
            for article in result.articles:
                if article.url in seen:
                    continue
                seen.add(article.url)
                merged.append(article)
        return merged

    def _enforce_window(self, articles: List[Article], request: NewsRequest) -> List[Article]:
        """Keep articles inside the requested window; undated ones stay."""
        range_hours = request.range_hours
        if not range_hours:
            return list(articles)
        now = datetime.fromtimestamp(self._clock(), timezone.utc)
        return [a for a in articles if is_within_window(a.published_at, range_hours, now)]

    def low_coverage_report(self, results: List[PairResult]) -> List[LowCoverage]:
        return [
            LowCoverage(r.country, r.category, len(r.articles))
            for r in results
            if len(r.articles) < self.low_coverage_threshold
        ]

    async def close(self) -> None:
        for adapter in self.adapters:
            await adapter.close()
        await self.context.close()
