"""
Per-(country, category) fetch orchestration.

Each pair walks a fixed sequence of states: cache check, coalescing onto an
in-flight fetch, adapter fan-out, URL dedup, relevance filtering, bounded
escalation when undersupplied, and persistence. Adapter failures never abort a
pair; an empty result is a valid, cached outcome.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, List, Optional, Set, Tuple

from newsdesk.models.article import Article, CacheEntry, NewsRequest
from newsdesk.pipeline.context import PipelineContext
from newsdesk.services.article_filter import (
    ACCEPTED,
    DEFAULT_MIN_COUNTRY_SCORE,
    FILLER,
    MARGINAL,
    REJECTED,
    assess_article,
    infer_source_country,
)
from newsdesk.services.cache_service import build_cache_key, get_source_fingerprint
from newsdesk.services.provider_base import FetchOptions, ProviderAdapter, domain_allowed
from newsdesk.services.relevance_keywords import COUNTRY_NAMES, TRUSTED_DOMAINS
from newsdesk.utils.date_extraction import ensure_utc, window_start
from newsdesk.utils.logging_config import PerformanceTracker, log_pipeline_metrics

DEFAULT_MIN_ARTICLES = 15
DEFAULT_ADAPTER_TIMEOUT = 8.0
DEFAULT_PAGE_SIZE = 30
MAX_WINDOW_HOURS = 720
REMOVED_TITLE = "[Removed]"

# Domestic press is well indexed by the primary provider; secondary adapters
# only run for these once the first pass comes up short.
WELL_COVERED_COUNTRIES: FrozenSet[str] = frozenset({"us", "gb", "au", "ca", "in", "ie", "nz", "fr", "de"})


def _countries_with_trusted_outlets() -> FrozenSet[str]:
    countries = {infer_source_country(domain) for domain in TRUSTED_DOMAINS}
    return frozenset(c for c in countries if c)


# Countries without a domestic outlet among the trusted domains would come back
# nearly empty under the trusted-domain restriction.
UNRESTRICTED_COUNTRIES: FrozenSet[str] = frozenset(COUNTRY_NAMES) - _countries_with_trusted_outlets()


class PairState(Enum):
    CACHE_CHECK = "cache_check"
    COALESCE = "coalesce"
    FETCH = "fetch"
    DEDUP = "dedup"
    FILTER = "filter"
    ESCALATE_SECONDARY = "escalate_secondary"
    ESCALATE_BACKFILL = "escalate_backfill"
    PERSIST = "persist"
    DONE = "done"


@dataclass
class PairResult:
    country: str
    category: str
    articles: List[Article]
    cache_hit: bool = False
    coalesced: bool = False
    states: List[PairState] = field(default_factory=list)
    raw_count: int = 0


@dataclass
class _Buckets:
    """Filter outcomes accumulated across passes."""
    accepted: List[Article] = field(default_factory=list)
    marginal: List[Article] = field(default_factory=list)
    filler: List[Article] = field(default_factory=list)
    rejected: int = 0

    def add(self, outcome: str, article: Article) -> None:
        if outcome == ACCEPTED:
            self.accepted.append(article)
        elif outcome == MARGINAL:
            self.marginal.append(article)
        elif outcome == FILLER:
            self.filler.append(article)
        else:
            self.rejected += 1


def widen_window(range_hours: int) -> int:
    """Backfill window: 2x for windows up to 72h, 3x beyond, capped at 720h."""
    factor = 2 if range_hours <= 72 else 3
    return min(range_hours * factor, MAX_WINDOW_HOURS)


class PairOrchestrator:
    """Runs the fetch state machine for one (country, category) pair at a time."""

    def __init__(
        self,
        context: PipelineContext,
        adapters: List[ProviderAdapter],
        min_articles: int = DEFAULT_MIN_ARTICLES,
        min_country_score: int = DEFAULT_MIN_COUNTRY_SCORE,
        adapter_timeout: float = DEFAULT_ADAPTER_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        well_covered_countries: FrozenSet[str] = WELL_COVERED_COUNTRIES,
        unrestricted_countries: FrozenSet[str] = UNRESTRICTED_COUNTRIES,
        clock=None,
    ):
        self.context = context
        self.adapters = list(adapters)
        self.min_articles = min_articles
        self.min_country_score = min_country_score
        self.adapter_timeout = adapter_timeout
        self.page_size = page_size
        self.well_covered_countries = well_covered_countries
        self.unrestricted_countries = unrestricted_countries
        self._clock = clock
        self.logger = logging.getLogger(__name__)

    @property
    def primary_adapters(self) -> List[ProviderAdapter]:
        return [a for a in self.adapters if a.is_primary]

    def _now(self) -> Optional[datetime]:
        """Injected clock reading (epoch seconds) as a UTC datetime."""
        if self._clock is None:
            return None
        return datetime.fromtimestamp(self._clock(), timezone.utc)

    def cache_key_for(self, country: str, category: str, request: NewsRequest) -> str:
        return build_cache_key(
            country,
            category,
            request.date_range,
            get_source_fingerprint(request.sources),
            request.show_non_english,
            search_query=request.search_query,
            now=self._now(),
        )

    async def run(self, country: str, category: str, request: NewsRequest) -> PairResult:
        states = [PairState.CACHE_CHECK]
        key = self.cache_key_for(country, category, request)

        entry = await self.context.cache.get(key)
        if entry is not None:
            states.append(PairState.DONE)
            return PairResult(country, category, list(entry.articles), cache_hit=True, states=states)

        inflight = self.context.inflight
        coalesced = key in inflight
        if coalesced:
            states.append(PairState.COALESCE)
        else:
            self.logger.info(f"Cache MISS: {key} - fetching fresh data")

        articles, raw_count = await inflight.run(
            key, lambda: self._fetch_and_persist(key, country, category, request, states)
        )
        if coalesced:
            states.append(PairState.DONE)
        return PairResult(
            country, category, list(articles),
            coalesced=coalesced, states=states, raw_count=raw_count,
        )

    def _first_pass_split(self, country: str) -> Tuple[List[ProviderAdapter], List[ProviderAdapter]]:
        """Adapters to call now and adapters held back for escalation."""
        if country in self.well_covered_countries:
            now = [a for a in self.adapters if a.is_primary]
            held = [a for a in self.adapters if not a.is_primary]
            return now, held
        return list(self.adapters), []

    def _restrict_domains(self, country: str, request: NewsRequest) -> Optional[List[str]]:
        if request.sources:
            return list(request.sources)
        if country in self.unrestricted_countries:
            return None
        return list(TRUSTED_DOMAINS)

    async def _fetch_and_persist(
        self,
        key: str,
        country: str,
        category: str,
        request: NewsRequest,
        states: List[PairState],
    ) -> Tuple[List[Article], int]:
        range_hours = request.range_hours
        options = FetchOptions(
            from_date=window_start(range_hours, self._now()),
            sort_by_popularity=request.use_popularity,
            language=None if request.show_non_english else "en",
            query=request.search_query,
            restrict_domains=self._restrict_domains(country, request),
            page_size=self.page_size,
        )

        first_pass, held_back = self._first_pass_split(country)
        if held_back:
            self.logger.debug(f"{country}/{category}: holding back {[a.name for a in held_back]} on first pass")

        seen: Set[str] = set()
        buckets = _Buckets()

        states.append(PairState.FETCH)
        raw = await self._call_adapters(first_pass, country, category, options)
        raw_count = len(raw)

        states.append(PairState.DEDUP)
        fresh = self._dedup(raw, seen)

        states.append(PairState.FILTER)
        with PerformanceTracker(f"filter {country}/{category}", self.logger) as tracker:
            self._filter_into(buckets, fresh, country, category, request, options.from_date)
        log_pipeline_metrics(
            self.logger, f"filter {country}/{category}", len(fresh), len(buckets.accepted), tracker.duration_ms,
            marginal=len(buckets.marginal), filler=len(buckets.filler), rejected=buckets.rejected,
        )

        if len(buckets.accepted) < self.min_articles and held_back:
            states.append(PairState.ESCALATE_SECONDARY)
            self.logger.info(
                f"{country}/{category}: {len(buckets.accepted)} < {self.min_articles} articles, "
                f"calling held-back adapters {[a.name for a in held_back]}"
            )
            raw = await self._call_adapters(held_back, country, category, options)
            raw_count += len(raw)
            self._filter_into(buckets, self._dedup(raw, seen), country, category, request, options.from_date)

        if len(buckets.accepted) < self.min_articles and range_hours:
            widened = widen_window(range_hours)
            if widened > range_hours:
                states.append(PairState.ESCALATE_BACKFILL)
                self.logger.info(
                    f"{country}/{category}: still {len(buckets.accepted)} articles, backfilling {range_hours}h -> {widened}h"
                )
                backfill = replace(options, from_date=window_start(widened, self._now()), prefer_search=True)
                raw = await self._call_adapters(self.primary_adapters, country, category, backfill)
                raw_count += len(raw)
                self._filter_into(buckets, self._dedup(raw, seen), country, category, request, backfill.from_date)

        states.append(PairState.PERSIST)
        articles = self._pad(buckets)
        if len(buckets.accepted) < self.min_articles:
            self.logger.info(
                f"{country}/{category}: escalation exhausted with {len(buckets.accepted)} accepted, "
                f"{len(articles)} after padding"
            )

        cache = self.context.cache
        entry = CacheEntry(timestamp=cache.now_ms(), articles=articles)
        await cache.set(key, entry, ttl_override=cache.ttl_seconds_for(request.date_range, keyword=bool(request.search_query)))
        states.append(PairState.DONE)
        return articles, raw_count

    def _pad(self, buckets: _Buckets) -> List[Article]:
        """Accepted articles, topped up with marginal then filler ones up to the minimum."""
        articles = list(buckets.accepted)
        shortfall = self.min_articles - len(articles)
        if shortfall > 0:
            articles.extend((buckets.marginal + buckets.filler)[:shortfall])
        return articles

    async def _call_adapters(
        self,
        adapters: List[ProviderAdapter],
        country: str,
        category: str,
        options: FetchOptions,
    ) -> List[Article]:
        if not adapters:
            return []
        results = await asyncio.gather(*(self._call_adapter(a, country, category, options) for a in adapters))
        merged: List[Article] = []
        for articles in results:
            merged.extend(articles)
        return merged

    async def _call_adapter(
        self,
        adapter: ProviderAdapter,
        country: str,
        category: str,
        options: FetchOptions,
    ) -> List[Article]:
        """One adapter call under the timeout. Any failure yields an empty list."""
        self.context.quota.record(adapter.name)
        error_context = {"country": country, "category": category}
        try:
            articles = await asyncio.wait_for(
                adapter.fetch(country, category, options),
                timeout=self.adapter_timeout,
            )
        except asyncio.TimeoutError as e:
            self.context.error_handler.handle_error(
                e, adapter.name, "fetch", {**error_context, "timeout_s": self.adapter_timeout}
            )
            return []
        except Exception as e:
            self.context.error_handler.handle_error(e, adapter.name, "fetch", error_context)
            return []

        if articles is None:
            raise TypeError(f"Adapter {adapter.name} returned None instead of a list")
        return list(articles)

    @staticmethod
    def _dedup(articles: List[Article], seen: Set[str]) -> List[Article]:
        """Drop placeholders and URLs already seen in this pair."""
        out = []
        for a in articles:
            if not a.url or not a.title or a.title == REMOVED_TITLE:
                continue
            if a.url in seen:
                continue
            seen.add(a.url)
            out.append(a)
        return out

    def _filter_into(
        self,
        buckets: _Buckets,
        articles: List[Article],
        country: str,
        category: str,
        request: NewsRequest,
        from_date: Optional[datetime],
    ) -> None:
        for article in articles:
            if request.sources and not domain_allowed(article.source_domain, request.sources):
                buckets.add(REJECTED, article)
                continue
            # Some adapters ignore from_date (headlines, RSS)
            if from_date is not None and article.published_at is not None and ensure_utc(article.published_at) < from_date:
                buckets.add(REJECTED, article)
                continue
            article.country = article.country or country
            article.category = article.category or category
            buckets.add(assess_article(article, country, category, self.min_country_score), article)
