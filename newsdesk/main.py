#!/usr/bin/env python3
import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv

from newsdesk.models.article import DEFAULT_DATE_RANGE, DATE_RANGE_HOURS, NewsRequest
from newsdesk.pipeline.context import PipelineContext
from newsdesk.pipeline.request_coordinator import ConfigurationError, RequestCoordinator
from newsdesk.services.cache_service import CACHE_MAX_ENTRIES, CacheService
from newsdesk.services.guardian_service import GuardianService
from newsdesk.services.inflight_registry import InFlightRegistry
from newsdesk.services.newsapi_service import NewsAPIService
from newsdesk.services.provider_base import PRIMARY, SECONDARY, ProviderAdapter
from newsdesk.services.quota_tracker import QuotaTracker
from newsdesk.services.ranking_service import RankingService
from newsdesk.services.remote_cache import RemoteCacheBackend, SqliteCacheBackend, UpstashRedisBackend
from newsdesk.services.rss import RSSService
from newsdesk.services.summarization_service import GeminiSummaryProvider, SummarizationService
from newsdesk.utils.error_monitoring import ErrorHandler
from newsdesk.utils.logging_config import setup_logging


@dataclass
class NewsDeskConfig:
    """Pipeline configuration"""
    # API keys
    news_api_key: str = ""
    guardian_api_key: str = ""
    gemini_api_key: str = ""

    # Shared cache
    upstash_url: str = ""
    upstash_token: str = ""
    cache_db_path: str = ""
    cache_max_entries: int = CACHE_MAX_ENTRIES

    # Fetching
    adapter_timeout: float = 8.0
    min_articles_per_pair: int = 15
    enable_rss: bool = True
    rss_role: str = SECONDARY

    # Quotas
    newsapi_daily_limit: int = 100
    guardian_daily_limit: int = 500
    quota_pressure_ratio: float = 0.8

    # Ranking and summaries
    ranking_config: str = ""
    summary_top_n: int = 3

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = False


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


def load_config() -> NewsDeskConfig:
    """Load configuration from the environment (and a .env file if present)"""
    load_dotenv()
    return NewsDeskConfig(
        news_api_key=os.getenv('NEWS_API_KEY', ''),
        guardian_api_key=os.getenv('GUARDIAN_API_KEY', ''),
        gemini_api_key=os.getenv('GEMINI_API_KEY', ''),
        upstash_url=os.getenv('UPSTASH_REDIS_REST_URL', ''),
        upstash_token=os.getenv('UPSTASH_REDIS_REST_TOKEN', ''),
        cache_db_path=os.getenv('CACHE_DB_PATH', ''),
        cache_max_entries=int(os.getenv('CACHE_MAX_ENTRIES', str(CACHE_MAX_ENTRIES))),
        adapter_timeout=float(os.getenv('ADAPTER_TIMEOUT', '8')),
        min_articles_per_pair=int(os.getenv('MIN_ARTICLES_PER_PAIR', '15')),
        enable_rss=_env_bool('ENABLE_RSS', True),
        rss_role=os.getenv('RSS_ROLE', SECONDARY).lower(),
        newsapi_daily_limit=int(os.getenv('NEWSAPI_DAILY_LIMIT', '100')),
        guardian_daily_limit=int(os.getenv('GUARDIAN_DAILY_LIMIT', '500')),
        quota_pressure_ratio=float(os.getenv('QUOTA_PRESSURE_RATIO', '0.8')),
        ranking_config=os.getenv('RANKING_CONFIG', ''),
        summary_top_n=int(os.getenv('SUMMARY_TOP_N', '3')),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
        log_dir=os.getenv('LOG_DIR', 'logs'),
        log_to_file=_env_bool('LOG_TO_FILE', False),
    )


def build_remote_cache(config: NewsDeskConfig) -> Optional[RemoteCacheBackend]:
    """Upstash when both REST credentials are set, else a shared SQLite file if configured."""
    if config.upstash_url and config.upstash_token:
        return UpstashRedisBackend(config.upstash_url, config.upstash_token)
    if config.cache_db_path:
        Path(config.cache_db_path).parent.mkdir(parents=True, exist_ok=True)
        return SqliteCacheBackend(config.cache_db_path)
    return None


def build_adapters(config: NewsDeskConfig) -> List[ProviderAdapter]:
    logger = logging.getLogger(__name__)
    adapters: List[ProviderAdapter] = []

    if config.news_api_key:
        adapters.append(NewsAPIService(config.news_api_key, timeout=config.adapter_timeout))
    else:
        logger.warning("NEWS_API_KEY not set - NewsAPI adapter disabled")

    # Guardian falls back to its anonymous test key
    adapters.append(GuardianService(config.guardian_api_key or None, timeout=config.adapter_timeout))

    if config.enable_rss:
        if config.rss_role not in (PRIMARY, SECONDARY):
            raise ConfigurationError(f"RSS_ROLE must be '{PRIMARY}' or '{SECONDARY}', got '{config.rss_role}'")
        adapters.append(RSSService(timeout=config.adapter_timeout, role=config.rss_role))

    if not any(a.is_primary for a in adapters):
        raise ConfigurationError(
            "No primary adapter configured - set NEWS_API_KEY or RSS_ROLE=primary"
        )
    return adapters


def build_summarizer(config: NewsDeskConfig) -> Optional[SummarizationService]:
    if not config.gemini_api_key:
        logging.getLogger(__name__).info("GEMINI_API_KEY not set - summaries disabled")
        return None
    return SummarizationService([GeminiSummaryProvider(config.gemini_api_key)])


def build_pipeline(config: NewsDeskConfig) -> RequestCoordinator:
    """Assemble adapters, shared state, ranking and summaries into a coordinator."""
    quota = QuotaTracker(
        daily_limits={
            "newsapi": config.newsapi_daily_limit,
            "guardian": config.guardian_daily_limit,
        },
        pressure_ratio=config.quota_pressure_ratio,
    )
    cache = CacheService(
        quota_tracker=quota,
        remote=build_remote_cache(config),
        max_entries=config.cache_max_entries,
    )
    context = PipelineContext(
        quota=quota,
        cache=cache,
        inflight=InFlightRegistry(),
        error_handler=ErrorHandler(),
    )

    if config.ranking_config:
        try:
            ranking = RankingService.from_config_file(config.ranking_config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid ranking config {config.ranking_config}: {e}") from e
    else:
        ranking = RankingService()

    return RequestCoordinator(
        context,
        build_adapters(config),
        ranking=ranking,
        summarizer=build_summarizer(config),
        summary_top_n=config.summary_top_n,
        min_articles=config.min_articles_per_pair,
        adapter_timeout=config.adapter_timeout,
    )


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch, deduplicate and rank news for countries and categories")
    parser.add_argument('--country', default='us', help='Comma-separated ISO country codes (default: us)')
    parser.add_argument('--category', default='world', help='Comma-separated categories (default: world)')
    parser.add_argument('--query', help='Keyword search')
    parser.add_argument('--range', dest='date_range', default=DEFAULT_DATE_RANGE,
                        choices=sorted(DATE_RANGE_HOURS), help='Date window')
    parser.add_argument('--sources', help='Comma-separated source domains to restrict to')
    parser.add_argument('--popularity', action='store_true', help='Rank by popularity')
    parser.add_argument('--keyword-mode', action='store_true', help='Rank by keyword relevance')
    parser.add_argument('--all-languages', action='store_true', help='Include non-English articles')
    parser.add_argument('--limit', type=int, help='Maximum number of articles')
    return parser


def request_from_args(args: argparse.Namespace) -> NewsRequest:
    return NewsRequest(
        countries=_split_csv(args.country),
        categories=_split_csv(args.category),
        search_query=args.query,
        date_range=args.date_range,
        sources=_split_csv(args.sources),
        language_mode="all" if args.all_languages else "en",
        keyword_mode=args.keyword_mode or bool(args.query),
        use_popularity=args.popularity,
        limit=args.limit,
    )


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    config = load_config()
    setup_logging(config.log_level, config.log_dir, enable_file_logging=config.log_to_file)

    try:
        coordinator = build_pipeline(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        response = await coordinator.fetch_news(request_from_args(args))
        print(json.dumps(response.to_dict(), indent=2))
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        return 130
    finally:
        await coordinator.close()
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
