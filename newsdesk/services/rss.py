import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

import aiohttp
import feedparser

from newsdesk.models.article import Article
from newsdesk.services.provider_base import (
    SECONDARY,
    FetchOptions,
    ProviderAdapter,
    ProviderError,
    domain_allowed,
    strip_html,
)
from newsdesk.utils.date_extraction import extract_date_from_url, parse_published_date


@dataclass
class RSSItem:
    """One parsed feed entry"""
    title: str
    link: str
    description: str
    published_date: Optional[datetime]
    source_feed: str
    image_url: Optional[str] = None

    def to_article(self, country: str, category: str) -> Article:
        return Article(
            title=self.title,
            url=self.link,
            description=self.description,
            content=self.description,
            published_at=self.published_date,
            source_name=self.source_feed,
            image_url=self.image_url,
            country=country,
            category=category,
        )


@dataclass
class FeedConfig:
    """
    An RSS feed and the requests it serves.

    ``countries``/``categories`` of None mean "any"; a feed must name at
    least one of the two to be selected.
    """
    name: str
    url: str
    countries: Optional[List[str]] = None
    categories: Optional[List[str]] = None

    def serves(self, country: str, category: str) -> bool:
        if self.countries is None and self.categories is None:
            return False
        if self.countries is not None and country not in self.countries:
            return False
        if self.categories is not None and category not in self.categories:
            return False
        return True


DEFAULT_FEEDS: List[FeedConfig] = [
    # Country desks
    FeedConfig("BBC News UK", "https://feeds.bbci.co.uk/news/uk/rss.xml", countries=["gb"]),
    FeedConfig("BBC Politics", "https://feeds.bbci.co.uk/news/politics/rss.xml", countries=["gb"], categories=["politics"]),
    FeedConfig("NPR News", "https://feeds.npr.org/1001/rss.xml", countries=["us"]),
    FeedConfig("ESPN", "https://www.espn.com/espn/rss/news", countries=["us"], categories=["sports"]),
    FeedConfig("France 24 France", "https://www.france24.com/en/france/rss", countries=["fr"]),
    FeedConfig("France 24 Sport", "https://www.france24.com/en/sport/rss", countries=["fr"], categories=["sports"]),
    FeedConfig("DW Germany", "https://rss.dw.com/rdf/rss-en-ger", countries=["de"]),
    FeedConfig("ABC News Australia", "https://www.abc.net.au/news/feed/51120/rss.xml", countries=["au"]),
    FeedConfig("The Hindu National", "https://www.thehindu.com/news/national/feeder/default.rss", countries=["in"]),
    FeedConfig("Times of India", "https://timesofindia.indiatimes.com/rssfeedstopstories.cms", countries=["in"]),
    FeedConfig("Japan Times", "https://www.japantimes.co.jp/feed/", countries=["jp"]),
    # Topic desks
    FeedConfig("BBC World", "https://feeds.bbci.co.uk/news/world/rss.xml", categories=["world"]),
    FeedConfig("Al Jazeera", "https://www.aljazeera.com/xml/rss/all.xml", categories=["world", "politics"]),
    FeedConfig("BBC Technology", "https://feeds.bbci.co.uk/news/technology/rss.xml", categories=["technology"]),
    FeedConfig("Ars Technica", "https://feeds.arstechnica.com/arstechnica/index", categories=["technology", "science", "gaming"]),
    FeedConfig("TechCrunch", "https://techcrunch.com/feed/", categories=["technology", "business"]),
    FeedConfig("BBC Business", "https://feeds.bbci.co.uk/news/business/rss.xml", categories=["business"]),
    FeedConfig("BBC Science", "https://feeds.bbci.co.uk/news/science_and_environment/rss.xml", categories=["science"]),
    FeedConfig("BBC Health", "https://feeds.bbci.co.uk/news/health/rss.xml", categories=["health"]),
    FeedConfig("BBC Sport", "https://feeds.bbci.co.uk/sport/rss.xml", categories=["sports"]),
    FeedConfig("BBC Entertainment", "https://feeds.bbci.co.uk/news/entertainment_and_arts/rss.xml", categories=["film", "tv"]),
]


class RSSService(ProviderAdapter):
    """RSS/Atom adapter: fetches the feeds configured for a pair and maps their entries."""

    name = "rss"

    def __init__(self, feeds: Optional[List[FeedConfig]] = None, timeout: float = 8.0, role: str = SECONDARY):
        super().__init__(timeout=timeout)
        self.feeds = list(DEFAULT_FEEDS if feeds is None else feeds)
        self.role = role
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"Initialized RSS service with {len(self.feeds)} feeds")

    def feeds_for(self, country: str, category: str) -> List[FeedConfig]:
        return [f for f in self.feeds if f.serves(country, category)]

    async def fetch(self, country: str, category: str, options: FetchOptions) -> List[Article]:
        feeds = self.feeds_for(country, category)
        if not feeds:
            return []

        results = await asyncio.gather(
            *(self.fetch_feed(f.url, max_items=options.page_size, name=f.name) for f in feeds),
            return_exceptions=True,
        )

        articles: List[Article] = []
        failures = 0
        for feed, result in zip(feeds, results):
            if isinstance(result, Exception):
                failures += 1
                self.logger.warning(f"Failed to fetch {feed.name}: {result}")
                continue
            for item in result:
                if options.from_date and item.published_date and item.published_date < options.from_date:
                    continue
                article = item.to_article(country, category)
                if options.restrict_domains and not domain_allowed(article.source_domain, options.restrict_domains):
                    continue
                articles.append(article)

        if failures == len(feeds):
            raise ProviderError(f"All {failures} RSS feeds failed for {country}/{category}")

        self.logger.debug(f"RSS [{country}/{category}]: {len(articles)} articles from {len(feeds) - failures} feeds")
        return articles

    async def fetch_feed(self, feed_url: str, max_items: int = 30, name: Optional[str] = None) -> List[RSSItem]:
        session = await self._get_session()
        headers = {"Accept": "application/rss+xml,application/xml;q=0.9,*/*;q=0.8"}
        try:
            async with session.get(feed_url, headers=headers) as resp:
                if resp.status != 200:
                    raise ProviderError(f"HTTP {resp.status} for {feed_url}")
                content = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"Feed request failed for {feed_url}: {e!r}") from e

        items = self._parse_feed(content, feed_url, name)
        return items[:max_items] if max_items else items

    def _parse_feed(self, content: str, feed_url: str, name: Optional[str] = None) -> List[RSSItem]:
        """Parse RSS/Atom feed content."""
        parsed = feedparser.parse(content)
        if parsed.bozo and not parsed.entries:
            raise ProviderError(f"Unparseable feed {feed_url}: {parsed.get('bozo_exception')}")

        source = name or parsed.feed.get("title") or feed_url
        items: List[RSSItem] = []
        for entry in parsed.entries:
            title = strip_html(entry.get("title", ""))
            link = (entry.get("link") or "").strip()
            if not title or not link:
                continue

            published = entry.get("published_parsed") or entry.get("updated_parsed")
            published_date = parse_published_date(published) or extract_date_from_url(link)

            items.append(RSSItem(
                title=title,
                link=link,
                description=strip_html(entry.get("summary") or entry.get("description") or ""),
                published_date=published_date,
                source_feed=source,
                image_url=self._entry_image(entry),
            ))
        return items

    @staticmethod
    def _entry_image(entry: Dict) -> Optional[str]:
        for key in ("media_thumbnail", "media_content"):
            media = entry.get(key)
            if media and isinstance(media, list) and media[0].get("url"):
                return media[0]["url"]
        return None
