"""
Article models for the news aggregation pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from dateutil.parser import isoparse


# Hours covered by each public date-range token. None means "no window".
DATE_RANGE_HOURS: Dict[str, Optional[int]] = {
    "24h": 24,
    "3d": 72,
    "week": 168,
    "month": 720,
    "all": None,
}

DEFAULT_DATE_RANGE = "24h"


def range_hours_for(date_range: Optional[str]) -> Optional[int]:
    """Translate a date-range token into hours (unknown tokens fall back to 24h)."""
    token = date_range or DEFAULT_DATE_RANGE
    if token not in DATE_RANGE_HOURS:
        return DATE_RANGE_HOURS[DEFAULT_DATE_RANGE]
    return DATE_RANGE_HOURS[token]


def extract_domain(url: Optional[str]) -> str:
    """Bare lower-cased hostname of a URL, without a leading www."""
    if not url:
        return ""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


@dataclass
class Coverage:
    """Cross-source coverage of the story an article represents."""
    count: int
    sources: List[str]


@dataclass
class Article:
    """Canonical article shape shared by every provider adapter."""

    title: str
    url: str
    description: str = ""
    content: str = ""
    published_at: Optional[datetime] = None
    source_name: str = ""
    image_url: Optional[str] = None
    country: str = ""
    category: str = ""

    # Enrichment set by the filters and the ranking engine
    country_score: Optional[int] = None
    matches_category: bool = False
    summary_points: Optional[List[str]] = None
    coverage: Optional[Coverage] = None

    source_domain: str = field(default="")

    def __post_init__(self) -> None:
        if not self.source_domain:
            self.source_domain = extract_domain(self.url)
        self.description = self.description or ""
        self.content = self.content or ""

    def __hash__(self):
        return hash(self.url)

    def __eq__(self, other):
        if not isinstance(other, Article):
            return False
        return self.url == other.url

    @property
    def timestamp(self) -> float:
        """Epoch seconds of publication, 0 when unknown."""
        if self.published_at is None:
            return 0.0
        return self.published_at.timestamp()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "content": self.content,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "sourceName": self.source_name,
            "sourceDomain": self.source_domain,
            "imageUrl": self.image_url,
            "country": self.country,
            "category": self.category,
            "countryScore": self.country_score,
            "matchesCategory": self.matches_category,
            "summaryPoints": self.summary_points,
            "coverage": (
                {"count": self.coverage.count, "sources": list(self.coverage.sources)}
                if self.coverage else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        published = data.get("publishedAt")
        coverage = data.get("coverage")
        return cls(
            title=data.get("title") or "",
            url=data.get("url") or "",
            description=data.get("description") or "",
            content=data.get("content") or "",
            published_at=isoparse(published) if published else None,
            source_name=data.get("sourceName") or "",
            source_domain=data.get("sourceDomain") or "",
            image_url=data.get("imageUrl"),
            country=data.get("country") or "",
            category=data.get("category") or "",
            country_score=data.get("countryScore"),
            matches_category=bool(data.get("matchesCategory", False)),
            summary_points=data.get("summaryPoints"),
            coverage=Coverage(coverage["count"], list(coverage["sources"])) if coverage else None,
        )


@dataclass
class Cluster:
    """A set of articles judged to report the same story."""
    members: List[Article]

    @property
    def representative(self) -> Article:
        return self.members[0]

    @property
    def sources(self) -> List[str]:
        """Distinct member domains in member order."""
        seen: List[str] = []
        for a in self.members:
            if a.source_domain not in seen:
                seen.append(a.source_domain)
        return seen

    @property
    def unique_source_count(self) -> int:
        return len(self.sources)


@dataclass
class CacheEntry:
    """Cached result set for one cache key."""
    timestamp: float  # epoch milliseconds
    articles: List[Article]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "articles": [a.to_dict() for a in self.articles],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            timestamp=float(data.get("timestamp", 0)),
            articles=[Article.from_dict(a) for a in data.get("articles", [])],
        )


@dataclass
class NewsRequest:
    """Public request shape for a news query."""
    countries: List[str]
    categories: List[str]
    search_query: Optional[str] = None
    date_range: str = DEFAULT_DATE_RANGE
    sources: List[str] = field(default_factory=list)
    language_mode: str = "en"  # "en" or "all"
    keyword_mode: bool = False
    use_popularity: bool = False
    limit: Optional[int] = None

    @property
    def show_non_english(self) -> bool:
        return self.language_mode == "all"

    @property
    def range_hours(self) -> Optional[int]:
        return range_hours_for(self.date_range)


@dataclass
class LowCoverage:
    """A (country, category) pair that returned suspiciously few articles."""
    country: str
    category: str
    count: int


@dataclass
class NewsResponse:
    articles: List[Article]
    total_results: int
    cached: bool = False
    low_coverage: List[LowCoverage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "articles": [a.to_dict() for a in self.articles],
            "totalResults": self.total_results,
            "cached": self.cached,
            "lowCoverage": [
                {"country": lc.country, "category": lc.category, "count": lc.count}
                for lc in self.low_coverage
            ],
        }
