import logging
from typing import Any, Dict, List, Optional, Tuple

from newsdesk.models.article import Article
from newsdesk.services.article_filter import build_national_query
from newsdesk.services.provider_base import PRIMARY, FetchOptions, ProviderAdapter, ProviderError
from newsdesk.utils.date_extraction import parse_published_date

NEWSAPI_BASE_URL = "https://newsapi.org/v2"

# Countries the top-headlines endpoint serves
NEWS_API_SUPPORTED_COUNTRIES = frozenset({
    "ae", "ar", "at", "au", "be", "bg", "br", "ca", "ch", "cn",
    "co", "cu", "cz", "de", "eg", "fr", "gb", "gr", "hk", "hu",
    "id", "ie", "il", "in", "it", "jp", "kr", "lt", "lv", "ma",
    "mx", "my", "ng", "nl", "no", "nz", "ph", "pl", "pt", "ro",
    "rs", "ru", "sa", "se", "sg", "si", "sk", "th", "tr", "tw",
    "ua", "us", "ve", "za",
})

CATEGORY_MAP: Dict[str, str] = {
    "technology": "technology",
    "business": "business",
    "science": "science",
    "health": "health",
    "sports": "sports",
    "entertainment": "entertainment",
    "gaming": "entertainment",
    "film": "entertainment",
    "tv": "entertainment",
    "politics": "general",
    "world": "general",
}

REMOVED_TITLE = "[Removed]"
REMOVED_URL = "https://removed.com"


class NewsAPIService(ProviderAdapter):
    """NewsAPI.org adapter: top-headlines where the country is supported, everything otherwise."""

    name = "newsapi"
    role = PRIMARY

    def __init__(self, api_key: str, timeout: float = 8.0, base_url: str = NEWSAPI_BASE_URL):
        super().__init__(timeout=timeout)
        if not api_key:
            raise ValueError("NewsAPI key required. Set NEWS_API_KEY or pass api_key parameter.")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.logger = logging.getLogger(__name__)

    def build_request(self, country: str, category: str, options: FetchOptions) -> Tuple[str, Dict[str, Any]]:
        """Endpoint URL and query parameters for one fetch."""
        use_headlines = (
            country in NEWS_API_SUPPORTED_COUNTRIES
            and not options.query
            and not options.restrict_domains
            and not options.prefer_search
        )
        if use_headlines:
            return f"{self.base_url}/top-headlines", {
                "country": country,
                "category": CATEGORY_MAP.get(category, "general"),
                "pageSize": options.page_size,
            }

        params: Dict[str, Any] = {
            "q": options.query or build_national_query(country, category),
            "sortBy": "popularity" if options.sort_by_popularity else "publishedAt",
            "pageSize": options.page_size,
        }
        if options.language:
            params["language"] = options.language
        if options.from_date is not None:
            params["from"] = options.from_date.strftime("%Y-%m-%dT%H:%M:%S")
        if options.restrict_domains:
            params["domains"] = ",".join(options.restrict_domains)
        return f"{self.base_url}/everything", params

    async def fetch(self, country: str, category: str, options: FetchOptions) -> List[Article]:
        url, params = self.build_request(country, category, options)
        status, data = await self._request_json(url, params, headers={"X-Api-Key": self.api_key})
        if not isinstance(data, dict):
            raise ProviderError(f"NewsAPI error: unexpected payload (HTTP {status})")
        if status != 200 or data.get("status") != "ok":
            raise ProviderError(f"NewsAPI error: {status} {data.get('message') or 'unknown error'}")

        articles = self.parse_articles(data.get("articles") or [], country, category)
        self.logger.debug(f"NewsAPI [{country}/{category}] {url.rsplit('/', 1)[-1]}: {len(articles)} articles")
        return articles

    def parse_articles(self, raw: List[Dict[str, Any]], country: str, category: str) -> List[Article]:
        articles = []
        for item in raw:
            article = self._to_article(item, country, category)
            if article is not None:
                articles.append(article)
        return articles

    @staticmethod
    def _to_article(item: Dict[str, Any], country: str, category: str) -> Optional[Article]:
        title = (item.get("title") or "").strip()
        url = (item.get("url") or "").strip()
        if not title or not url or title == REMOVED_TITLE or url == REMOVED_URL:
            return None
        source = item.get("source") or {}
        return Article(
            title=title,
            url=url,
            description=item.get("description") or "",
            content=item.get("content") or item.get("description") or "",
            published_at=parse_published_date(item.get("publishedAt")),
            source_name=source.get("name") or "",
            image_url=item.get("urlToImage"),
            country=country,
            category=category,
        )
