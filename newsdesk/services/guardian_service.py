import logging
from typing import Any, Dict, List, Optional

from newsdesk.models.article import Article
from newsdesk.services.provider_base import SECONDARY, FetchOptions, ProviderAdapter, ProviderError, strip_html
from newsdesk.services.relevance_keywords import COUNTRY_NAMES
from newsdesk.utils.date_extraction import parse_published_date

GUARDIAN_SEARCH_URL = "https://content.guardianapis.com/search"
GUARDIAN_DOMAIN = "theguardian.com"

# Anonymous developer tier, rate limited upstream
GUARDIAN_TEST_KEY = "test"

SECTION_MAP: Dict[str, str] = {
    "technology": "technology",
    "business": "business",
    "science": "science",
    "health": "society",
    "sports": "sport",
    "entertainment": "culture",
    "film": "film",
    "tv": "tv-and-radio",
    "gaming": "games",
    "politics": "politics",
    "world": "world",
}


class GuardianService(ProviderAdapter):
    """
    Guardian content API adapter.

    The API has no country parameter, so the country name goes into the
    search text and the category selects a section.
    """

    name = "guardian"
    role = SECONDARY

    def __init__(self, api_key: Optional[str] = None, timeout: float = 8.0, base_url: str = GUARDIAN_SEARCH_URL):
        super().__init__(timeout=timeout)
        self.api_key = api_key or GUARDIAN_TEST_KEY
        self.base_url = base_url
        self.logger = logging.getLogger(__name__)
        if self.api_key == GUARDIAN_TEST_KEY:
            self.logger.info("No Guardian API key configured - using the anonymous test key")

    def build_params(self, country: str, category: str, options: FetchOptions) -> Dict[str, Any]:
        country_name = COUNTRY_NAMES.get(country, country)
        if options.query:
            query = options.query
        elif category == "world":
            query = country_name
        else:
            query = f"{country_name} {category}"

        params: Dict[str, Any] = {
            "q": query,
            "show-fields": "trailText,thumbnail,byline",
            "page-size": min(options.page_size, 50),
            "order-by": "relevance" if options.sort_by_popularity else "newest",
            "api-key": self.api_key,
        }
        section = SECTION_MAP.get(category)
        if section:
            params["section"] = section
        if options.from_date is not None:
            params["from-date"] = options.from_date.date().isoformat()
        return params

    async def fetch(self, country: str, category: str, options: FetchOptions) -> List[Article]:
        if options.restrict_domains and GUARDIAN_DOMAIN not in options.restrict_domains:
            self.logger.debug(f"Guardian not in requested domains, skipping {country}/{category}")
            return []

        status, data = await self._request_json(self.base_url, self.build_params(country, category, options))
        response = data.get("response") if isinstance(data, dict) else None
        if status != 200 or not isinstance(response, dict) or response.get("status") != "ok":
            message = response.get("message") if isinstance(response, dict) else None
            raise ProviderError(f"Guardian API error: {status} {message or 'unknown error'}")

        articles = [self._to_article(r, country, category) for r in response.get("results") or []]
        articles = [a for a in articles if a is not None]
        self.logger.debug(f"Guardian [{country}/{category}]: {len(articles)} articles")
        return articles

    @staticmethod
    def _to_article(result: Dict[str, Any], country: str, category: str) -> Optional[Article]:
        title = (result.get("webTitle") or "").strip()
        url = (result.get("webUrl") or "").strip()
        if not title or not url:
            return None
        fields = result.get("fields") or {}
        trail = strip_html(fields.get("trailText"))
        return Article(
            title=title,
            url=url,
            description=trail,
            content=trail,
            published_at=parse_published_date(result.get("webPublicationDate")),
            source_name="The Guardian",
            image_url=fields.get("thumbnail"),
            country=country,
            category=category,
        )
