import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from newsdesk.models.article import Article
from newsdesk.services.provider_base import PRIMARY, FetchOptions, ProviderAdapter


def make_article(
    title: str,
    url: Optional[str] = None,
    description: str = "",
    content: str = "",
    hours_ago: Optional[float] = 1,
    source_name: str = "",
    country: str = "",
    category: str = "",
    now: Optional[datetime] = None,
) -> Article:
    now = now or datetime.now(timezone.utc)
    slug = "-".join(title.lower().split())[:60] or "untitled"
    return Article(
        title=title,
        url=url or f"https://example.com/{slug}",
        description=description,
        content=content,
        published_at=None if hours_ago is None else now - timedelta(hours=hours_ago),
        source_name=source_name,
        country=country,
        category=category,
    )


class FakeAdapter(ProviderAdapter):
    """In-memory adapter that records its calls."""

    def __init__(
        self,
        name: str,
        role: str = PRIMARY,
        articles: Optional[List[Article]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        responder: Optional[Callable[[str, str, FetchOptions], List[Article]]] = None,
    ):
        super().__init__(timeout=1.0)
        self.name = name
        self.role = role
        self.articles = list(articles or [])
        self.error = error
        self.delay = delay
        self.responder = responder
        self.calls: List[tuple] = []

    async def fetch(self, country: str, category: str, options: FetchOptions) -> List[Article]:
        self.calls.append((country, category, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.responder is not None:
            return self.responder(country, category, options)
        return list(self.articles)


@pytest.fixture
def article_factory():
    return make_article


@pytest.fixture
def fake_adapter_cls():
    return FakeAdapter
