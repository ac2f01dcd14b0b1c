"""
Provider adapter contract shared by every upstream news source.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup

from newsdesk.models.article import Article

PRIMARY = "primary"
SECONDARY = "secondary"

USER_AGENT = "newsdesk/1.0"


class ProviderError(Exception):
    """Raised by an adapter on transport or API-level failure"""
    pass


@dataclass
class FetchOptions:
    from_date: Optional[datetime] = None
    sort_by_popularity: bool = False
    language: Optional[str] = "en"
    query: Optional[str] = None
    restrict_domains: Optional[List[str]] = None
    page_size: int = 30
    # Ask for archive search rather than current headlines (backfill passes)
    prefer_search: bool = False


class ProviderAdapter:
    """
    Base class for upstream news providers.

    ``fetch`` maps the provider's native payload into Articles and raises
    ProviderError on failure; it returns an empty list, never None, when the
    provider has nothing.
    """

    name = "provider"
    role = PRIMARY

    def __init__(self, timeout: float = 8.0):
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_primary(self) -> bool:
        return self.role == PRIMARY

    async def fetch(self, country: str, category: str, options: FetchOptions) -> List[Article]:
        raise NotImplementedError

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def _request_json(self, url: str, params: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Tuple[int, Any]:
        """GET a JSON document; transport and decoding failures become ProviderError."""
        session = await self._get_session()
        try:
            async with session.get(url, params=params, headers=headers) as resp:
                return resp.status, await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"{self.name} request failed: {e!r}") from e
        except ValueError as e:
            raise ProviderError(f"{self.name} returned malformed JSON: {e}") from e

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()


def strip_html(text: Optional[str]) -> str:
    """Plain text of an HTML fragment."""
    if not text:
        return ""
    if "<" not in text:
        return text.strip()
    return BeautifulSoup(text, "html.parser").get_text(" ", strip=True)


def domain_allowed(domain: str, allowed: List[str]) -> bool:
    """True when ``domain`` is one of ``allowed`` or a subdomain of one."""
    return any(domain == d or domain.endswith(f".{d}") for d in allowed)
