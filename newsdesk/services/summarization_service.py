"""
Article summarization through an ordered chain of LLM providers.

Runs after ranking only. A provider that is out of quota hands over to the
next one; any other failure ends the chain and the article simply carries no
summary.
"""

import asyncio
import logging
import re
from dataclasses import replace
from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from newsdesk.models.article import Article


class SummarizationError(Exception):
    """Hard summarization failure: stop the chain"""
    pass


class QuotaExceededError(SummarizationError):
    """Provider quota exhausted: try the next provider"""
    pass


SUMMARY_PROMPT = """Summarize this news article in 2 to 3 short bullet points. Each point should be one brief sentence. Only output the bullet points, nothing else.
• Point 1
• Point 2
• Point 3 (if needed)

Article: {content}"""

_BULLET_RE = re.compile(r"^\s*[•*\-]")
_BULLET_PREFIX_RE = re.compile(r"^\s*[•*\-]+\s*")


def parse_bullet_points(text: Optional[str], max_points: int = 3) -> Optional[List[str]]:
    """Bullet lines of a model reply, or None when it produced none."""
    if not text:
        return None
    bullets = [
        _BULLET_PREFIX_RE.sub("", line).strip()
        for line in text.split("\n")
        if _BULLET_RE.match(line)
    ]
    bullets = [b for b in bullets if b]
    return bullets[:max_points] or None


def article_text(article: Article) -> str:
    return f"{article.title}. {article.description or ''}".strip()


class SummaryProvider:
    name = "summary"

    async def summarize(self, text: str) -> Optional[List[str]]:
        raise NotImplementedError


class GeminiSummaryProvider(SummaryProvider):
    """Summaries from Gemini through the google-genai async client."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.3,
        max_output_tokens: int = 500,
        timeout: float = 20.0,
    ):
        if not api_key:
            raise ValueError("Gemini API key required. Set GEMINI_API_KEY or pass api_key parameter.")
        self.client = genai.Client(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def summarize(self, text: str) -> Optional[List[str]]:
        config = types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=SUMMARY_PROMPT.format(content=text),
                    config=config,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise SummarizationError(f"Gemini call timed out after {self.timeout}s") from e
        except genai_errors.APIError as e:
            if getattr(e, "code", None) == 429:
                raise QuotaExceededError(f"Gemini quota exhausted: {e}") from e
            raise SummarizationError(f"Gemini API error: {e}") from e

        try:
            reply = response.text
        except ValueError:
            reply = None
        return parse_bullet_points(reply)


class SummarizationService:
    """Ordered provider chain with quota fall-through."""

    def __init__(self, providers: List[SummaryProvider]):
        self.providers = list(providers)
        self.stats = {"attempted": 0, "summarized": 0, "quota_fallthrough": 0, "failed": 0}
        self.logger = logging.getLogger(__name__)

    async def summarize(self, text: str) -> Optional[List[str]]:
        """Bullet points for ``text`` or None when no provider could produce them."""
        self.stats["attempted"] += 1
        for provider in self.providers:
            try:
                points = await provider.summarize(text)
            except QuotaExceededError as e:
                self.stats["quota_fallthrough"] += 1
                self.logger.warning(f"{provider.name} out of quota, trying next provider: {e}")
                continue
            except SummarizationError as e:
                self.stats["failed"] += 1
                self.logger.warning(f"Summarization failed with {provider.name}, giving up: {e}")
                return None
            except Exception as e:
                # Transport errors from provider SDKs arrive unwrapped
                self.stats["failed"] += 1
                self.logger.error(f"Unexpected {type(e).__name__} from {provider.name}, giving up: {e}")
                return None

            if points:
                self.stats["summarized"] += 1
            return points

        self.logger.info("All summary providers exhausted")
        return None

    async def summarize_articles(self, articles: List[Article], top_n: int = 3) -> List[Article]:
        """Attach summaries to the first ``top_n`` articles; the rest pass through unchanged."""
        if not self.providers or top_n <= 0 or not articles:
            return list(articles)

        head = articles[:top_n]
        summaries = await asyncio.gather(*(self.summarize(article_text(a)) for a in head))
        summarized = [
            replace(a, summary_points=points) if points else a
            for a, points in zip(head, summaries)
        ]
        return summarized + list(articles[top_n:])
