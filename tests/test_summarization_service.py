from typing import List, Optional

import pytest

from newsdesk.services.summarization_service import (
    QuotaExceededError,
    SummarizationError,
    SummarizationService,
    SummaryProvider,
    article_text,
    parse_bullet_points,
)


class ScriptedProvider(SummaryProvider):
    def __init__(self, name: str, result=None, error: Optional[Exception] = None):
        self.name = name
        self.result = result
        self.error = error
        self.calls: List[str] = []

    async def summarize(self, text: str) -> Optional[List[str]]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result


def test_parse_bullet_points():
    reply = "Here you go:\n• First point\n- Second point\n* Third point\n• Fourth point"
    assert parse_bullet_points(reply) == ["First point", "Second point", "Third point"]
    assert parse_bullet_points("No bullets at all") is None
    assert parse_bullet_points("") is None
    assert parse_bullet_points(None) is None


def test_article_text(article_factory):
    article = article_factory("Rocket launch delayed", description="Storms over the pad")
    assert article_text(article) == "Rocket launch delayed. Storms over the pad"


@pytest.mark.asyncio
async def test_quota_error_falls_through_to_next_provider():
    """An exhausted provider hands the article to the next one."""
    exhausted = ScriptedProvider("first", error=QuotaExceededError("429"))
    backup = ScriptedProvider("second", result=["Point"])
    service = SummarizationService([exhausted, backup])

    assert await service.summarize("text") == ["Point"]
    assert len(backup.calls) == 1
    assert service.stats["quota_fallthrough"] == 1
    assert service.stats["summarized"] == 1


@pytest.mark.asyncio
async def test_hard_error_stops_the_chain():
    broken = ScriptedProvider("first", error=SummarizationError("bad request"))
    backup = ScriptedProvider("second", result=["Point"])
    service = SummarizationService([broken, backup])

    assert await service.summarize("text") is None
    assert backup.calls == []
    assert service.stats["failed"] == 1


@pytest.mark.asyncio
async def test_all_providers_exhausted():
    service = SummarizationService([
        ScriptedProvider("first", error=QuotaExceededError("429")),
        ScriptedProvider("second", error=QuotaExceededError("429")),
    ])
    assert await service.summarize("text") is None
    assert service.stats["quota_fallthrough"] == 2


@pytest.mark.asyncio
async def test_empty_reply_is_not_a_summary():
    service = SummarizationService([ScriptedProvider("first", result=None)])
    assert await service.summarize("text") is None
    assert service.stats["summarized"] == 0


@pytest.mark.asyncio
async def test_only_top_articles_are_summarized(article_factory):
    provider = ScriptedProvider("first", result=["Point"])
    service = SummarizationService([provider])
    articles = [article_factory(f"Story {i}", url=f"https://example.com/{i}") for i in range(5)]

    result = await service.summarize_articles(articles, top_n=2)

    assert [a.url for a in result] == [a.url for a in articles]
    assert [a.summary_points for a in result] == [["Point"], ["Point"], None, None, None]
    assert len(provider.calls) == 2
    # Originals are left untouched
    assert all(a.summary_points is None for a in articles)


@pytest.mark.asyncio
async def test_no_providers_passes_articles_through(article_factory):
    articles = [article_factory("Story")]
    assert await SummarizationService([]).summarize_articles(articles) == articles


@pytest.mark.asyncio
async def test_unexpected_provider_error_means_no_summary():
    """Unwrapped transport errors end the chain without escaping."""
    broken = ScriptedProvider("first", error=ConnectionError("transport reset"))
    backup = ScriptedProvider("second", result=["Point"])
    service = SummarizationService([broken, backup])

    assert await service.summarize("text") is None
    assert backup.calls == []
    assert service.stats["failed"] == 1
