from typing import List, Optional

import pytest

from newsdesk.models.article import NewsRequest
from newsdesk.pipeline.context import PipelineContext
from newsdesk.pipeline.request_coordinator import ConfigurationError, RequestCoordinator
from newsdesk.services.summarization_service import SummarizationService, SummaryProvider


class StaticSummaryProvider(SummaryProvider):
    name = "static"

    def __init__(self):
        self.calls = 0

    async def summarize(self, text: str) -> Optional[List[str]]:
        self.calls += 1
        return ["First point", "Second point"]


def sports_responder(factory):
    """One domestic story per country plus a wire story filed for both; the wire story only pads."""
    def respond(country, category, options):
        name = {"fr": "France", "gb": "Britain"}[country]
        return [
            factory(f"{name} names new rugby coach", url=f"https://example.com/{country}/coach"),
            factory("Olympic committee confirms venue", url="https://www.reuters.com/sports/olympic-venue"),
        ]
    return respond


def test_no_adapters_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        RequestCoordinator(PipelineContext(), [])


def test_expand_pairs_dedups_and_lowercases():
    request = NewsRequest(countries=["FR", "fr", "gb"], categories=["Sports"])
    assert RequestCoordinator.expand_pairs(request) == [("fr", "sports"), ("gb", "sports")]


def test_ranking_options_from_request():
    request = NewsRequest(
        countries=["us"],
        categories=["technology"],
        search_query='"quantum computing" chips',
        date_range="week",
        keyword_mode=True,
    )
    options = RequestCoordinator.ranking_options(request)
    assert options.category == "technology"
    assert options.search_terms == ["quantum computing", "chips"]
    assert options.range_hours == 168
    assert options.keyword_mode

    multi = RequestCoordinator.ranking_options(NewsRequest(countries=["us"], categories=["technology", "science"]))
    assert multi.category is None


@pytest.mark.asyncio
async def test_multi_country_request_merges_and_dedups(article_factory, fake_adapter_cls):
    adapter = fake_adapter_cls("newsapi", responder=sports_responder(article_factory))
    coordinator = RequestCoordinator(PipelineContext(), [adapter], min_articles=2)

    response = await coordinator.fetch_news(NewsRequest(countries=["fr", "gb"], categories=["sports"]))

    urls = [a.url for a in response.articles]
    assert len(urls) == len(set(urls))
    assert set(urls) == {
        "https://example.com/fr/coach",
        "https://example.com/gb/coach",
        "https://www.reuters.com/sports/olympic-venue",
    }
    assert response.total_results == 3
    assert not response.cached


@pytest.mark.asyncio
async def test_second_identical_request_is_cached(article_factory, fake_adapter_cls):
    adapter = fake_adapter_cls("newsapi", responder=sports_responder(article_factory))
    coordinator = RequestCoordinator(PipelineContext(), [adapter], min_articles=2)
    request = NewsRequest(countries=["fr"], categories=["sports"])

    await coordinator.fetch_news(request)
    calls_after_first = len(adapter.calls)
    response = await coordinator.fetch_news(request)

    assert response.cached
    assert len(adapter.calls) == calls_after_first


@pytest.mark.asyncio
async def test_requested_window_enforced_on_final_list(article_factory, fake_adapter_cls):
    """Backfilled articles older than the requested window do not reach the response."""
    recent = article_factory("France names new rugby coach", url="https://example.com/recent")
    old = article_factory("France rugby squad named for tour", url="https://example.com/old", hours_ago=40)
    undated = article_factory("France football league restarts", url="https://example.com/undated", hours_ago=None)

    def respond(country, category, options):
        return [recent, old, undated] if options.prefer_search else [recent, undated]

    adapter = fake_adapter_cls("newsapi", responder=respond)
    coordinator = RequestCoordinator(PipelineContext(), [adapter])

    response = await coordinator.fetch_news(NewsRequest(countries=["fr"], categories=["sports"], date_range="24h"))

    assert {a.url for a in response.articles} == {recent.url, undated.url}


@pytest.mark.asyncio
async def test_low_coverage_reported(article_factory, fake_adapter_cls):
    adapter = fake_adapter_cls("newsapi", responder=sports_responder(article_factory))
    coordinator = RequestCoordinator(PipelineContext(), [adapter], min_articles=2)

    response = await coordinator.fetch_news(NewsRequest(countries=["fr"], categories=["sports"]))

    assert [(lc.country, lc.category, lc.count) for lc in response.low_coverage] == [("fr", "sports", 2)]
    assert response.to_dict()["lowCoverage"] == [{"country": "fr", "category": "sports", "count": 2}]


@pytest.mark.asyncio
async def test_limit_and_summaries_applied(article_factory, fake_adapter_cls):
    adapter = fake_adapter_cls("newsapi", responder=sports_responder(article_factory))
    provider = StaticSummaryProvider()
    coordinator = RequestCoordinator(
        PipelineContext(),
        [adapter],
        summarizer=SummarizationService([provider]),
        summary_top_n=1,
        min_articles=2,
    )

    response = await coordinator.fetch_news(
        NewsRequest(countries=["fr", "gb"], categories=["sports"], limit=2)
    )

    assert len(response.articles) == 2
    assert response.articles[0].summary_points == ["First point", "Second point"]
    assert response.articles[1].summary_points is None
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_failed_pair_contributes_nothing(article_factory, fake_adapter_cls):
    def respond(country, category, options):
        if country == "gb":
            return None
        return [article_factory("France names new rugby coach", url="https://example.com/fr/coach")]

    adapter = fake_adapter_cls("newsapi", responder=respond)
    context = PipelineContext()
    coordinator = RequestCoordinator(context, [adapter], min_articles=1)

    response = await coordinator.fetch_news(NewsRequest(countries=["fr", "gb"], categories=["sports"]))

    assert [a.url for a in response.articles] == ["https://example.com/fr/coach"]
    assert context.error_handler.get_error_statistics()["services"] == {"pipeline": 1}
    assert not response.cached


@pytest.mark.asyncio
async def test_empty_request(fake_adapter_cls):
    coordinator = RequestCoordinator(PipelineContext(), [fake_adapter_cls("newsapi")])
    response = await coordinator.fetch_news(NewsRequest(countries=[], categories=["sports"]))
    assert response.articles == []
    assert response.total_results == 0


class BrokenSummaryProvider(SummaryProvider):
    name = "broken"

    async def summarize(self, text: str) -> Optional[List[str]]:
        raise ConnectionError("transport reset")


@pytest.mark.asyncio
async def test_summary_failure_keeps_ranked_response(article_factory, fake_adapter_cls):
    adapter = fake_adapter_cls("newsapi", responder=sports_responder(article_factory))
    coordinator = RequestCoordinator(
        PipelineContext(),
        [adapter],
        summarizer=SummarizationService([BrokenSummaryProvider()]),
        min_articles=2,
    )

    response = await coordinator.fetch_news(NewsRequest(countries=["fr"], categories=["sports"]))

    assert len(response.articles) == 2
    assert all(a.summary_points is None for a in response.articles)
