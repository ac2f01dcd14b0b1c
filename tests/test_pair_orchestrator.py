import asyncio

import pytest

from newsdesk.models.article import NewsRequest
from newsdesk.pipeline.context import PipelineContext
from newsdesk.pipeline.pair_orchestrator import (
    UNRESTRICTED_COUNTRIES,
    WELL_COVERED_COUNTRIES,
    PairOrchestrator,
    PairState,
    widen_window,
)
from newsdesk.services.provider_base import SECONDARY, ProviderError
from newsdesk.services.relevance_keywords import TRUSTED_DOMAINS


def fr_sports_request(**overrides) -> NewsRequest:
    params = dict(countries=["fr"], categories=["sports"], date_range="24h")
    params.update(overrides)
    return NewsRequest(**params)


def accepted_articles(factory, prefix, n):
    return [
        factory(f"France names new rugby coach {prefix} {i}", url=f"https://example.com/{prefix}/coach-{i}")
        for i in range(n)
    ]


def filler_articles(factory, n):
    return [
        factory(f"Club signs new player {i}", url=f"https://example.com/filler/player-{i}")
        for i in range(n)
    ]


def test_policy_sets():
    assert "fr" in WELL_COVERED_COUNTRIES
    assert "fr" not in UNRESTRICTED_COUNTRIES
    assert "br" in UNRESTRICTED_COUNTRIES
    assert "us" not in UNRESTRICTED_COUNTRIES


def test_widen_window():
    assert widen_window(24) == 48
    assert widen_window(72) == 144
    assert widen_window(168) == 504
    assert widen_window(300) == 720
    assert widen_window(720) == 720


@pytest.mark.asyncio
async def test_undersupplied_well_covered_pair_escalates(article_factory, fake_adapter_cls):
    """fr/sports: 3 of 20 pass, so held-back adapters run, then the primary backfills."""
    primary = fake_adapter_cls(
        "newsapi",
        articles=accepted_articles(article_factory, "primary", 3) + filler_articles(article_factory, 17),
    )
    secondary = fake_adapter_cls("guardian", role=SECONDARY, articles=accepted_articles(article_factory, "secondary", 5))
    orchestrator = PairOrchestrator(PipelineContext(), [primary, secondary])

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert result.states == [
        PairState.CACHE_CHECK,
        PairState.FETCH,
        PairState.DEDUP,
        PairState.FILTER,
        PairState.ESCALATE_SECONDARY,
        PairState.ESCALATE_BACKFILL,
        PairState.PERSIST,
        PairState.DONE,
    ]
    assert len(secondary.calls) == 1
    assert len(primary.calls) == 2

    first_options = primary.calls[0][2]
    backfill_options = primary.calls[1][2]
    assert not first_options.prefer_search
    assert backfill_options.prefer_search
    assert (first_options.from_date - backfill_options.from_date).total_seconds() == pytest.approx(24 * 3600, abs=5)
    assert first_options.restrict_domains == TRUSTED_DOMAINS

    # 8 accepted first, padded with filler up to the minimum
    assert len(result.articles) == 15
    assert all(a.country_score >= 2 for a in result.articles[:8])
    assert result.raw_count == 45


@pytest.mark.asyncio
async def test_well_supplied_pair_skips_secondary(article_factory, fake_adapter_cls):
    primary = fake_adapter_cls("newsapi", articles=accepted_articles(article_factory, "p", 15))
    secondary = fake_adapter_cls("guardian", role=SECONDARY)
    orchestrator = PairOrchestrator(PipelineContext(), [primary, secondary])

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert secondary.calls == []
    assert len(primary.calls) == 1
    assert PairState.ESCALATE_SECONDARY not in result.states
    assert len(result.articles) == 15


@pytest.mark.asyncio
async def test_other_countries_call_every_adapter_first(article_factory, fake_adapter_cls):
    primary = fake_adapter_cls("newsapi")
    secondary = fake_adapter_cls("guardian", role=SECONDARY)
    orchestrator = PairOrchestrator(PipelineContext(), [primary, secondary], min_articles=0)

    await orchestrator.run("br", "sports", NewsRequest(countries=["br"], categories=["sports"]))

    assert len(primary.calls) == 1
    assert len(secondary.calls) == 1
    # Without a domestic trusted outlet the domain restriction is dropped
    assert primary.calls[0][2].restrict_domains is None


@pytest.mark.asyncio
async def test_failing_adapter_does_not_abort_pair(article_factory, fake_adapter_cls):
    broken = fake_adapter_cls("guardian", error=ProviderError("HTTP 500"))
    working = fake_adapter_cls("newsapi", articles=accepted_articles(article_factory, "ok", 2))
    context = PipelineContext()
    orchestrator = PairOrchestrator(context, [broken, working], min_articles=1)

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert len(result.articles) == 2
    assert context.error_handler.get_error_statistics()["services"] == {"guardian": 1}


@pytest.mark.asyncio
async def test_slow_adapter_times_out(article_factory, fake_adapter_cls):
    slow = fake_adapter_cls("guardian", delay=0.5, articles=accepted_articles(article_factory, "slow", 2))
    fast = fake_adapter_cls("newsapi", articles=accepted_articles(article_factory, "fast", 1))
    context = PipelineContext()
    orchestrator = PairOrchestrator(context, [slow, fast], min_articles=1, adapter_timeout=0.05)

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert [a.url for a in result.articles] == ["https://example.com/fast/coach-0"]
    assert context.error_handler.get_error_statistics()["error_types"] == {"TimeoutError": 1}


@pytest.mark.asyncio
async def test_empty_result_is_cached(fake_adapter_cls):
    """Total undersupply is a valid outcome and is served from cache next time."""
    primary = fake_adapter_cls("newsapi")
    orchestrator = PairOrchestrator(PipelineContext(), [primary])

    first = await orchestrator.run("fr", "sports", fr_sports_request())
    calls_after_first = len(primary.calls)
    second = await orchestrator.run("fr", "sports", fr_sports_request())

    assert first.articles == []
    assert second.cache_hit
    assert second.articles == []
    assert second.states == [PairState.CACHE_CHECK, PairState.DONE]
    assert len(primary.calls) == calls_after_first


@pytest.mark.asyncio
async def test_concurrent_runs_for_same_key_coalesce(article_factory, fake_adapter_cls):
    primary = fake_adapter_cls("newsapi", delay=0.05, articles=accepted_articles(article_factory, "p", 2))
    context = PipelineContext()
    orchestrator = PairOrchestrator(context, [primary], min_articles=1)

    a, b = await asyncio.gather(
        orchestrator.run("fr", "sports", fr_sports_request()),
        orchestrator.run("fr", "sports", fr_sports_request()),
    )

    assert len(primary.calls) == 1
    assert {a.coalesced, b.coalesced} == {True, False}
    assert [x.url for x in a.articles] == [x.url for x in b.articles]
    assert len(context.inflight) == 0


@pytest.mark.asyncio
async def test_backfill_accepts_articles_from_wider_window(article_factory, fake_adapter_cls):
    old = article_factory("France names new rugby coach", url="https://example.com/old-coach", hours_ago=30)

    def respond(country, category, options):
        return [old] if options.prefer_search else []

    primary = fake_adapter_cls("newsapi", responder=respond)
    orchestrator = PairOrchestrator(PipelineContext(), [primary])

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert [a.url for a in result.articles] == [old.url]


@pytest.mark.asyncio
async def test_articles_outside_pass_window_are_dropped(article_factory, fake_adapter_cls):
    old = article_factory("France names new rugby coach", url="https://example.com/old-coach", hours_ago=30)
    primary = fake_adapter_cls("newsapi", responder=lambda c, cat, o: [] if o.prefer_search else [old])
    orchestrator = PairOrchestrator(PipelineContext(), [primary])

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert result.articles == []


@pytest.mark.asyncio
async def test_unbounded_range_skips_backfill(fake_adapter_cls):
    primary = fake_adapter_cls("newsapi")
    orchestrator = PairOrchestrator(PipelineContext(), [primary])

    result = await orchestrator.run("fr", "sports", fr_sports_request(date_range="all"))

    assert PairState.ESCALATE_BACKFILL not in result.states
    assert primary.calls[0][2].from_date is None


@pytest.mark.asyncio
async def test_user_sources_restrict_results(article_factory, fake_adapter_cls):
    kept = article_factory("France names new rugby coach", url="https://www.lemonde.fr/sport/coach")
    dropped = article_factory("France rugby squad named", url="https://example.com/squad")
    primary = fake_adapter_cls("newsapi", articles=[kept, dropped])
    orchestrator = PairOrchestrator(PipelineContext(), [primary], min_articles=1)

    result = await orchestrator.run("fr", "sports", fr_sports_request(sources=["lemonde.fr"]))

    assert primary.calls[0][2].restrict_domains == ["lemonde.fr"]
    assert [a.url for a in result.articles] == [kept.url]


@pytest.mark.asyncio
async def test_duplicate_and_placeholder_articles_dropped(article_factory, fake_adapter_cls):
    a = article_factory("France names new rugby coach", url="https://example.com/coach")
    removed = article_factory("[Removed]", url="https://removed.com")
    primary = fake_adapter_cls("newsapi", articles=[a, a, removed])
    secondary = fake_adapter_cls("rss", articles=[a])
    orchestrator = PairOrchestrator(PipelineContext(), [primary, secondary], min_articles=1)

    result = await orchestrator.run("fr", "sports", fr_sports_request())

    assert [x.url for x in result.articles] == [a.url]


@pytest.mark.asyncio
async def test_adapter_returning_none_is_a_bug(fake_adapter_cls):
    broken = fake_adapter_cls("newsapi", responder=lambda c, cat, o: None)
    context = PipelineContext()
    orchestrator = PairOrchestrator(context, [broken])

    with pytest.raises(TypeError):
        await orchestrator.run("fr", "sports", fr_sports_request())
    assert len(context.inflight) == 0


@pytest.mark.asyncio
async def test_each_adapter_call_counts_against_quota(article_factory, fake_adapter_cls):
    primary = fake_adapter_cls("newsapi", articles=accepted_articles(article_factory, "p", 1))
    context = PipelineContext()
    orchestrator = PairOrchestrator(context, [primary])

    await orchestrator.run("fr", "sports", fr_sports_request())

    # First pass plus backfill
    assert context.quota.count("newsapi") == 2
