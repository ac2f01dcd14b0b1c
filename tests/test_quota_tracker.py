from datetime import datetime, timedelta, timezone

from newsdesk.services.quota_tracker import QuotaTracker


class DayClock:
    def __init__(self):
        self.now = datetime(2025, 3, 14, 23, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_pressure_at_ratio_of_limit():
    """Pressure starts once calls reach the configured share of the daily limit."""
    quota = QuotaTracker(daily_limits={"newsapi": 100}, pressure_ratio=0.8)
    quota.record("newsapi", 79)
    assert not quota.is_pressured()
    quota.record("newsapi")
    assert quota.is_pressured()
    assert quota.is_pressured("newsapi")
    assert quota.remaining("newsapi") == 20


def test_unlimited_provider_never_pressures():
    quota = QuotaTracker(daily_limits={"newsapi": 100})
    quota.record("rss", 10_000)
    assert not quota.is_pressured()
    assert quota.remaining("rss") is None
    assert quota.count("rss") == 10_000


def test_counters_reset_on_new_utc_day():
    """Counts roll over when the UTC date changes."""
    clock = DayClock()
    quota = QuotaTracker(daily_limits={"guardian": 10}, clock=clock)
    quota.record("guardian", 9)
    assert quota.is_pressured()

    clock.now += timedelta(hours=2)
    assert quota.count("guardian") == 0
    assert not quota.is_pressured()
    assert quota.snapshot() == {"guardian": {"count": 0, "limit": 10}}
