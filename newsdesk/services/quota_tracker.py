"""
Per-provider daily call accounting.

Process-local and best-effort: counters are neither persisted nor shared
across instances. They only decide whether cache lifetimes should widen.
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional


class QuotaTracker:
    """Counts provider calls per UTC day against configured daily limits."""

    def __init__(
        self,
        daily_limits: Optional[Dict[str, int]] = None,
        pressure_ratio: float = 0.8,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.daily_limits: Dict[str, int] = dict(daily_limits or {})
        self.pressure_ratio = pressure_ratio
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._day: date = self._today()
        self._counts: Dict[str, int] = {}
        self.logger = logging.getLogger(__name__)

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    def _roll_day(self) -> None:
        today = self._today()
        if today != self._day:
            self.logger.info(f"Quota counters reset for {today.isoformat()} (was {self._day.isoformat()})")
            self._day = today
            self._counts = {}

    def record(self, provider: str, n: int = 1) -> int:
        """Record ``n`` calls to ``provider`` and return today's total."""
        self._roll_day()
        total = self._counts.get(provider, 0) + n
        self._counts[provider] = total

        limit = self.daily_limits.get(provider)
        if limit and total == int(limit * self.pressure_ratio):
            self.logger.warning(f"Quota pressure: {provider} at {total}/{limit} calls today")
        return total

    def count(self, provider: str) -> int:
        self._roll_day()
        return self._counts.get(provider, 0)

    def remaining(self, provider: str) -> Optional[int]:
        """Calls left today, None when the provider has no configured limit."""
        limit = self.daily_limits.get(provider)
        if limit is None:
            return None
        return max(limit - self.count(provider), 0)

    def is_pressured(self, provider: Optional[str] = None) -> bool:
        """True when the provider (or any provider, if none given) is near its daily limit."""
        self._roll_day()
        names = [provider] if provider else list(self.daily_limits)
        for name in names:
            limit = self.daily_limits.get(name)
            if not limit:
                continue
            if self._counts.get(name, 0) >= limit * self.pressure_ratio:
                return True
        return False

    def snapshot(self) -> Dict[str, Dict[str, Optional[int]]]:
        self._roll_day()
        return {
            name: {"count": self._counts.get(name, 0), "limit": self.daily_limits.get(name)}
            for name in sorted(set(self._counts) | set(self.daily_limits))
        }
