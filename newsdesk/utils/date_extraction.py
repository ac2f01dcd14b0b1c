"""
Date helpers for turning provider timestamps into aware UTC datetimes.
"""

import calendar
import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_published_date(value: Any) -> Optional[datetime]:
    """
    Parse the publication timestamp a provider handed us.

    Accepts ISO-8601 / RFC-822 strings, datetimes and the ``time.struct_time``
    values feedparser produces. Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, time.struct_time):
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    if isinstance(value, (int, float)):
        # Epoch milliseconds when the value is too large to be seconds
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    try:
        return ensure_utc(dateutil_parser.parse(str(value)))
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unparseable published date {value!r}: {e}")
        return None


def extract_date_from_url(url: str) -> Optional[datetime]:
    """
    Extract publication date from URL patterns commonly used by news sites.

    Supports /2025/10/28/slug, /2025-10-28/slug, /slug-2025-10-28 and /20251028/slug.
    """
    if not url:
        return None

    patterns = [
        r'/(\d{4})/(\d{1,2})/(\d{1,2})/',
        r'/(\d{4})-(\d{1,2})-(\d{1,2})[-/]',
        r'-(\d{4})-(\d{1,2})-(\d{1,2})',
    ]
    for pattern in patterns:
        match = re.search(pattern, url)
        if match:
            year, month, day = match.groups()
            try:
                return datetime(int(year), int(month), int(day), tzinfo=timezone.utc)
            except ValueError:
                continue

    match = re.search(r'/(\d{8})/', url)
    if match:
        date_str = match.group(1)
        try:
            return datetime(int(date_str[0:4]), int(date_str[4:6]), int(date_str[6:8]), tzinfo=timezone.utc)
        except ValueError:
            pass

    return None


def window_start(range_hours: Optional[int], now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of a trailing window of ``range_hours`` hours, None for unbounded."""
    if not range_hours:
        return None
    now = now or datetime.now(timezone.utc)
    return now - timedelta(hours=range_hours)


def is_within_window(published_at: Optional[datetime], range_hours: Optional[int], now: Optional[datetime] = None) -> bool:
    """
    True when the article falls in the trailing window.

    Undated articles are kept: nothing proves they are outside the window.
    """
    start = window_start(range_hours, now)
    if start is None or published_at is None:
        return True
    return ensure_utc(published_at) >= start
