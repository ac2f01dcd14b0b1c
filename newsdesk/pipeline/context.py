from dataclasses import dataclass, field
from typing import Optional

from newsdesk.services.cache_service import CacheService
from newsdesk.services.inflight_registry import InFlightRegistry
from newsdesk.services.quota_tracker import QuotaTracker
from newsdesk.utils.error_monitoring import ErrorHandler


@dataclass
class PipelineContext:
    """
    Process-wide shared state, built once at startup and handed to the
    coordinator and every pair orchestrator.
    """
    quota: QuotaTracker = field(default_factory=QuotaTracker)
    cache: Optional[CacheService] = None
    inflight: InFlightRegistry = field(default_factory=InFlightRegistry)
    error_handler: ErrorHandler = field(default_factory=ErrorHandler)

    def __post_init__(self) -> None:
        if self.cache is None:
            self.cache = CacheService(quota_tracker=self.quota)

    async def close(self) -> None:
        await self.cache.close()
