import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional


class InFlightRegistry:
    """
    Shares one pending computation between concurrent callers of the same key.

    Runs on a single event loop: the check-then-register in ``run`` has no
    await between the lookup and the insert, so only one fetch per key can be
    registered at a time.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, asyncio.Future] = {}
        self.logger = logging.getLogger(__name__)

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def get(self, key: str) -> Optional[asyncio.Future]:
        return self._pending.get(key)

    def register(self, key: str) -> asyncio.Future:
        if key in self._pending:
            raise RuntimeError(f"Fetch already in flight for {key}")
        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        return future

    def release(self, key: str) -> None:
        self._pending.pop(key, None)

    async def wait(self, key: str) -> Any:
        """Await the pending result for ``key`` without letting this caller cancel it."""
        future = self._pending[key]
        return await asyncio.shield(future)

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Run ``factory`` for ``key`` unless a run is already pending, in which
        case await that run's result instead.
        """
        pending = self._pending.get(key)
        if pending is not None:
            self.logger.info(f"Coalescing onto in-flight fetch: {key}")
            return await asyncio.shield(pending)

        future = self.register(key)
        try:
            result = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
                # Mark retrieved so a fetch nobody else awaited does not warn on GC
                future.exception()
            raise
        else:
            if not future.done():
                future.set_result(result)
            return result
        finally:
            self.release(key)
