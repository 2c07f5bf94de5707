from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class _Abandoned(Exception):
    """Set on a flight whose leader was cancelled before finishing."""


class SingleFlight:
    """Coalesce concurrent calls for the same key into one in-flight coroutine.

    The first caller for a key runs ``fn``; callers arriving while it is still
    running await the same result (or exception). The key is released as soon
    as the leader finishes, so the next call starts a new flight. If the
    leader is cancelled, the first waiting follower takes over with its own
    ``fn``.
    """

    def __init__(self) -> None:
        self._inflight: Dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    async def do(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        while True:
            fut = self._inflight.get(key)
            if fut is None:
                break
            logger.debug("joining in-flight fetch for %s", key)
            try:
                # shield: a cancelled follower must not cancel the leader's result
                return await asyncio.shield(fut)
            except _Abandoned:
                logger.debug("leader for %s was cancelled, taking over", key)

        fut = asyncio.get_running_loop().create_future()
        self._inflight[key] = fut
        try:
            result = await fn()
        except asyncio.CancelledError:
            fut.set_exception(_Abandoned(key))
            fut.exception()
            raise
        except Exception as e:
            fut.set_exception(e)
            # retrieve so an unjoined failure is not reported as never-awaited
            fut.exception()
            raise
        else:
            fut.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)
