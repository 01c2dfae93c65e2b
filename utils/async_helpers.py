# ──────────────────────────────────────────────────────────────────────────────
# File: utils/async_helpers.py
# Purpose: Fan-out helpers shared by the synchronizer and live search.
#
# Why this exists:
#   • Both sync and live search enumerate every category folder per pass
#   • One failing unit must not abort the batch (tagged results, not raises)
#   • Parallelism is capped so the Remote Document Service is not flooded
# ──────────────────────────────────────────────────────────────────────────────

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Outcome(Generic[T, R]):
    """Result of one unit of a fan-out: exactly one of ``value``/``error`` is meaningful."""

    key: T
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_bounded(
    keys: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    limit: int = 4,
) -> List[Outcome[T, R]]:
    """
    Run ``fn(key)`` for every key with at most ``limit`` in flight.

    Returns one Outcome per key, in input order. Exceptions raised by ``fn`` are
    captured into the Outcome; cancellation is not captured and propagates.

    Raises:
        ValueError: if limit < 1
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")
    sem = asyncio.Semaphore(limit)

    async def _one(key: T) -> Outcome[T, R]:
        async with sem:
            try:
                return Outcome(key=key, value=await fn(key))
            except Exception as exc:
                return Outcome(key=key, error=exc)

    return list(await asyncio.gather(*(_one(k) for k in keys)))
