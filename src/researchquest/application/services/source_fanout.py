"""Concurrent best-effort search across several external sources."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SOURCE_TIMEOUT = 10.0


def source_timeout_from_env() -> float:
    raw = os.getenv("RESEARCHQUEST_SOURCE_TIMEOUT_SECONDS", "")
    try:
        value = float(raw) if raw else DEFAULT_SOURCE_TIMEOUT
    except ValueError:
        return DEFAULT_SOURCE_TIMEOUT
    return value if value > 0 else DEFAULT_SOURCE_TIMEOUT


@dataclass
class FanOutResult(Generic[T]):
    by_source: Dict[str, List[T]] = field(default_factory=dict)
    failed_sources: List[str] = field(default_factory=list)

    def merged(self) -> List[T]:
        items: List[T] = []
        for results in self.by_source.values():
            items.extend(results)
        return items


async def fan_out(
    sources: Mapping[str, Any],
    call: Callable[[Any], Awaitable[List[T]]],
    *,
    timeout: float = DEFAULT_SOURCE_TIMEOUT,
) -> FanOutResult[T]:
    """
    Run ``call(source)`` for every source concurrently.

    A source that raises or exceeds ``timeout`` contributes zero results and
    is listed in ``failed_sources``; nothing propagates to the caller.
    """
    names = list(sources)
    if not names:
        return FanOutResult()

    async def _guarded(name: str):
        try:
            return await asyncio.wait_for(call(sources[name]), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Source %s timed out after %.0fs", name, timeout)
            return TimeoutError(f"{name} timed out")
        except Exception as exc:
            return exc

    results = await asyncio.gather(*[_guarded(n) for n in names], return_exceptions=True)

    outcome: FanOutResult[T] = FanOutResult()
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            logger.warning("Source %s failed: %s", name, result)
            outcome.failed_sources.append(name)
            continue
        outcome.by_source[name] = list(result or [])

    if outcome.failed_sources:
        logger.info(
            "Search degraded: %d/%d sources failed (%s)",
            len(outcome.failed_sources),
            len(names),
            ", ".join(outcome.failed_sources),
        )
    return outcome


async def close_all(adapters: Mapping[str, Any]) -> None:
    for name, adapter in adapters.items():
        try:
            await adapter.close()
        except Exception as exc:
            logger.debug("closing %s failed: %s", name, exc)
