"""Caller-side retry helper; the dispatcher itself never retries."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from ..core.errors import TransportError

log = logging.getLogger(__name__)


async def async_retry(
    fn: Callable[[], Awaitable[Any]],
    retries: int = 3,
    delay: float = 0.5,
    backoff: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (TransportError,),
) -> Any:
    """Retry an awaitable callable with exponential backoff.

    Only exceptions in ``retry_on`` are retried; structured RPC errors and
    conversion errors are caller mistakes and propagate immediately.
    """

    attempt = 0
    exc: Optional[BaseException] = None
    while attempt < retries:
        try:
            return await fn()
        except retry_on as err:
            exc = err
            attempt += 1
            if attempt >= retries:
                break
            sleep_for = delay * (backoff ** (attempt - 1))
            log.debug("[retry] attempt=%d/%d sleep=%.2fs err=%s", attempt, retries, sleep_for, err)
            await asyncio.sleep(sleep_for)
    if exc:
        raise exc
    raise RuntimeError("async_retry exhausted without exception detail")


__all__ = ["async_retry"]
