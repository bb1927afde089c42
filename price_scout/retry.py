"""Retrying fetcher — bounded retries with growing timeouts and jittered backoff."""
import asyncio
import logging
import random
from typing import Awaitable, Callable

from .errors import SourceFetchError
from .models import Deal, SearchCriteria
from .scrapers.base import Source

logger = logging.getLogger(__name__)


async def fetch_with_retry(
    source: Source,
    criteria: SearchCriteria,
    max_retries: int = 3,
    base_timeout: float = 20.0,
    timeout_increment: float = 15.0,
    jitter: tuple[float, float] = (2.0, 5.0),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[Deal]:
    """
    Fetch a source's deals, retrying on failure.

    Attempt i (0-indexed) gets base_timeout + i * timeout_increment seconds.
    Every attempt after the first waits a random interval drawn from
    jitter first. Raises SourceFetchError carrying the last failure once
    max_retries attempts have failed.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    last_error: Exception | None = None
    for attempt in range(max_retries):
        timeout = base_timeout + attempt * timeout_increment
        if attempt > 0:
            await sleep(random.uniform(*jitter))

        try:
            deals = await asyncio.wait_for(source.fetcher.fetch(criteria), timeout=timeout)
        except asyncio.TimeoutError as e:
            last_error = e
            logger.warning(
                "%s timed out after %.1fs (attempt %d/%d)",
                source.name, timeout, attempt + 1, max_retries,
            )
        except Exception as e:
            last_error = e
            logger.warning(
                "%s failed (attempt %d/%d): %s",
                source.name, attempt + 1, max_retries, e,
            )
        else:
            if attempt > 0:
                logger.info("%s succeeded on attempt %d", source.name, attempt + 1)
            return deals

    if isinstance(last_error, SourceFetchError):
        raise last_error
    if isinstance(last_error, asyncio.TimeoutError):
        raise SourceFetchError(source.name, f"timed out after {max_retries} attempts") from last_error
    raise SourceFetchError(source.name, str(last_error)) from last_error
