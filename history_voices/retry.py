"""Exponential backoff for remote calls that hit rate limits."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from history_voices.constants import RETRY_COUNT, RETRY_INITIAL_DELAY

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUOTA_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")


def is_quota_error(error: BaseException) -> bool:
    """True if the error looks like a 429 / quota-exhausted response.

    google-genai's APIError carries an int ``code`` and a string ``status``;
    anything else is matched on its message, ignoring case.
    """
    for attr in ("code", "status", "status_code"):
        value = getattr(error, attr, None)
        if value == 429 or value == "RESOURCE_EXHAUSTED":
            return True
    message = str(error).lower()
    return any(marker.lower() in message for marker in QUOTA_MARKERS)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = RETRY_COUNT,
    delay: float = RETRY_INITIAL_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await operation(), retrying only on quota errors.

    Waits ``delay`` seconds before the first retry and doubles it each time.
    Any other error, or a quota error once retries run out, is re-raised
    unchanged.
    """
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_quota_error(e) or retries <= 0:
                raise
            logger.warning(
                "Quota limit hit. Retrying in %.1fs... (%d attempts remaining)",
                delay, retries,
            )
            await sleep(delay)
            delay *= 2
            retries -= 1
