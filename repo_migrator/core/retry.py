"""Bounded retry with exponential backoff for single remote operations."""

from collections.abc import Callable

import backoff
import structlog

logger = structlog.get_logger()

MAX_TRIES = 3
MAX_DELAY = 30.0


def retrying(
    description: str,
    *,
    should_retry: Callable[[Exception], bool],
    initial_delay: float = 1.0,
):
    """Decorator retrying a coroutine function on errors ``should_retry`` accepts.

    Args:
        description: What is being attempted, for log events
        should_retry: Predicate deciding whether an error is worth another
            attempt; errors it rejects are raised immediately
        initial_delay: Delay before the second attempt (seconds), doubled
            for each further attempt up to ``MAX_DELAY``

    Returns:
        A ``backoff.on_exception`` decorator making at most ``MAX_TRIES``
        attempts and re-raising the last error
    """

    def _on_backoff(details: dict) -> None:
        logger.warning(
            "Attempt failed, retrying",
            operation=description,
            attempt=details["tries"],
            retries_left=MAX_TRIES - details["tries"],
            delay=details["wait"],
            error=str(details["exception"]),
        )

    return backoff.on_exception(
        backoff.expo,
        Exception,
        max_tries=MAX_TRIES,
        giveup=lambda e: not should_retry(e),
        on_backoff=_on_backoff,
        jitter=None,
        factor=initial_delay,
        max_value=MAX_DELAY,
    )
