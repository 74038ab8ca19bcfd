"""Primary-then-fallback execution for steps that have a degraded alternative."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from ..schemas.results import Failure

logger = structlog.get_logger()

T = TypeVar("T")


async def first_success(
    primary: Callable[[], Awaitable[T | Failure]],
    fallback: Callable[[], Awaitable[T | Failure]],
    step: str,
) -> T | Failure:
    """Run ``primary``; on a Failure run ``fallback`` and return its outcome.

    The fallback's own failure is the one reported. The primary failure is
    logged so its cause is not lost.
    """
    outcome = await primary()
    if not isinstance(outcome, Failure):
        return outcome

    logger.warning(
        "primary_strategy_failed",
        step=step,
        error=outcome.error,
        error_code=outcome.error_code.value,
    )
    return await fallback()
