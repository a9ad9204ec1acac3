"""Helpers for side effects whose failure must never reach the caller."""

from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")


def best_effort(
    operation: str, func: Callable[..., T], *args: Any, **kwargs: Any
) -> Optional[T]:
    """Run `func`; on any exception log `<operation>.failed` and return None."""
    try:
        return func(*args, **kwargs)
    except Exception as e:
        log.warning(f"{operation}.failed", error=str(e), exc_info=True)
        return None


async def best_effort_async(
    operation: str, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
) -> Optional[T]:
    """Async counterpart of `best_effort`."""
    try:
        return await func(*args, **kwargs)
    except Exception as e:
        log.warning(f"{operation}.failed", error=str(e), exc_info=True)
        return None
