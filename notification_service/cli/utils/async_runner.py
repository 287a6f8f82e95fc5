"""Running coroutines from Click commands."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import wraps
import signal
from typing import Any

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def coro[T](f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """Let Click call an ``async def`` command.

    Usage:
        @records.command()
        @coro
        async def stats():
            ...
    """

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        return asyncio.run(f(*args, **kwargs))

    return wrapper


@asynccontextmanager
async def stop_on_signals() -> AsyncIterator[asyncio.Event]:
    """Yield an event that is set on SIGINT or SIGTERM.

    The handlers are removed again on exit so a second Ctrl+C during
    shutdown falls back to the default behaviour.
    """
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, stop_requested.set)
    try:
        yield stop_requested
    finally:
        for sig in STOP_SIGNALS:
            loop.remove_signal_handler(sig)
