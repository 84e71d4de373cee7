"""Helpers shared by port implementations and the orchestrator."""

from __future__ import annotations

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if a port or hook handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call(func: Any, *args: Any) -> Any:
    """Call a sync or async callable and return its settled result."""
    return await maybe_await(func(*args))
