from __future__ import annotations

import inspect
from typing import Any, Awaitable, TypeVar, Union

T = TypeVar("T")


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Resolve the result of a callback that may be sync or async."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_hook(hook: Any, *args: Any) -> Any:
    if hook is None:
        return None
    return await maybe_await(hook(*args))
