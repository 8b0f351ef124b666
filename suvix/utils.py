import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Callbacks may be plain functions or coroutines; await only the latter."""
    if inspect.isawaitable(value):
        return await value
    return value
