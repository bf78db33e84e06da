"""Translate driver failures into the application's StoreError."""
from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from mentor_chat.application.exceptions import StoreError

T = TypeVar("T")


def store_errors(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(f"{fn.__qualname__} failed: {exc.__class__.__name__}") from exc

    return wrapper
