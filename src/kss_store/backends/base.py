"""Helpers shared by the backend adapters."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyInit(Generic[T]):
    """One-shot asynchronous initializer shared by concurrent callers.

    The factory runs on the first ``get()``. Callers arriving while it is in
    flight await the same task, so at most one attempt runs at a time. Each
    caller waits through ``asyncio.shield``: cancelling one caller leaves the
    attempt running for the others.

    A failed attempt is raised to every caller waiting on it and then
    forgotten, so the next ``get()`` starts a new one.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]], name: str) -> None:
        self._factory = factory
        self._name = name
        self._task: asyncio.Task[T] | None = None

    @property
    def ready(self) -> bool:
        """True once the factory has completed successfully."""
        task = self._task
        return (
            task is not None
            and task.done()
            and not task.cancelled()
            and task.exception() is None
        )

    async def get(self) -> T:
        if self._task is None or self._task.cancelled():
            self._task = asyncio.ensure_future(self._run())
            self._task.add_done_callback(consume_task_exception)
        return await asyncio.shield(self._task)

    async def _run(self) -> T:
        try:
            return await self._factory()
        except Exception:
            logger.error("Failed to initialize %s", self._name, exc_info=True)
            if self._task is asyncio.current_task():
                self._task = None
            raise

    def reset(self) -> None:
        """Forget the cached result; the next ``get()`` initializes again."""
        self._task = None


def consume_task_exception(task: asyncio.Future) -> None:
    """Mark a shielded task's exception as retrieved.

    When every caller awaiting the task through ``asyncio.shield`` has been
    cancelled, nobody reads its exception and asyncio would report it as
    never retrieved. The failure is already logged where it happens.
    """
    if not task.cancelled():
        task.exception()


def encode_text_value(value: Any) -> str:
    """Serialize a value for a string-only substrate.

    Strings that are not valid JSON are stored as-is so they are not wrapped
    in an extra layer of quotes. Strings that would parse as JSON (``"123"``,
    ``"null"``) and all other values are JSON encoded, so ``decode_text_value``
    always returns what was written.
    """
    if isinstance(value, str):
        try:
            json.loads(value)
        except json.JSONDecodeError:
            return value
    return json.dumps(value)


def decode_text_value(raw: str) -> Any:
    """Inverse of ``encode_text_value``.

    Text that does not parse as JSON is returned unchanged, which is how
    plain strings come back.
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
