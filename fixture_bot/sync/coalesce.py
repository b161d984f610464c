import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable


class RequestCoalescer:
    """Collapses concurrent calls for the same key into one in-flight task.

    Every caller awaiting a key shares the first caller's result or
    exception. Keys are forgotten as soon as their task finishes, so a later
    call starts a fresh request.
    """

    def __init__(self, name: str = "requests"):
        self.name = name
        self._in_flight: Dict[Hashable, "asyncio.Task[Any]"] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def run(
        self, key: Hashable, factory: Callable[[], Awaitable[Any]]
    ) -> Any:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda _, key=key: self._forget(key, task))
        # A cancelled waiter must not cancel the shared request
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: "asyncio.Task[Any]") -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Marks the exception as retrieved when no waiter is left
            task.exception()
