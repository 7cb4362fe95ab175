# ABOUTME: Hot, multi-subscriber state streams that replay their latest value.
# ABOUTME: QueryStream re-derives its value from storage after commits to the tables it watches.

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from typing import Any, Generic, TypeVar

from deadly.db.gateway import StorageGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateStream(Generic[T]):
    """A value that changes over time.

    Subscribers are called immediately with the current value and then on
    every change. Publishing an equal value is a no-op, so subscribers only
    see distinct consecutive values.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def publish(self, value: T, *, force: bool = False) -> bool:
        """Set a new value and push it to subscribers.

        An equal value replaces the stored one without notifying anyone,
        unless ``force`` is set. Returns True if subscribers were notified.
        """
        changed = value != self._value
        self._value = value
        if not changed and not force:
            return False
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Stream subscriber failed")
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a callback and replay the current value to it.

        Returns a function that cancels the subscription.
        """
        self._subscribers.append(callback)
        callback(self._value)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def values(self) -> AsyncIterator[T]:
        """Iterate over the current value and every later one."""
        queue: asyncio.Queue[T] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class QueryStream(StateStream[T]):
    """A stream whose value is recomputed from storage after relevant commits."""

    def __init__(
        self,
        gateway: StorageGateway,
        tables: Iterable[str],
        compute: Callable[[], T],
    ) -> None:
        super().__init__(compute())
        self._compute = compute
        self._remove_listener = gateway.add_listener(tables, self._on_change)

    def refresh(self) -> bool:
        """Recompute now; returns True if the value changed."""
        return self.publish(self._compute())

    def close(self) -> None:
        """Stop listening for commits. The last value stays readable."""
        self._remove_listener()

    def _on_change(self, changed: frozenset[str]) -> None:
        self.refresh()


class DerivedStream(StateStream[T]):
    """A stream computed from the current values of other streams."""

    def __init__(self, sources: Sequence[StateStream[Any]], transform: Callable[..., T]) -> None:
        self._sources = list(sources)
        self._transform = transform
        super().__init__(self._derive())
        self._unsubscribes = [source.subscribe(self._on_source) for source in self._sources]

    def close(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes.clear()

    def _derive(self) -> T:
        return self._transform(*(source.value for source in self._sources))

    def _on_source(self, _value: Any) -> None:
        self.publish(self._derive())


def combine(sources: Sequence[StateStream[Any]], transform: Callable[..., T]) -> DerivedStream[T]:
    """Combine several streams; ``transform`` receives their values positionally."""
    return DerivedStream(sources, transform)


def map_stream(source: StateStream[Any], transform: Callable[[Any], T]) -> DerivedStream[T]:
    return DerivedStream([source], transform)
