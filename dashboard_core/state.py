from __future__ import annotations

from typing import Callable, Generic, List, TypeVar


T = TypeVar("T")


class Observable(Generic[T]):
    """Current value plus synchronous change notification."""

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: List[Callable[[T], None]] = []

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
