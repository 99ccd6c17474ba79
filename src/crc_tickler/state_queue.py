from typing import Generic, TypeVar, Optional
import threading


T = TypeVar("T")


class SingleSlotQueue(Generic[T]):
    """Thread-safe, size=1, latest-wins queue. The UI only cares about the newest snapshot."""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._has_value = False
        self._value: Optional[T] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    def publish(self, item: T) -> None:
        """Replace any unread snapshot. Ignored once the queue is closed."""
        with self._condition:
            if self._closed:
                return
            self._value = item
            self._has_value = True
            self._condition.notify()

    def close(self) -> None:
        """Close the queue. A pending snapshot can still be read."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Blocks until a value is available or the queue is closed. Returns None on close."""
        with self._condition:
            ok = self._condition.wait_for(
                lambda: self._has_value or self._closed, timeout
            )
            if not ok:
                raise TimeoutError("queue get() timed out")
            if not self._has_value:
                return None
            value = self._value
            self._value = None
            self._has_value = False
            return value
