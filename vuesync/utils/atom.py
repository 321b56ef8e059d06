"""A value holder that can be swapped atomically and watched for changes."""
import threading
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")

Watcher = Callable[[T, T], None]


class Atom(Generic[T]):
    """Holds a value which can be updated atomically.

    Watchers registered with :meth:`watch` are called with ``(old, new)`` after
    every :meth:`reset`. They run outside the value lock, so :meth:`load` never
    waits on a slow watcher, but inside the writer lock, so concurrent resets
    are delivered to watchers one at a time and in the order they were applied.
    """

    def __init__(self, value: T):
        self._value = value
        self._value_lock = threading.Lock()
        self._writer_lock = threading.RLock()
        self._watchers: List[Watcher] = []

    def load(self) -> T:
        """Fetch the current value."""
        with self._value_lock:
            return self._value

    def reset(self, value: T) -> T:
        """Set the current value, notify watchers and return the previous value."""
        with self._writer_lock:
            with self._value_lock:
                old, self._value = self._value, value
                watchers = list(self._watchers)
            for watcher in watchers:
                watcher(old, value)
            return old

    def watch(self, watcher: Watcher) -> None:
        """Register a function called with (old, new) whenever the value is set."""
        with self._value_lock:
            self._watchers.append(watcher)
