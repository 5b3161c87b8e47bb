"""
Bounded Retry Queue

Remote writes that fail after their optimistic local update are kept
here instead of being forgotten. The queue is bounded twice: by size
(oldest entry dropped when full) and by replays per entry (dropped
after max_attempts failed replays). Replay is explicit; nothing retries
in the background.

Writes that replace a whole value (the division set, a spreadsheet's
name) carry a key. Only the newest write per key is ever kept, so a
stale value can't be replayed over a newer one.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, Optional


@dataclass
class PendingOperation:
    """A remote write waiting to be replayed."""
    name: str
    action: Callable[[], Awaitable[Any]]
    refresh: frozenset[str] = frozenset()  # collections to refetch once it lands
    user_id: Optional[str] = None
    key: Optional[str] = None
    replays: int = 0
    last_error: Optional[str] = None


@dataclass
class ReplayReport:
    """What one replay pass did."""
    replayed: list[PendingOperation] = field(default_factory=list)
    failed: list[PendingOperation] = field(default_factory=list)
    dropped: list[PendingOperation] = field(default_factory=list)

    @property
    def refresh(self) -> frozenset[str]:
        collections: set[str] = set()
        for operation in self.replayed:
            collections.update(operation.refresh)
        return frozenset(collections)


class RetryQueue:
    """FIFO of failed remote writes."""

    def __init__(self, max_size: int = 50, max_attempts: int = 3):
        if max_size < 1 or max_attempts < 1:
            raise ValueError("max_size and max_attempts must be positive")
        self.max_size = max_size
        self.max_attempts = max_attempts
        self._queue: deque[PendingOperation] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[PendingOperation]:
        return iter(list(self._queue))

    def push(self, operation: PendingOperation) -> Optional[PendingOperation]:
        """
        Enqueue an operation, replacing any queued one with the same key.

        Returns:
            The oldest operation if it had to be dropped to make room
        """
        if operation.key is not None:
            self.discard_key(operation.key)
        dropped = None
        if len(self._queue) >= self.max_size:
            dropped = self._queue.popleft()
        self._queue.append(operation)
        return dropped

    def discard_where(self, predicate: Callable[[PendingOperation], bool]) -> list[PendingOperation]:
        """Remove every queued operation matching predicate and return them."""
        removed = [op for op in self._queue if predicate(op)]
        if removed:
            self._queue = deque(op for op in self._queue if not predicate(op))
        return removed

    def discard_key(self, key: str) -> list[PendingOperation]:
        """Forget queued writes superseded by a newer one with this key."""
        return self.discard_where(lambda op: op.key == key)

    def clear(self) -> None:
        self._queue.clear()

    async def replay(self) -> ReplayReport:
        """Run every queued operation once, in order."""
        report = ReplayReport()
        pending = list(self._queue)
        self._queue.clear()
        for operation in pending:
            try:
                await operation.action()
            except Exception as e:
                operation.replays += 1
                operation.last_error = str(e)
                if operation.replays >= self.max_attempts:
                    report.dropped.append(operation)
                else:
                    report.failed.append(operation)
                    self._queue.append(operation)
            else:
                report.replayed.append(operation)
        return report
