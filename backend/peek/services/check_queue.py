"""Priority queue of working checks, ordered by next due time."""
import heapq
import itertools
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Tuple

from ..models import SiteCheck


@dataclass
class WorkingCheck:
    """In-memory copy of the scheduling fields of a stored site check."""
    id: int
    url: str
    interval: int
    search_string: str
    next_check_at: datetime

    @classmethod
    def from_record(cls, record: SiteCheck) -> "WorkingCheck":
        return cls(
            id=record.id,
            url=record.url,
            interval=record.interval,
            search_string=record.search_string,
            next_check_at=record.next_check_at,
        )

    def is_due(self, now: datetime) -> bool:
        return self.next_check_at < now


def advance_next_check(next_check_at: datetime, interval: int, now: datetime) -> datetime:
    """Next due time after a probe.

    The due time moves by one interval from its own previous value, and only
    if it has already elapsed. A pass that runs late therefore catches up one
    interval at a time instead of skipping cycles, and a check probed early
    is never pushed further into the future.
    """
    if next_check_at < now:
        return next_check_at + timedelta(seconds=interval)
    return next_check_at


class CheckQueue:
    """Min-heap of working checks keyed by ``next_check_at``.

    Checks must not be modified while they sit in the queue; pop them, update
    them, push them back.
    """

    def __init__(self):
        self._heap: List[Tuple[datetime, int, WorkingCheck]] = []
        # Tie breaker keeping insertion order for equal due times
        self._counter = itertools.count()

    def push(self, check: WorkingCheck) -> None:
        heapq.heappush(self._heap, (check.next_check_at, next(self._counter), check))

    def pop_due(self, now: datetime) -> List[WorkingCheck]:
        """Remove and return every check due at ``now``, earliest first."""
        due = []
        while self._heap and self._heap[0][2].is_due(now):
            due.append(heapq.heappop(self._heap)[2])
        return due

    def next_due_at(self) -> Optional[datetime]:
        return self._heap[0][0] if self._heap else None

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)

    def __iter__(self) -> Iterator[WorkingCheck]:
        """Iterate in due order without consuming the queue."""
        return (entry[2] for entry in sorted(self._heap, key=lambda e: (e[0], e[1])))
