# conncheck/engine/state.py
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from conncheck.schemas import Result


class CheckerRegistry:
    """
    Process-wide set of checkers that declared expectations but never ran a check.
    A test harness can look at it after each test to catch a forgotten check_connectivity().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items = set()

    def add(self, checker) -> None:
        with self._lock:
            self._items.add(checker)

    def discard(self, checker) -> None:
        with self._lock:
            self._items.discard(checker)

    def __contains__(self, checker) -> bool:
        with self._lock:
            return checker in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def snapshot(self) -> list:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


unactivated_checkers = CheckerRegistry()


@dataclass
class DispatchResult:
    responses: list[Result | None]
    pretty: list[str]
    # "<summary line>: <exception>" for every unit that blew up
    faults: list[str] = field(default_factory=list)


@dataclass
class AttemptState:
    timeout_s: float
    min_attempts: int = 2
    retries_disabled: bool = False
    clock: Callable[[], float] = time.monotonic
    start: float | None = None
    attempts: int = 0
    succeeded: bool = False
    faults: list[str] = field(default_factory=list)
    # last iteration, kept for the failure report
    actual: list[str] = field(default_factory=list)
    expected: list[str] = field(default_factory=list)

    def __post_init__(self):
        if self.start is None:
            self.start = self.clock()

    def elapsed(self) -> float:
        return self.clock() - self.start

    def should_attempt(self) -> bool:
        # elapsed is re-sampled on every evaluation, i.e. right before each attempt
        if not self.retries_disabled and self.elapsed() < self.timeout_s:
            return True
        return self.attempts < self.min_attempts
