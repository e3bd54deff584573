"""Event values and the single ordered channel the foreground consumes.

Producers: the key reader (foreground, non-blocking getch), the Ticker
thread and the refresh workers. Only immutable values cross the channel.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from central_client import MemberSnapshot
from local_client import NetworkSnapshot
from traffic import CounterSample
from tui_base import AppError
from view_model import MutationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyPressed:
    key: int


@dataclass(frozen=True)
class Tick:
    at: float


@dataclass(frozen=True)
class NetworksRefreshed:
    job_key: str
    snapshots: Tuple[NetworkSnapshot, ...] = ()
    scope: Optional[Tuple[str, ...]] = None
    counters: Dict[str, CounterSample] = field(default_factory=dict)
    error: AppError | None = None


@dataclass(frozen=True)
class MembersRefreshed:
    job_key: str
    network_id: str
    members: Tuple[MemberSnapshot, ...] = ()
    error: AppError | None = None


@dataclass(frozen=True)
class MutationCompleted:
    job_key: str
    result: MutationResult


@dataclass(frozen=True)
class RulesLoaded:
    job_key: str
    network_id: str
    rules: Optional[List[Any]] = None
    error: AppError | None = None


class EventChannel:
    def __init__(self) -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue()

    def post(self, event: Any) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> Any | None:
        try:
            return self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[Any]:
        events: List[Any] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class Ticker(threading.Thread):
    def __init__(self, channel: EventChannel, interval: float) -> None:
        super().__init__(name="ztui-ticker", daemon=True)
        self.channel = channel
        self.interval = interval
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.channel.post(Tick(at=time.monotonic()))

    def stop(self) -> None:
        self._stop_event.set()


def read_keys(stdscr: "curses._CursesWindow", channel: EventChannel, poll_ms: int) -> int:
    """Post every key already typed; waits at most ``poll_ms`` for the first."""
    count = 0
    stdscr.timeout(poll_ms)
    try:
        while count < 64:
            key = stdscr.getch()
            if key == -1:
                break
            channel.post(KeyPressed(key))
            count += 1
            stdscr.timeout(0)
    finally:
        stdscr.timeout(poll_ms)
    return count
