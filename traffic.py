from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

import psutil

from constants import REFRESH


@dataclass(frozen=True)
class CounterSample:
    rx_bytes: int
    tx_bytes: int
    at: float


def sample_counters(interfaces: Iterable[str] | None = None) -> Dict[str, CounterSample]:
    """Cumulative byte counters per interface, stamped with a monotonic time."""
    now = time.monotonic()
    counters = psutil.net_io_counters(pernic=True)
    wanted = set(interfaces) if interfaces is not None else None
    samples: Dict[str, CounterSample] = {}
    for name, stats in counters.items():
        if wanted is not None and name not in wanted:
            continue
        samples[name] = CounterSample(rx_bytes=int(stats.bytes_recv), tx_bytes=int(stats.bytes_sent), at=now)
    return samples


@dataclass
class TrafficHistory:
    samples: deque = field(default_factory=lambda: deque(maxlen=REFRESH.USAGE_SAMPLES))

    def add(self, sample: CounterSample) -> None:
        if self.samples and sample.at <= self.samples[-1].at:
            return
        self.samples.append(sample)

    def rates(self) -> Optional[Tuple[float, float]]:
        """(rx, tx) bytes per second between the two most recent samples."""
        if len(self.samples) < 2:
            return None
        first, second = self.samples[-2], self.samples[-1]
        elapsed = second.at - first.at
        if elapsed <= 0:
            return None
        # counters reset when an interface is recreated
        rx = max(0, second.rx_bytes - first.rx_bytes) / elapsed
        tx = max(0, second.tx_bytes - first.tx_bytes) / elapsed
        return rx, tx


def format_bytes(count: float) -> str:
    value = float(count)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1000:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1000
    return f"{value:.2f} TB"


def format_usage(history: TrafficHistory) -> str:
    rates = history.rates()
    if rates is None:
        return ""
    rx, tx = rates
    return f"Rx: {format_bytes(rx)}/s | Tx: {format_bytes(tx)}/s"
