"""
alerts.py: threshold-based alert checks for the statwatch agent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List

from rich.console import Console

from errors import ZeroCapacityError
from metrics.snapshot import MetricsSnapshot

BYTES_PER_MB = 1024 * 1024
BITS_PER_MBIT = 1_000_000

# Plain stdout writer: alert lines must come out exactly as formatted.
console = Console(markup=False, highlight=False, emoji=False)


@dataclass(frozen=True)
class Thresholds:
    load_average: float = 30
    memory_percent: float = 80
    disk_percent: float = 90
    network_percent: float = 90


@dataclass(frozen=True)
class ThresholdCheck:
    """One independent check: a measured value compared against a threshold."""

    name: str
    threshold: float
    measure: Callable[[MetricsSnapshot], float]
    message: Callable[[MetricsSnapshot, float], str]

    def evaluate(self, snapshot: MetricsSnapshot) -> str | None:
        value = self.measure(snapshot)
        if check_threshold(value, self.threshold):
            return self.message(snapshot, value)
        return None


def check_threshold(value, threshold) -> bool:
    # strict: a value equal to its threshold does not alert
    return value > threshold


def usage_percent(used: int, total: int, field: str) -> float:
    if total == 0:
        raise ZeroCapacityError(field)
    try:
        return used / total * 100.0
    except OverflowError:
        # ratio beyond float range is still a breach of any finite threshold
        return float("inf")


def _memory_percent(s: MetricsSnapshot) -> float:
    return usage_percent(s.memory_used, s.memory_total, "memory_total")


def _disk_percent(s: MetricsSnapshot) -> float:
    return usage_percent(s.disk_used, s.disk_total, "disk_total")


def _network_percent(s: MetricsSnapshot) -> float:
    return usage_percent(s.network_used, s.network_capacity, "network_capacity")


def free_disk_mb(s: MetricsSnapshot) -> int:
    # truncates toward zero; an overcommitted disk reports a negative figure
    free = s.disk_total - s.disk_used
    whole = abs(free) // BYTES_PER_MB
    return whole if free >= 0 else -whole


def free_network_mbit(s: MetricsSnapshot) -> str:
    """Remaining bandwidth in Mbit/s, formatted with six decimals.

    Integer arithmetic keeps arbitrarily large fields exact; BITS_PER_MBIT is
    10**6, so the quotient and remainder map straight onto the %f digits.
    """
    bits = (s.network_capacity - s.network_used) * 8
    whole, frac = divmod(abs(bits), BITS_PER_MBIT)
    sign = "-" if bits < 0 else ""
    return f"{sign}{whole}.{frac:06d}"


def build_checks(thresholds: Thresholds) -> List[ThresholdCheck]:
    """Return the checks in the order their alerts are reported."""
    return [
        ThresholdCheck(
            name="load_average",
            threshold=thresholds.load_average,
            measure=lambda s: s.load_average,
            message=lambda s, v: f"Load Average is too high: {s.load_average}",
        ),
        ThresholdCheck(
            name="memory_percent",
            threshold=thresholds.memory_percent,
            measure=_memory_percent,
            message=lambda s, v: f"Memory usage too high: {v:f}%",
        ),
        ThresholdCheck(
            name="disk_percent",
            threshold=thresholds.disk_percent,
            measure=_disk_percent,
            message=lambda s, v: f"Free disk space is too low: {free_disk_mb(s)} Mb left",
        ),
        ThresholdCheck(
            name="network_percent",
            threshold=thresholds.network_percent,
            measure=_network_percent,
            message=lambda s, v: f"Network bandwidth usage high: {free_network_mbit(s)} Mbit/s available",
        ),
    ]


def iter_alerts(snapshot: MetricsSnapshot, thresholds: Thresholds) -> Iterator[str]:
    """Yield an alert line for every breached threshold, in check order.

    A ZeroCapacityError from any check propagates and the remaining checks
    are not evaluated.
    """
    for check in build_checks(thresholds):
        message = check.evaluate(snapshot)
        logging.debug(f"[dim]{check.name}: threshold {check.threshold}, alert={message is not None}[/]")
        if message is not None:
            yield message


def evaluate_alerts(snapshot: MetricsSnapshot, thresholds: Thresholds) -> List[str]:
    """Check snapshot metrics against thresholds."""
    return list(iter_alerts(snapshot, thresholds))


def process_alerts(snapshot: MetricsSnapshot, thresholds: Thresholds, out: Console | None = None) -> List[str]:
    """Print one line per breached threshold as soon as its check has run.

    Lines printed before a guard error aborts the evaluation stay printed.
    """
    out = out or console
    printed = []
    for message in iter_alerts(snapshot, thresholds):
        out.print(message, soft_wrap=True)
        logging.debug(f"[yellow]⚠[/] {message}")
        printed.append(message)
    return printed
