# metrics/snapshot.py
"""
Parsing of the single-line stats payload served by the monitored host.

The line carries seven comma-separated integers in a fixed order:

    load_average, memory_total, memory_used, disk_total, disk_used,
    network_capacity, network_used

Individual fields that are not valid non-negative integers are tolerated and
read as 0; deciding whether the result is still usable is up to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from psutil._common import bytes2human

from errors import SnapshotFormatError

FIELD_COUNT = 7

# Upper bound on tolerated unparsable fields, independent of FIELD_COUNT.
MAX_UNPARSABLE_FIELDS = 3


@dataclass(frozen=True)
class MetricsSnapshot:
    load_average: int = 0
    memory_total: int = 0
    memory_used: int = 0
    disk_total: int = 0
    disk_used: int = 0
    network_capacity: int = 0
    network_used: int = 0
    unparsable_fields: int = 0

    @property
    def usable(self) -> bool:
        return self.unparsable_fields <= MAX_UNPARSABLE_FIELDS

    def describe(self) -> str:
        """Short human-readable summary, used for debug logging."""
        return (
            f"load={self.load_average} "
            f"mem={_human(self.memory_used)}/{_human(self.memory_total)} "
            f"disk={_human(self.disk_used)}/{_human(self.disk_total)} "
            f"net={_human(self.network_used)}/{_human(self.network_capacity)}/s "
            f"unparsable={self.unparsable_fields}"
        )


def _human(n: int) -> str:
    try:
        return bytes2human(n)
    except OverflowError:
        return f"{n}B"


# Field order on the wire, matching the dataclass declaration order.
_VALUE_FIELDS = tuple(f.name for f in fields(MetricsSnapshot) if f.name != "unparsable_fields")


def split_fields(line: str) -> list[str]:
    """Split on commas and trim each part. Empty parts are kept."""
    return [part.strip() for part in line.split(",")]


def parse_uint(text: str) -> int | None:
    """Return the non-negative base-10 integer in ``text``, or None."""
    # int() alone would also accept signs, underscores and non-ASCII digits
    if not text or not (text.isascii() and text.isdigit()):
        return None
    try:
        return int(text)
    except ValueError:
        # beyond the interpreter's int/str conversion digit limit
        return None


def parse_snapshot(line: str) -> MetricsSnapshot:
    parts = split_fields(line)
    if len(parts) != FIELD_COUNT:
        raise SnapshotFormatError(len(parts))

    values = {}
    bad = 0
    for name, raw in zip(_VALUE_FIELDS, parts):
        value = parse_uint(raw)
        if value is None:
            bad += 1
            value = 0
        values[name] = value

    return MetricsSnapshot(unparsable_fields=bad, **values)
