"""Shared exception types for the statwatch agent."""

from __future__ import annotations


class StatsError(RuntimeError):
    """Base class for anything that aborts a single poll cycle."""


class FetchError(StatsError):
    """Raised when the stats endpoint cannot be reached or times out."""


class BadStatusError(FetchError):
    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"bad status: {status_code} {reason}".rstrip())


class BodyReadError(FetchError):
    """Raised when the response body cannot be read."""


class SnapshotFormatError(StatsError):
    def __init__(self, field_count: int) -> None:
        self.field_count = field_count
        super().__init__(f"unexpected field number: {field_count}")


class TooManyUnparsableFieldsError(StatsError):
    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(f"too many unparsable fields: {count} (limit {limit})")


class ZeroCapacityError(StatsError):
    """A zero total/capacity would make a usage percentage meaningless."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field}=0")


class ConfigError(ValueError):
    """Raised when the effective configuration is invalid."""
