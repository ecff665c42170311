"""
poller.py
---------
Poll cycle controller: one fetch-parse-evaluate round per tick of a
fixed-interval scheduler.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

import alerts
from alerts import Thresholds, process_alerts
from errors import StatsError, TooManyUnparsableFieldsError
from metrics.snapshot import MAX_UNPARSABLE_FIELDS, parse_snapshot
from metrics.stats_client import StatsClient

FAILURE_NOTICE = "Unable to fetch server statistic."


@dataclass(frozen=True)
class MonitorSettings:
    stats_url: str
    http_timeout: float = 30.0
    polling_interval: float = 5.0
    thresholds: Thresholds = field(default_factory=Thresholds)


class Poller:
    """Runs poll cycles against a single stats endpoint."""

    def __init__(
        self,
        settings: MonitorSettings,
        client: Optional[StatsClient] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.settings = settings
        self.client = client or StatsClient(settings.stats_url, settings.http_timeout)
        self.console = console or alerts.console

    def run_one_cycle(self) -> List[str]:
        """Fetch, parse and evaluate once. Returns the alert lines printed.

        Any StatsError aborts the cycle before further evaluation.
        """
        body = self.client.fetch()
        snapshot = parse_snapshot(body.strip())
        logging.debug(f"[dim]Snapshot: {snapshot.describe()}[/]")

        if not snapshot.usable:
            raise TooManyUnparsableFieldsError(snapshot.unparsable_fields, MAX_UNPARSABLE_FIELDS)

        return process_alerts(snapshot, self.settings.thresholds, out=self.console)

    def poll_once(self) -> bool:
        """Run one cycle, reporting any failure. Returns True on success."""
        try:
            self.run_one_cycle()
        except StatsError as exc:
            logging.warning(f"[yellow]⚠[/] Poll cycle aborted: [cyan]{escape(str(exc))}[/]")
        except Exception:
            logging.exception("[red]✗[/] Poll cycle crashed unexpectedly.")
        else:
            return True
        self.console.print(FAILURE_NOTICE, soft_wrap=True)
        return False

    def run(self, stop_event: threading.Event) -> None:
        """Poll every ``polling_interval`` seconds until ``stop_event`` is set.

        The first cycle runs one interval after start. Ticks missed while a
        slow cycle was in flight are dropped, not replayed.
        """
        interval = self.settings.polling_interval
        logging.info(f"Polling [cyan]{self.settings.stats_url}[/] every {interval}s")
        next_tick = time.monotonic() + interval
        try:
            while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
                self.poll_once()
                now = time.monotonic()
                next_tick += interval
                if next_tick <= now:
                    skipped = int((now - next_tick) // interval) + 1
                    logging.debug(f"[dim]Cycle overran, skipping {skipped} tick(s)[/]")
                    next_tick += skipped * interval
        finally:
            self.client.close()
