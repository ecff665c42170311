"""
agent.py
--------
Runtime controller and CLI for the statwatch agent.

Features:
  - Loads configuration from config/config.yaml (or defaults), with
    environment overrides from .env
  - Polls the stats endpoint on a fixed interval and prints threshold alerts
  - Handles graceful shutdown via Ctrl+C / SIGTERM
"""

import argparse
import logging
import math
import os
import pathlib
import signal
import sys
import threading
from dataclasses import asdict

import yaml
from dotenv import load_dotenv
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.pretty import Pretty

from alerts import Thresholds
from errors import ConfigError
from poller import MonitorSettings, Poller

# Central console for controlled, pretty printing
console = Console(highlight=True, markup=True)

# ---------------------------------------------------------------------------
# Configuration Loader
# ---------------------------------------------------------------------------
PROJECT_ROOT = pathlib.Path(__file__).resolve().parent
CONFIG_PATH = PROJECT_ROOT / "config" / "config.yaml"

env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)

DEFAULT_CONFIG = {
    "stats": {
        "url": "http://srv.msk01.gigacorp.local/_stats",
        "http_timeout": 30,
    },
    "agent": {"polling_interval": 5},
    "alerts": {
        "load_average": 30,        # Alert when load average > 30
        "memory_percent": 80,      # Alert when memory usage > 80%
        "disk_percent": 90,        # Alert when disk usage > 90%
        "network_percent": 90,     # Alert when bandwidth usage > 90%
    },
}

# environment variable -> (section, key)
ENV_OVERRIDES = {
    "STATWATCH_STATS_URL": ("stats", "url"),
    "STATWATCH_HTTP_TIMEOUT": ("stats", "http_timeout"),
    "STATWATCH_POLLING_INTERVAL": ("agent", "polling_interval"),
}


def _deep_merge_dicts(base: dict, override: dict) -> dict:
    """Recursively merge two dictionaries."""
    result = base.copy()
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _apply_env_overrides(config: dict) -> dict:
    overrides: dict = {}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value
    return _deep_merge_dicts(config, overrides) if overrides else config


def load_config(path: pathlib.Path | None = None) -> dict:
    """Load YAML config with deep merge fallback."""
    path = pathlib.Path(path) if path else CONFIG_PATH
    logging.debug(f"[dim]🔍 Config path:[/] [cyan]{path}[/]")
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(DEFAULT_CONFIG, f)
        logging.info(f"[green]✓[/] Created default config at [cyan]{path}[/]")
        return _apply_env_overrides(DEFAULT_CONFIG)

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"top level of {path} must be a mapping")
        merged = _deep_merge_dicts(DEFAULT_CONFIG, data)
        logging.info(f"[green]✓[/] Loaded config from [cyan]{path}[/]")
    except (OSError, yaml.YAMLError, ConfigError) as e:
        logging.error(f"[red]✗[/] Failed to load config: [yellow]{escape(str(e))}[/]")
        logging.warning("[yellow]⚠[/] Using default configuration")
        merged = DEFAULT_CONFIG
    return _apply_env_overrides(merged)


def _number(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigError(f"{name} must be finite, got {value!r}")
    return number


def _positive(value, name: str) -> float:
    number = _number(value, name)
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def _non_negative(value, name: str) -> float:
    number = _number(value, name)
    if number < 0:
        raise ConfigError(f"{name} must not be negative, got {value!r}")
    return number


def _interval(value) -> float:
    number = _positive(value, "agent.polling_interval")
    if number > threading.TIMEOUT_MAX:
        raise ConfigError(f"agent.polling_interval must not exceed {threading.TIMEOUT_MAX}, got {value!r}")
    return number


def _section(config: dict, name: str) -> dict:
    section = config.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"{name} must be a mapping, got {section!r}")
    return section


def build_settings(config: dict) -> MonitorSettings:
    """Turn the merged config dict into the immutable settings the poller uses."""
    stats = _section(config, "stats")
    url = stats.get("url")
    if not url or not isinstance(url, str):
        raise ConfigError("stats.url must be a non-empty string")

    limits = _section(config, "alerts")
    thresholds = Thresholds(
        **{
            name: _non_negative(limits.get(name, default), f"alerts.{name}")
            for name, default in asdict(Thresholds()).items()
        }
    )
    return MonitorSettings(
        stats_url=url,
        http_timeout=_positive(stats.get("http_timeout"), "stats.http_timeout"),
        polling_interval=_interval(_section(config, "agent").get("polling_interval")),
        thresholds=thresholds,
    )


# ---------------------------------------------------------------------------
# Graceful shutdown
# ---------------------------------------------------------------------------

def setup_signal_handler(stop_event: threading.Event):
    def handle_signal(sig, frame):
        logging.info("[yellow]⚠[/] [bold yellow]Received shutdown signal... stopping.[/]")
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def configure_logging(verbose: bool = False):
    # Diagnostics go to stderr so stdout carries only alert lines
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
            show_time=True,
            markup=True
        )]
    )


# ---------------------------------------------------------------------------
# Main Agent Loop
# ---------------------------------------------------------------------------

def run_agent(settings: MonitorSettings, stop_event: threading.Event | None = None):
    stop_event = stop_event or threading.Event()
    setup_signal_handler(stop_event)

    logging.info("[bold green]🚀 Starting statwatch agent...[/]")
    try:
        Poller(settings).run(stop_event)
    finally:
        logging.info("[bold blue]🧩[/] [blue]statwatch agent stopped cleanly.[/]")


# ---------------------------------------------------------------------------
# CLI Interface
# ---------------------------------------------------------------------------

def main(argv=None):
    parser = argparse.ArgumentParser(prog="statwatch", description="Remote server health monitor")
    parser.add_argument("command", choices=["run", "once", "config"],
                        help="run = continuous polling, once = single poll cycle, config = show effective configuration")
    parser.add_argument("--config", type=pathlib.Path, default=None, help="path to a YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    config = load_config(args.config)

    if args.command == "config":
        console.print(Pretty(config))
        return 0

    try:
        settings = build_settings(config)
    except ConfigError as e:
        rprint(f"[red]✗[/] Invalid configuration: [yellow]{escape(str(e))}[/]", file=sys.stderr)
        return 2

    if args.command == "run":
        run_agent(settings)
        return 0

    poller = Poller(settings)
    try:
        return 0 if poller.poll_once() else 1
    finally:
        poller.client.close()


if __name__ == "__main__":
    sys.exit(main())
