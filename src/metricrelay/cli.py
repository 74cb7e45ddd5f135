from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from metricrelay.adapters.logging import configure_logging
from metricrelay.app import create_storage, run_relay
from metricrelay.config import RelaySettings
from metricrelay.core.context import CounterResetPolicy
from metricrelay.core.errors import ListenerError, RelayError
from metricrelay.core.types_db import TypeCatalog

LOG = logging.getLogger(__name__)

# argparse dest -> settings field
_OVERRIDES = {
    "proxyport": "PROXY_PORT",
    "typesdb": "TYPESDB",
    "logfile": "LOG_FILE",
    "verbose": "VERBOSE",
    "influxdb": "INFLUXDB",
    "username": "USERNAME",
    "password": "PASSWORD",
    "database": "DATABASE",
    "normalize": "NORMALIZE",
    "backend": "BACKEND",
    "sqlite_path": "SQLITE_PATH",
    "counter_reset": "COUNTER_RESET",
    "max_in_flight": "MAX_IN_FLIGHT",
    "write_timeout": "WRITE_TIMEOUT",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metricrelay",
        description="Relay collectd metrics into a time-series backend",
    )
    # every option defaults to None so unset flags fall through to the environment
    parser.add_argument("--proxyport", type=int, help="UDP port for collectd packets (8096)")
    parser.add_argument("--typesdb", help="path to collectd's types.db")
    parser.add_argument("--logfile", help="path to log file, empty for stderr")
    parser.add_argument(
        "--verbose", action="store_true", default=None, help="trace samples and points"
    )
    parser.add_argument("--influxdb", help="host:port for influxdb")
    parser.add_argument("--username", help="username for influxdb")
    parser.add_argument("--password", help="password for influxdb")
    parser.add_argument("--database", help="database for influxdb")
    parser.add_argument(
        "--normalize",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="convert COUNTER and DERIVE values to per-second rates",
    )
    parser.add_argument("--backend", choices=["influxdb", "sqlite", "memory"])
    parser.add_argument("--sqlite-path", help="database file for the sqlite backend")
    parser.add_argument(
        "--counter-reset",
        choices=[p.value for p in CounterResetPolicy],
        help="emit or suppress negative rates from decreasing counters",
    )
    parser.add_argument("--max-in-flight", type=int, help="cap on concurrent backend writes")
    parser.add_argument("--write-timeout", type=float, help="seconds allowed per backend write")
    return parser


def load_settings(args: argparse.Namespace) -> RelaySettings:
    """Environment settings with command-line flags applied on top.

    Raises:
        ValidationError: If a value is out of range.
    """
    overrides: dict[str, Any] = {
        field: getattr(args, dest)
        for dest, field in _OVERRIDES.items()
        if getattr(args, dest) is not None
    }
    return RelaySettings(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the relay. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 1

    try:
        configure_logging(settings.LOG_FILE or None, settings.VERBOSE)
    except (OSError, ValueError) as exc:
        print(f"failed to open log file {settings.LOG_FILE}: {exc}", file=sys.stderr)
        return 1

    try:
        catalog = TypeCatalog.from_file(settings.TYPESDB)
        storage = create_storage(settings)
    except RelayError as exc:
        LOG.critical("startup failed: %s", exc)
        print(f"startup failed: {exc}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_relay(settings, catalog, storage))
    except ListenerError as exc:
        LOG.critical("%s", exc)
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
