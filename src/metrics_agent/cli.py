"""CLI interface for metrics_agent."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import time
from typing import Iterable

from . import __version__
from .collector.registry import build_collectors
from .config import AgentConfig, load_config, resolve_hostname, validate_config
from .errors import ConfigError, FatalError, PersistenceError
from .rate import RateTracker
from .samples import Sample
from .scheduler import Scheduler
from .store.base import BaseStore
from .store.writer import BatchWriter

logger = logging.getLogger(__name__)


def _connect_store(cfg: AgentConfig) -> BaseStore:
    from .store.postgres import PostgresStore

    store = PostgresStore(cfg.database_url, connect_timeout=cfg.writer.connect_timeout_seconds)
    try:
        store.connect()
    except PersistenceError as exc:
        raise FatalError(f"failed to connect to the metrics store: {exc}") from exc
    return store


def _cmd_run(args: argparse.Namespace) -> None:
    """Run the collection loop until SIGINT/SIGTERM."""
    cfg = load_config(args.config)
    if args.interval is not None:
        cfg.interval_seconds = args.interval
    validate_config(cfg)

    hostname = resolve_hostname(cfg)
    store = _connect_store(cfg)
    tracker = RateTracker()
    scheduler = Scheduler(
        build_collectors(cfg, hostname, tracker),
        BatchWriter(store, cfg.writer),
        interval_seconds=cfg.interval_seconds,
        collector_timeout=cfg.collector_timeout_seconds,
    )

    def _handle_signal(signum: int, _frame: object) -> None:
        logger.info("Received signal %d, finishing current tick", signum)
        scheduler.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    logger.info("metrics-agent %s running on %s", __version__, hostname)
    try:
        scheduler.run_forever()
    finally:
        scheduler.close()
        store.close()


class _CapturingWriter:
    """Keeps the samples of the last tick instead of storing them."""

    def __init__(self) -> None:
        self.samples: list[Sample] = []

    def write(self, samples: Iterable[Sample]) -> bool:
        self.samples = list(samples)
        return True


def _cmd_collect_once(args: argparse.Namespace) -> None:
    """Collect two ticks one second apart and print the second as JSON."""
    cfg = load_config(args.config)
    hostname = resolve_hostname(cfg)
    writer = _CapturingWriter()
    scheduler = Scheduler(
        build_collectors(cfg, hostname, RateTracker()),
        writer,  # type: ignore[arg-type]
        collector_timeout=cfg.collector_timeout_seconds,
    )
    try:
        scheduler.tick()
        time.sleep(1.0)
        report = scheduler.tick()
    finally:
        scheduler.close()

    json.dump([s.to_dict() for s in writer.samples], sys.stdout, indent=2, default=str)
    print()
    if report.failed:
        print(f"Failed collectors: {', '.join(report.failed)}", file=sys.stderr)


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"metrics-agent {__version__}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the metrics-agent CLI."""
    parser = argparse.ArgumentParser(
        prog="metrics-agent",
        description="Sample host and service metrics into Postgres",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to metrics_agent.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    run_p = sub.add_parser("run", help="Start periodic collection")
    run_p.add_argument("--interval", type=float, default=None, help="Override tick interval in seconds")
    run_p.set_defaults(func=_cmd_run)

    once_p = sub.add_parser("collect-once", help="Print one tick of samples as JSON")
    once_p.set_defaults(func=_cmd_collect_once)

    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except (ConfigError, FatalError) as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
