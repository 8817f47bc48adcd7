"""CLI entry point: database setup, one-off sweeps and booking stats."""

import argparse
import json
import logging
import sys

from cleaning_market.booking.clock import Clock
from cleaning_market.booking.lifecycle import booking_stats
from cleaning_market.config import ConfigError, load_config, validate_config
from cleaning_market.models import init_db, make_session_factory
from cleaning_market.scheduler import run_sweep
from cleaning_market.utils.logging_config import setup_logging

logger = logging.getLogger("cleaning_market")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cleaning Market - booking lifecycle maintenance",
    )
    parser.add_argument(
        "--config", default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--init-db", action="store_true",
        help="Create database tables and exit",
    )
    parser.add_argument(
        "--sweep", action="store_true",
        help="Auto-complete past-due accepted requests once and exit",
    )
    parser.add_argument(
        "--stats", action="store_true",
        help="Print booking statistics and exit",
    )
    return parser.parse_args(argv)


def print_stats(stats: dict) -> None:
    print("\n=== Cleaning Market Statistics ===")
    print(f"Total requests:      {stats['total_requests']}")
    print(f"Open offers:         {stats['open_offers']}")
    print(f"Total applications:  {stats['total_applications']}")
    if stats["requests_by_status"]:
        print("\nBy status:")
        print(json.dumps(stats["requests_by_status"], indent=2, sort_keys=True))
    print()


def main(argv: list[str] | None = None):
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_dir)

    for w in validate_config(config):
        logger.warning("Config: %s", w)

    session_factory = make_session_factory(config.database.url, echo=config.database.echo)

    if args.init_db:
        init_db(session_factory.kw["bind"])
        logger.info("Database tables created")
        return

    if args.sweep:
        try:
            run_sweep(session_factory, Clock(config.marketplace.timezone))
        except Exception:
            logger.error("Sweep failed", exc_info=True)
            sys.exit(1)
        return

    if args.stats:
        db = session_factory()
        try:
            print_stats(booking_stats(db))
        finally:
            db.close()
        return

    print("Nothing to do. Use --init-db, --sweep or --stats; serve the API with "
          "`uvicorn cleaning_market.web.app:app`.")


if __name__ == "__main__":
    main()
