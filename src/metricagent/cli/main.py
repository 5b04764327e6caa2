"""
Command-line interface for the metric agent.

Parses process-level controls, configures logging, loads the initial
configuration and runs the scheduler until SIGINT/SIGTERM.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import ConfigStore
from ..orchestration import Scheduler, SignalHandler
from ..validation import ConfigError, ErrorSeverity, handle_cli_error

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_CONFIG_PATH = Path("conf") / "agent.toml"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metricagent",
        description="Collect metrics on a fixed interval and push them to Carbon.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the agent configuration file (default: {DEFAULT_CONFIG_PATH}).",
    )
    parser.add_argument(
        "--plugin-dir",
        type=Path,
        default=None,
        help="Directory of additional plugin modules.",
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Log batches instead of sending them to the Carbon server.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--exclude-defaults",
        action="store_true",
        help="Do not load the built-in system and process metric sources.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and exit.",
    )
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
    )


def main_cli(argv: Optional[List[str]] = None) -> int:
    """
    Main command-line entry point.

    Returns:
        Process exit code

    Raises:
        SystemExit: If the initial configuration cannot be loaded
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger.info(f"Starting metricagent with configuration {args.config}")
    if args.test_mode:
        logger.info("Test mode: batches will be logged, not sent")

    scheduler = Scheduler(
        config_store=ConfigStore(args.config),
        plugin_directory=args.plugin_dir,
        include_builtin=not args.exclude_defaults,
        test_mode=args.test_mode,
    )

    try:
        scheduler.start()
    except ConfigError as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            severity=ErrorSeverity.CRITICAL,
            exit_code=1,
            logger=logger,
        )

    signal_handler = SignalHandler(scheduler.state)
    signal_handler.setup_signal_handlers()
    try:
        scheduler.run(max_ticks=1 if args.once else None)
    finally:
        signal_handler.cleanup_signal_handlers()

    return 0


if __name__ == "__main__":
    sys.exit(main_cli())
