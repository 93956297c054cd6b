"""
Main entry point for the Competitor Monitor system.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .models.job import BatchResult
from .orchestrator import MODES, ApplicationOrchestrator
from .utils.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="competitor-monitor",
        description="Crawl competitor websites and alert on price, promotion and menu changes.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a YAML or JSON configuration file",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        default="batch",
        choices=MODES,
        help="What to run (default: batch)",
    )
    return parser


def _print_batch(result: BatchResult) -> None:
    print(
        f"Processed {result.processed} jobs: {result.succeeded} succeeded, "
        f"{result.failed} failed in {result.duration_seconds:.1f}s"
        + (" (time budget exhausted)" if result.stopped_early else "")
    )


async def async_main(config_path: Optional[str] = None, mode: str = "batch") -> int:
    """Async main application entry point."""
    setup_logging(log_level="INFO")
    logger = get_logger("main")

    logger.info(
        "Starting Competitor Monitor",
        extra={"config_path": config_path, "mode": mode},
    )

    try:
        orchestrator = ApplicationOrchestrator(config_path)
        result = await orchestrator.run(mode)
    except Exception as e:
        logger.error("Application failed", extra={"error": str(e)}, exc_info=True)
        return 1

    if isinstance(result, BatchResult):
        _print_batch(result)
        return 0
    if mode == "schedule":
        print(f"Enqueued {result} targets")
    elif mode == "stats":
        print(json.dumps(result, indent=2, default=str))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    try:
        exit_code = asyncio.run(async_main(args.config_path, args.mode))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        exit_code = 0
    except Exception as e:
        print(f"Fatal error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
