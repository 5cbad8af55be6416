# main.py

"""Entry point for the product_research application (TUI or headless CLI)."""

import argparse
import asyncio
import logging
import sys

from product_research.config.logging_config import setup_logging
from product_research.config.settings import Settings

logger = logging.getLogger("product_research.main")

STAGE_CHOICES = ["capture", "enrich", "report", "export"]


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    source_labels = ", ".join(s["label"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="product_research",
        description=(
            "Research a keyword across product search services, capture "
            "top listings and compile a detail report."
        ),
        epilog=f"Sources: {source_labels}",
    )
    parser.add_argument(
        "keyword",
        nargs="?",
        default=None,
        help="Keyword to research. Omit to launch the interactive TUI.",
    )
    parser.add_argument(
        "--no-capture",
        action="store_false",
        dest="capture",
        help="Skip page captures of top-ranked listings.",
    )
    parser.add_argument(
        "--no-enrich",
        action="store_false",
        dest="enrich",
        help="Skip fetching product details.",
    )
    parser.add_argument(
        "--no-report",
        action="store_false",
        dest="report",
        help="Skip compiling the PDF report.",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        default=False,
        help="Keep the batch in memory instead of the workbook.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format for listings (default: json).",
    )
    parser.add_argument(
        "--batch",
        default=None,
        help="Stored batch to operate on (use with --stage).",
    )
    parser.add_argument(
        "--stage",
        choices=STAGE_CHOICES,
        default=None,
        help="Stage to re-run against --batch.",
    )
    parser.add_argument(
        "--list-batches",
        action="store_true",
        default=False,
        dest="list_batches",
        help="List stored batches.",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        default=False,
        dest="check_config",
        help="Show which credentials are configured.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a one-result search against every source.",
    )
    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from product_research.ui.app import ResearchApp

    try:
        app = ResearchApp()
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("product_research TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """Run a headless research pass and exit."""
    from product_research.cli.runner import cli_research

    exit_code = cli_research(
        keyword=args.keyword,
        capture=args.capture,
        enrich=args.enrich,
        report=args.report,
        memory=args.memory,
        output_format=args.output_format,
    )
    sys.exit(exit_code)


def _run_stage(args: argparse.Namespace) -> None:
    """Re-run one stage against a stored batch."""
    from product_research.cli.runner import run_batch_stage

    sys.exit(run_batch_stage(args.batch, args.stage))


def _run_list_batches() -> None:
    from product_research.cli.runner import list_batches

    sys.exit(list_batches())


def _run_check_config() -> None:
    from product_research.cli.runner import check_config

    sys.exit(check_config())


def _run_health_check() -> None:
    """Run source connectivity health check."""
    from product_research.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main(argv: list[str] | None = None) -> None:
    """Route to TUI (no args) or one of the headless commands."""
    log_file = setup_logging()
    logger.info("product_research starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args(argv)

    if (args.batch is None) != (args.stage is None):
        parser.error("--batch and --stage must be used together")

    if args.check_config:
        _run_check_config()
    elif args.list_batches:
        _run_list_batches()
    elif args.health:
        _run_health_check()
    elif args.batch is not None:
        _run_stage(args)
    elif args.keyword is None:
        _run_tui()
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
