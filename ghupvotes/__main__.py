"""CLI entry point for ghupvotes.

Usage:
    python -m ghupvotes run -o my-org -n 7 --field-name Upvotes   # Dry run
    python -m ghupvotes run --write                              # Update the field
    python -m ghupvotes ids -o my-org -n 7 --field-name Upvotes   # Print node IDs

Or via the installed command:
    ghupvotes run -p PVT_xxx -f PVTF_xxx --write -j 4
    ghupvotes run --cursor Y3Vyc29yOjEw                         # Resume a halted run
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console

from ghupvotes._version import get_full_version_string
from ghupvotes.config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ghupvotes.upvotes.commands import cmd_ids, cmd_run

# Load environment variables
load_dotenv()

console = Console(stderr=True)

# Options shared by the run and ids subcommands, mapped onto UpvotesConfig fields
CONFIG_OPTIONS = (
    "token",
    "organization",
    "project_number",
    "project_id",
    "field_name",
    "field_id",
    "cursor",
    "write",
    "verbose",
    "concurrency",
    "page_size",
    "rate_limit_reserve",
    "mutation_delay",
    "output_path",
)


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG when verbose, else LOG_LEVEL (default INFO)."""
    level = logging.DEBUG if verbose else os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # Request lines from httpx duplicate our own API logging
    logging.getLogger("httpx").setLevel(logging.WARNING)


def add_project_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments identifying the project and the upvote field."""
    parser.add_argument(
        "--token",
        "-t",
        default=None,
        help="GitHub token with project read/write scope (env: GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--org",
        "-o",
        dest="organization",
        default=None,
        help="Organization that owns the project (env: GITHUB_ORGANIZATION)",
    )
    parser.add_argument(
        "--project-number",
        "-n",
        type=int,
        default=None,
        help="Project number, as shown in its URL (env: GITHUB_PROJECT_NUMBER)",
    )
    parser.add_argument(
        "--project-id",
        "-p",
        default=None,
        help="Project node ID, skips the lookup by number (env: PROJECT_ID)",
    )
    parser.add_argument(
        "--field-name",
        default=None,
        help="Name of the number field holding upvotes (env: UPVOTE_FIELD_NAME)",
    )
    parser.add_argument(
        "--field-id",
        "-f",
        default=None,
        help="Node ID of the number field holding upvotes (env: FIELD_ID)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=None,
        help="Debug logging (env: RUNNER_DEBUG)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="ghupvotes",
        description="Calculate upvotes for the items of a GitHub project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  ghupvotes run -o my-org -n 7 --field-name Upvotes    Dry run, print scores
  ghupvotes run -p PVT_xxx -f PVTF_xxx --write         Write scores to the field
  ghupvotes run --write --cursor Y3Vyc29yOjEw          Resume after a halted run
  ghupvotes ids -o my-org -n 7 --field-name Upvotes    Print PROJECT_ID and FIELD_ID

Configuration:
  Create .ghupvotes/config.toml to avoid repeating options:
    [upvotes]
    organization = "my-org"
    project_number = 7
    field_name = "Upvotes"
    concurrency = 4
""",
    )
    parser.add_argument("--version", action="version", version=get_full_version_string())

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Run subcommand
    run_parser = subparsers.add_parser(
        "run",
        help="Calculate upvotes for every active project item",
    )
    add_project_arguments(run_parser)
    run_parser.add_argument(
        "--cursor",
        "-c",
        default=None,
        help="Resume after this item cursor (env: CURSOR)",
    )
    run_parser.add_argument(
        "--write",
        "-w",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write scores to the field; without it the run is a dry run (env: UPVOTES_WRITE)",
    )
    run_parser.add_argument(
        "--concurrency",
        "-j",
        type=int,
        default=None,
        help="Items scored in parallel (env: UPVOTES_CONCURRENCY, default: 1)",
    )
    run_parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Project items per page, 1-100 (env: UPVOTES_PAGE_SIZE, default: 10)",
    )
    run_parser.add_argument(
        "--reserve",
        dest="rate_limit_reserve",
        type=int,
        default=None,
        help="Rate limit points to leave unspent (env: UPVOTES_RATE_LIMIT_RESERVE)",
    )
    run_parser.add_argument(
        "--mutation-delay",
        type=float,
        default=None,
        help="Seconds to pause after each write (env: UPVOTES_MUTATION_DELAY)",
    )
    run_parser.add_argument(
        "--output",
        dest="output_path",
        type=Path,
        default=None,
        help="File to append the cursor to (env: GITHUB_OUTPUT, default: stdout)",
    )

    # Ids subcommand
    ids_parser = subparsers.add_parser(
        "ids",
        help="Print the project and field node IDs",
    )
    add_project_arguments(ids_parser)

    args = parser.parse_args(argv)

    flags = {name: getattr(args, name, None) for name in CONFIG_OPTIONS}
    try:
        config = load_config(flags, config_path=args.config)
    except ConfigError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    setup_logging(config.verbose)

    if args.command == "ids":
        return cmd_ids(config)

    return cmd_run(config)


if __name__ == "__main__":
    sys.exit(main())
