"""CLI command implementations.

Each function implements a subcommand (run, ids) and returns an exit code.
"""

import logging

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ghupvotes.config import UpvotesConfig
from ghupvotes.upvotes.aggregator import UpvoteAggregator
from ghupvotes.upvotes.github_api import GitHubClient
from ghupvotes.upvotes.models import ProjectIds
from ghupvotes.upvotes.mutator import WriteBackMutator
from ghupvotes.upvotes.orchestrator import ConcurrentPageProcessor
from ghupvotes.upvotes.output import write_cursor_output
from ghupvotes.upvotes.rate_limit import RateLimitGovernor
from ghupvotes.upvotes.walker import ProjectItemWalker, WalkResult, WalkState

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def resolve_project_ids(
    client: GitHubClient, config: UpvotesConfig, governor: RateLimitGovernor
) -> ProjectIds:
    """Fill in whichever of project id, field id and field name were not configured."""
    field_name = config.field_name
    if not field_name:
        field_name, rate_limit = client.get_field_name(config.field_id)
        governor.observe(rate_limit)

    if config.project_id and config.field_id:
        return ProjectIds(config.project_id, config.field_id, field_name)

    if config.project_id:
        ids, rate_limit = client.get_project_field(config.project_id, field_name)
    else:
        ids, rate_limit = client.get_project_ids(
            config.organization, config.project_number, field_name
        )
    governor.observe(rate_limit)

    logger.debug("Resolved project id %s and field id %s", ids.project_id, ids.field_id)
    return ProjectIds(
        project_id=config.project_id or ids.project_id,
        field_id=config.field_id or ids.field_id,
        field_name=field_name,
    )


def print_summary(result: WalkResult, governor: RateLimitGovernor, write: bool) -> None:
    """Print a summary table of a finished run."""
    state_styles = {
        WalkState.DONE: "[green]done[/]",
        WalkState.HALTED_RATE_LIMIT: "[yellow]halted (rate limit)[/]",
        WalkState.HALTED_ERROR: "[red]halted (error)[/]",
    }

    table = Table(title="Upvotes", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("State", state_styles.get(result.state, result.state.value))
    table.add_row("Pages", str(result.pages))
    table.add_row("Items scored", str(result.scored))
    table.add_row("Items skipped", str(result.skipped))
    table.add_row("Items written", str(result.written) if write else "[dim]dry run[/]")
    table.add_row("Rate limit spent", str(governor.spent()))
    table.add_row("Rate limit remaining", str(governor.remaining))
    table.add_row("Cursor", result.cursor or "[dim](end of project)[/]")
    console.print(table)


def cmd_run(config: UpvotesConfig) -> int:
    """Calculate upvotes for every active item of the project.

    Args:
        config: Validated run configuration

    Returns:
        Exit code (0 when done or halted by the rate limit, 1 on error)
    """
    console.print(Panel("[bold blue]ghupvotes run[/]", expand=False))
    if not config.write:
        console.print("[yellow]Dry run mode - project items will not be updated[/]")

    governor = RateLimitGovernor(reserve=config.rate_limit_reserve)

    with GitHubClient(config.token) as client:
        try:
            ids = resolve_project_ids(client, config, governor)
        except (RuntimeError, httpx.HTTPError) as e:
            console.print(f"[red]Error:[/] Could not resolve project: {e}")
            return 1

        console.print(f"[dim]Project: {ids.project_id}[/]")
        console.print(f"[dim]Field: {ids.field_name} ({ids.field_id})[/]")
        if config.cursor:
            console.print(f"[dim]Resuming after cursor: {config.cursor}[/]")

        aggregator = UpvoteAggregator(client, ids.field_name, governor)
        mutator = WriteBackMutator(
            client,
            ids.project_id,
            ids.field_id,
            governor,
            write=config.write,
            delay=config.mutation_delay,
        )
        processor = None
        if config.concurrency > 1:
            processor = ConcurrentPageProcessor(
                aggregator, mutator, governor, max_workers=config.concurrency
            )

        walker = ProjectItemWalker(
            client,
            ids.project_id,
            ids.field_name,
            aggregator,
            mutator,
            governor,
            page_size=config.page_size,
            processor=processor,
        )
        result = walker.run(config.cursor)

    write_cursor_output(result.cursor, config.output_path)
    print_summary(result, governor, config.write)

    if not result.success:
        console.print(f"[red]Error:[/] {result.error}")
        return 1

    return 0


def cmd_ids(config: UpvotesConfig) -> int:
    """Print the project id and upvote field id, for use as PROJECT_ID and FIELD_ID.

    Returns:
        Exit code (0 for success)
    """
    governor = RateLimitGovernor(reserve=config.rate_limit_reserve)

    with GitHubClient(config.token) as client:
        try:
            ids = resolve_project_ids(client, config, governor)
        except (RuntimeError, httpx.HTTPError) as e:
            console.print(f"[red]Error:[/] Could not resolve project: {e}")
            return 1

    print(f"PROJECT_ID={ids.project_id}")
    print(f"FIELD_ID={ids.field_id}")
    print(f"UPVOTE_FIELD_NAME={ids.field_name}")
    return 0
