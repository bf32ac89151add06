"""Typer CLI entrypoint for catalog-discovery."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigRepository, GlobalConfig, ScheduleConfig, ScheduleType, SourceConfig
from .engine import Canonicalizer, ExecutionContextManager, RateLimiter, RegistrationSync
from .errors import CatalogLoadError, MissingCredentialsError, UnknownSourceError
from .infra import CatalogStore
from .logging_conf import configure_logging, source_logger
from .orchestrator import Orchestrator, RunOptions, RunSummary
from .scheduler import APSchedulerAdapter
from .sources import build_descriptors

app = typer.Typer(
    help="catalog-discovery command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
source_app = typer.Typer(
    name="source",
    help="Source configuration commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    global_config: GlobalConfig
    scheduler: APSchedulerAdapter
    # built on demand so commands that never touch the store need no token
    orchestrator_factory: Callable[[], Orchestrator]


def build_orchestrator(
    repository: ConfigRepository, global_config: GlobalConfig, verbose: bool = False
) -> Orchestrator:
    store = CatalogStore(global_config.store, repository.store_token())
    context_manager = ExecutionContextManager(
        global_config.browser,
        global_config.privileged_browser,
        page_delay=global_config.page_delay,
    )

    def registration_factory(source_records) -> RegistrationSync:
        limiter = RateLimiter(global_config.registration.min_interval)
        return RegistrationSync(store, limiter, source_records)

    return Orchestrator(
        store=store,
        context_manager=context_manager,
        registration_factory=registration_factory,
        catalog_canonicalize=Canonicalizer(global_config.host_aliases),
        logger_factory=lambda source_id: source_logger(source_id, verbose),
    )


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    global_config = repository.load_global_config()
    scheduler = APSchedulerAdapter()
    return AppState(
        repository=repository,
        global_config=global_config,
        scheduler=scheduler,
        orchestrator_factory=partial(build_orchestrator, repository, global_config, verbose),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def execute_run(state: AppState, options: RunOptions) -> RunSummary:
    """Load source configuration and run one discovery pass."""

    configs = state.repository.list_sources()
    if options.source_id is None:
        # an explicitly selected source runs even when disabled
        configs = [config for config in configs if config.enabled]
    descriptors = build_descriptors(configs, state.global_config.host_aliases)
    orchestrator = state.orchestrator_factory()
    return orchestrator.run(descriptors, options)


def _format_schedule(schedule: ScheduleConfig) -> str:
    data = schedule.value
    label = schedule.type.value
    if data in (None, "", [], {}):
        return label
    if schedule.type is ScheduleType.CRON:
        return f"cron ({data})"
    if schedule.type is ScheduleType.INTERVAL:
        return f"interval ({data})"
    return f"{label} ({data})"


def _render_sources_table(sources: Sequence[SourceConfig]) -> Table:
    table = Table(
        title=f"Sources · {len(sources)} configured",
        box=box.SIMPLE_HEAD,
        show_lines=False,
    )
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Discoverer", style="magenta")
    table.add_column("Context", style="yellow")
    table.add_column("Enabled", style="green")
    for source in sources:
        table.add_row(
            source.source_id,
            source.label,
            source.discoverer,
            "privileged" if source.requires_privileged_context else "standard",
            "yes" if source.enabled else "no",
        )
    return table


def _render_jobs_table(jobs: Iterable[dict]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("Next run", style="green")
    table.add_column("Trigger", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time") or "-"),
            escape(str(job.get("trigger", "-"))),
        )
    return table


def _render_summary_table(summary: RunSummary) -> Table:
    title = "Discovery summary (dry run)" if summary.dry_run else "Discovery summary"
    table = Table(title=title, box=box.MINIMAL_DOUBLE_HEAD, show_footer=False)
    table.add_column("Source", style="cyan", no_wrap=True)
    for column in ("Discovered", "New", "Excluded", "Errors", "Registered", "Failed"):
        table.add_column(column, justify="right")
    for item in summary.sources:
        table.add_row(
            item.source_id,
            str(item.discovered),
            str(item.new),
            str(item.excluded),
            str(item.errors),
            str(item.registered),
            str(item.failed),
            style="red" if item.errors else None,
        )
    table.add_section()
    table.add_row(
        "Total",
        str(summary.discovered),
        str(summary.new),
        str(summary.excluded),
        str(summary.errors),
        str(summary.registered),
        str(summary.failed),
        style="bold",
    )
    table.caption = f"Known catalog: {summary.known_count} · Elapsed: {summary.elapsed:.1f}s"
    return table


def _render_new_items(summary: RunSummary) -> Table:
    table = Table(title=f"New products · {len(summary.accepted)}", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("URL", style="green", overflow="fold")
    for item in summary.accepted:
        table.add_row(item.source_id, escape(item.name), escape(item.canonical_url))
    return table


app.add_typer(source_app, name="source", help="Inspect configured sources")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Discover new products and register them in the catalog store.")
def run(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Discover and diff only; skip every store write.",
        is_flag=True,
    ),
    source: Optional[str] = typer.Option(
        None,
        "--source",
        help="Restrict the run to one source id.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Print the summary table only, without the new product list.",
        is_flag=True,
    ),
) -> None:
    state = _get_state(ctx)
    try:
        summary = execute_run(state, RunOptions(dry_run=dry_run, source_id=source))
    except UnknownSourceError as exc:
        available = ", ".join(exc.available) or "(none)"
        console.print(f"Unknown source `{exc.source_id}`. Available: {available}", style="red")
        raise typer.Exit(code=1)
    except CatalogLoadError as exc:
        console.print(f"Could not load the known catalog: {escape(str(exc))}", style="red")
        raise typer.Exit(code=1)
    except MissingCredentialsError as exc:
        console.print(f"Catalog store credentials missing: {exc.env_name}", style="red")
        raise typer.Exit(code=1)

    console.print(_render_summary_table(summary))
    if not quiet and summary.accepted:
        console.print(_render_new_items(summary))
    elif not summary.accepted:
        console.print("No new products found.", style="dim")


@app.command("schedule", help="Run discovery on the configured schedule (foreground).")
def schedule(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    schedule_config = state.global_config.schedule

    def _job() -> None:
        try:
            execute_run(state, RunOptions())
        except (CatalogLoadError, MissingCredentialsError) as exc:
            # the next scheduled run retries
            console.print(f"Scheduled run aborted: {escape(str(exc))}", style="red")

    state.scheduler.schedule_job(schedule_config, _job)
    console.print(f"Scheduled discovery: {_format_schedule(schedule_config)}", style="green")
    console.print(_render_jobs_table(state.scheduler.list_jobs()))
    try:
        state.scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        state.scheduler.shutdown()
        console.print("Scheduler stopped.", style="yellow")


@source_app.command("list", help="Show configured sources in run order.")
def source_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    sources = state.repository.list_sources()
    if not sources:
        console.print(
            f"No sources configured. Add YAML files under {state.repository.locator.sources_dir}.",
            style="yellow",
        )
        raise typer.Exit(code=0)
    console.print(_render_sources_table(sources))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()


__all__ = ["AppState", "app", "build_orchestrator", "build_state", "cli", "execute_run"]
