"""Typer CLI entrypoint for advisor-harvester."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, HarvestConfig
from .engine import Fetcher
from .engine.exporter import NdjsonExporter
from .infra import (
    BaseCache,
    FileCache,
    IdentityRotator,
    MemoryCache,
    PoolUnavailable,
    StaticCredentialSource,
    UserAgentPool,
    WebshareCredentialSource,
)
from .logging_conf import configure_logging, console_threshold, log_file, tail_log
from .orchestrator import EnumerationError, HarvestSummary, Orchestrator
from .ui import ProgressReporter

app = typer.Typer(
    help="Harvest advisor listings and detail records into NDJSON.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
cache_app = typer.Typer(name="cache", help="Response cache maintenance.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files.", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: HarvestConfig
    cache: BaseCache
    identities: IdentityRotator | None
    ua_pool: UserAgentPool


def build_cache(config: HarvestConfig, repository: ConfigRepository) -> BaseCache:
    if config.cache.backend == "memory":
        return MemoryCache()
    return FileCache(repository.cache_dir())


def build_identities(config: HarvestConfig) -> IdentityRotator | None:
    proxy = config.proxy_pool
    if not proxy.enabled:
        return None
    if proxy.proxies:
        return IdentityRotator(StaticCredentialSource(proxy.proxies))
    return IdentityRotator(
        WebshareCredentialSource(
            proxy.api_key or "",
            url=proxy.api_url,
            page_size=proxy.page_size,
            timeout=config.request_timeout,
        )
    )


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    config = repository.load_config()
    return AppState(
        repository=repository,
        config=config,
        cache=build_cache(config, repository),
        identities=build_identities(config),
        ua_pool=UserAgentPool(config.user_agent_list),
    )


async def harvest(state: AppState, output_path: Path, progress: ProgressReporter) -> HarvestSummary:
    """Wire services for one run and execute both phases."""

    fetcher = Fetcher(
        state.cache,
        state.identities,
        state.ua_pool,
        timeout=state.config.request_timeout,
    )
    exporter = NdjsonExporter(output_path)
    orchestrator = Orchestrator(fetcher, state.config, progress=progress)
    try:
        return await orchestrator.run(exporter, output_path)
    finally:
        await fetcher.aclose()


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _render_summary(summary: HarvestSummary) -> Table:
    table = Table(title="Harvest summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Listing pages", str(summary.page_count))
    table.add_row("Agent IDs", str(summary.agent_ids))
    table.add_row("Records written", str(summary.written))
    table.add_row("Errors", str(summary.failed))
    return table


def _print_errors(summary: HarvestSummary, limit: int) -> None:
    if not summary.errors:
        return
    shown, hidden = summary.error_preview(limit)
    console.print(f"{summary.failed} errors occurred:", style="yellow")
    for message in shown:
        console.print(f"  - {message}", markup=False)
    if hidden:
        console.print(f"  ... and {hidden} more errors", style="dim")


app.add_typer(cache_app, name="cache")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    try:
        ctx.obj = build_state(verbose)
    except ValueError as exc:
        console.print(f"Invalid configuration: {exc}", style="red", markup=False)
        raise typer.Exit(code=1)


@app.command("run", help="Enumerate all agents and stream their details to NDJSON.")
def run(
    ctx: typer.Context,
    quiet: bool = typer.Option(False, "--quiet", help="Hide progress bars and the summary table."),
    output: Optional[Path] = typer.Option(None, "--output", help="Override the NDJSON output path."),
) -> None:
    state = _get_state(ctx)
    output_path = output or state.repository.output_path()
    progress = ProgressReporter(enabled=_progress_default_enabled() and not quiet)
    try:
        with console_threshold(active=progress.enabled):
            summary = asyncio.run(harvest(state, output_path, progress))
    except (EnumerationError, PoolUnavailable) as exc:
        console.print(f"Error: {exc}", style="red", markup=False)
        raise typer.Exit(code=1)
    if quiet:
        console.print(
            f"Done: {summary.written} records written, {summary.failed} errors -> {output_path}",
            markup=False,
        )
        return
    console.print(_render_summary(summary))
    _print_errors(summary, state.config.error_summary_limit)
    console.print(f"Streamed {summary.written} records to {output_path}", markup=False)


@cache_app.command("purge", help="Delete expired cache entries.")
def cache_purge(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    removed = state.cache.purge_expired()
    console.print(f"Removed {removed} expired cache entries.")


@cache_app.command("clear", help="Delete every cache entry.")
def cache_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation."),
) -> None:
    state = _get_state(ctx)
    if not yes and not typer.confirm("Delete all cached responses?"):
        raise typer.Exit(code=0)
    state.cache.clear()
    console.print("Cache cleared.")


@log_app.command("show", help="Show the tail of the harvester log.")
def log_show(
    ctx: typer.Context,
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Show error.log instead."),
) -> None:
    state = _get_state(ctx)
    path = log_file(state.repository.locator.logs_dir, errors=errors)
    content = tail_log(path, lines)
    if not content:
        console.print(f"No log entries in {path}", style="yellow", markup=False)
        raise typer.Exit(code=0)
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
