#!/usr/bin/env python3
"""
Changefeed - Shopify Changelog Query Toolkit
============================================

Command line interface for inspecting configuration, checking the feeds and
running changelog tools.

Usage:
    python main.py --help                              # Show all commands
    python main.py check-config                        # Validate configuration
    python main.py check-feeds                         # HEAD-check the feed URLs
    python main.py tools                               # List registered tools
    python main.py run dev_search --arg query=webhook  # Run a tool
"""

import sys
import asyncio
from typing import Any, Dict, Tuple

import click
from rich.console import Console
from rich.table import Table

from changefeed.config.settings import ChangefeedSettings, get_settings
from changefeed.ingestion.feed_fetcher import FeedFetcher
from changefeed.services.changelog_service import ChangelogService
from changefeed.utils.logging import configure_application_logging
from changefeed.utils.exceptions import ChangefeedError

console = Console()

# Parameters that accept several values; "a,b" on the command line becomes a list
LIST_ARGUMENTS = {"category", "sources", "filter"}


def _setup_logging(settings: ChangefeedSettings, debug: bool) -> None:
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


def parse_tool_arguments(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into a tool argument dict.

    Raises:
        click.BadParameter: A pair has no ``=``
    """
    arguments: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--arg")
        key, value = pair.split("=", 1)
        key = key.strip()
        if key in LIST_ARGUMENTS and "," in value:
            arguments[key] = [item.strip() for item in value.split(",") if item.strip()]
        else:
            arguments[key] = value
    return arguments


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """Changefeed - query the Shopify changelog feeds."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate environment configuration."""
    console.print("[bold blue]🔧 Checking Changefeed Configuration[/bold blue]")

    try:
        settings = get_settings(reload=True)
    except ChangefeedError as e:
        console.print(f"[bold red]❌ Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    sources = settings.sources
    enabled = [name for name, on in (("developer", sources.developer_enabled), ("platform", sources.platform_enabled)) if on]
    table.add_row("Sources", ", ".join(enabled) or "none (developer will be enabled)")
    table.add_row("Developer feed", sources.developer_url)
    table.add_row("Platform feed", sources.platform_url)
    table.add_row("Fetch", f"timeout {settings.fetch.timeout_seconds}s, UA {settings.fetch.user_agent}")
    table.add_row(
        "Limits",
        f"recent {settings.limits.recent}, search {settings.limits.search}, "
        f"breaking {settings.limits.breaking_changes}, category {settings.limits.category}, "
        f"max {settings.limits.max_allowed}",
    )
    table.add_row(
        "Classifier",
        f"{settings.classification.variant.value} (deprecations={settings.classification.include_deprecations}, "
        f"lookback={settings.classification.lookback_days}d)",
    )
    table.add_row("Aggregation", f"partial results: {settings.aggregation.partial_results}")
    table.add_row("Logging", f"{settings.get_effective_log_level()} -> {settings.logging.file_path or 'console only'}")

    console.print(table)
    console.print("[bold green]✅ Configuration is valid[/bold green]")


@cli.command()
@click.pass_context
def check_feeds(ctx):
    """Check that the enabled changelog feeds respond."""
    settings = get_settings()
    _setup_logging(settings, ctx.obj.get('debug'))
    console.print("[bold blue]📡 Checking changelog feeds[/bold blue]")

    feeds = []
    if settings.sources.developer_enabled:
        feeds.append(("Developer", settings.sources.developer_url))
    if settings.sources.platform_enabled:
        feeds.append(("Platform", settings.sources.platform_url))
    if not feeds:
        feeds.append(("Developer", settings.sources.developer_url))

    async def run_checks():
        fetcher = FeedFetcher(settings)
        return await asyncio.gather(*(fetcher.health_check(url) for _, url in feeds))

    results = asyncio.run(run_checks())

    table = Table(title="Feed Health")
    table.add_column("Feed", style="cyan")
    table.add_column("URL")
    table.add_column("Status")
    for (name, url), healthy in zip(feeds, results):
        table.add_row(name, url, "✅ Reachable" if healthy else "❌ Unreachable")
    console.print(table)

    if not all(results):
        sys.exit(1)


@cli.command()
def tools():
    """List tools registered for the enabled sources."""
    service = ChangelogService(get_settings())

    table = Table(title="Registered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Parameters")
    table.add_column("Description")
    for spec in service.list_tools():
        params = ", ".join(spec.params_model.model_fields)
        table.add_row(spec.name, spec.title, params, spec.description)
    console.print(table)


@cli.command()
@click.argument('tool_name')
@click.option('--arg', 'args', multiple=True, help='Tool argument as key=value (repeatable)')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw result payload')
@click.pass_context
def run(ctx, tool_name, args, as_json):
    """Run TOOL_NAME and print its output."""
    settings = get_settings()
    _setup_logging(settings, ctx.obj.get('debug'))

    arguments = parse_tool_arguments(args)
    service = ChangelogService(settings)
    result = asyncio.run(service.run_tool(tool_name, arguments))

    if as_json:
        console.print_json(data=result.to_dict())
    else:
        click.echo(result.text)

    if result.is_error:
        sys.exit(1)


if __name__ == '__main__':
    cli()
