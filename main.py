#!/usr/bin/env python3
"""
BlogFeed - Blog Feed Mirror
===========================

Main application entry point with CLI interface for serving and checking
the blog feed endpoint.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py fetch                     # Fetch the feed once and print it
    python main.py serve                     # Start the HTTP endpoint
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from aiohttp import web
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from blogfeed.cache.gateway import create_gateway, format_timestamp
from blogfeed.cache.store import MemoryCacheStore
from blogfeed.config.settings import CacheBackend, get_settings
from blogfeed.utils.logging import configure_application_logging
from blogfeed.utils.exceptions import BlogFeedError, get_user_friendly_message, is_retryable_error
from blogfeed.web.handler import create_app

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(settings, debug: bool) -> None:
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """BlogFeed - cached mirror of the site's blog feed."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate environment configuration."""
    console.print("[bold blue]🔧 Checking BlogFeed Configuration[/bold blue]")

    try:
        settings = get_settings()
    except BlogFeedError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Feed", _check_feed_config),
        ("Cache", _check_cache_config),
        ("Logging", _check_logging_config),
        ("Server", _check_server_config),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
        if not status:
            all_passed = False

    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
        sys.exit(0)
    else:
        console.print("[bold red]❌ Configuration validation failed[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--limit', default=10, show_default=True, help='Number of records to show')
@click.pass_context
def fetch(ctx, limit):
    """Fetch and parse the feed once, bypassing any shared cache."""
    settings = get_settings()
    _configure_logging(settings, ctx.obj.get('debug', False))

    console.print(f"[bold blue]📡 Fetching {settings.feed.url}[/bold blue]")

    try:
        snapshot = asyncio.run(create_gateway(settings, store=MemoryCacheStore()).get())
    except BlogFeedError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}: {e}[/bold red]")
        if is_retryable_error(e):
            console.print("[yellow]The upstream problem looks temporary, try again shortly[/yellow]")
        sys.exit(1)

    if not snapshot.records:
        console.print("[yellow]No posts found in the feed[/yellow]")
        return

    table = Table(title=f"{snapshot.count} posts, updated {format_timestamp(snapshot.updated_at)}")
    table.add_column("Published", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Author")
    table.add_column("Image")

    for record in snapshot.records[:limit]:
        table.add_row(record.published_at, record.title, record.author, "yes" if record.image else "-")

    console.print(table)


@cli.command()
@click.option('--host', default=None, help='Bind address (default from config)')
@click.option('--port', default=None, type=int, help='Bind port (default from config)')
@click.pass_context
def serve(ctx, host, port):
    """Start the blog feed HTTP endpoint."""
    settings = get_settings()
    _configure_logging(settings, ctx.obj.get('debug', False))

    host = host or settings.server.host
    port = port or settings.server.port

    console.print(
        f"[bold blue]🚀 Serving {settings.server.route} on {host}:{port} "
        f"(cache: {settings.cache.backend.value}, ttl {settings.cache.ttl_seconds}s)[/bold blue]"
    )
    web.run_app(create_app(settings), host=host, port=port, print=None)


def _check_feed_config(settings) -> tuple[bool, str]:
    """Check upstream feed configuration."""
    url = str(settings.feed.url)
    if not url.startswith("https://"):
        return False, f"Feed URL is not HTTPS: {url}"
    return True, f"{url} (excerpt limit {settings.feed.description_limit})"


def _check_cache_config(settings) -> tuple[bool, str]:
    """Check cache configuration."""
    backend = settings.cache.backend
    if backend == CacheBackend.SQLITE:
        path = Path(settings.cache.sqlite_path)
        if not path.parent.exists():
            return False, f"Cache directory missing: {path.parent}"
        return True, f"SQLite at {path}, TTL {settings.cache.ttl_seconds}s"
    if backend == CacheBackend.NONE:
        return True, "Caching disabled, every request fetches upstream"
    return True, f"In-memory, TTL {settings.cache.ttl_seconds}s"


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    return True, f"Level: {settings.get_effective_log_level()}, Console: {settings.logging.console_logging}"


def _check_server_config(settings) -> tuple[bool, str]:
    """Check server configuration."""
    if settings.limits.handler_timeout < settings.limits.request_timeout:
        return False, "Handler timeout shorter than upstream timeout"
    return True, f"{settings.server.host}:{settings.server.port}{settings.server.route}"


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 BlogFeed interrupted by user[/yellow]")
        sys.exit(130)
