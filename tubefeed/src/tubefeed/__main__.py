"""
Command-line interface for TubeFeed.

Usage:
    python -m tubefeed serve                    # Start the gateway server
    python -m tubefeed search "query"           # Search channels via the gateway
    python -m tubefeed follow CHANNEL_ID        # Follow a channel
    python -m tubefeed unfollow CHANNEL_ID      # Unfollow a channel
    python -m tubefeed channels                 # List followed channels
    python -m tubefeed feed [--refresh]         # Show the aggregated feed
    python -m tubefeed watch ITEM_ID            # Mark an item watched
    python -m tubefeed config                   # Show current configuration
"""

import asyncio
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from .client import FeedSession
from .config import get_settings
from .errors import TubeFeedError
from .logging_conf import setup_logging, get_logger
from .models import Channel, WATCH_URL_TEMPLATE
from .server import run_server

console = Console()
logger = get_logger(__name__)


def _session() -> FeedSession:
    return FeedSession.from_settings(get_settings())


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """TubeFeed: one chronological feed for the channels you follow."""
    settings = get_settings()
    level = "DEBUG" if debug else settings.log_level
    setup_logging(level=level, json_output=settings.log_json)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", "-p", type=int, help="Port to bind to")
def serve(host: str, port: int):
    """Start the gateway server."""
    settings = get_settings()
    console.print(Panel("[bold blue]Starting Gateway[/bold blue]"))
    console.print(f"Host: {host}")
    console.print(f"Port: {port or settings.port}")
    console.print(f"Allowed origins: {', '.join(settings.allowed_origins_list) or '(none)'}")
    console.print()

    run_server(host=host, port=port)


@cli.command()
@click.argument("query")
def search(query: str):
    """
    Search channels by name.

    Examples:
      python -m tubefeed search "kurzgesagt"
    """
    session = _session()
    try:
        results = asyncio.run(session.fetcher.search_channels(query))
    except TubeFeedError as e:
        console.print(f"[bold red]Search failed ({e.kind}): {e}[/bold red]")
        raise click.Abort()

    if not results:
        console.print("[yellow]No channels found[/yellow]")
        return

    table = Table(title=f"Channels matching {query!r}")
    table.add_column("Channel ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Subscribers")
    table.add_column("Following")

    for result in results:
        following = "yes" if result.channel_id in session.follows else ""
        table.add_row(result.channel_id, result.channel_name, result.subscriber_count_label, following)

    console.print(table)


@cli.command()
@click.argument("channel_id")
@click.option("--name", "-n", default="", help="Display name for the channel")
def follow(channel_id: str, name: str):
    """Follow a channel by id."""
    session = _session()
    try:
        added = session.follows.follow(Channel(id=channel_id, display_name=name))
    except TubeFeedError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort()

    if added:
        console.print(f"[green]Channel {name or channel_id} added successfully![/green]")
    else:
        console.print("[yellow]Already following this channel[/yellow]")


@cli.command()
@click.argument("channel_id")
def unfollow(channel_id: str):
    """Unfollow a channel by id."""
    session = _session()
    if session.follows.unfollow(channel_id):
        console.print(f"[green]Unfollowed {channel_id}[/green]")
    else:
        console.print(f"[yellow]Not following {channel_id}[/yellow]")


@cli.command()
def channels():
    """List followed channels."""
    session = _session()
    if not len(session.follows):
        console.print("[yellow]No channels followed[/yellow]")
        return

    table = Table(title="Followed Channels")
    table.add_column("Channel ID", style="cyan")
    table.add_column("Name", style="green")
    for channel in session.follows:
        table.add_row(channel.id, channel.display_name)
    console.print(table)


@cli.command()
@click.option("--refresh", "-r", is_flag=True, help="Bypass the feed cache")
@click.option("--limit", "-n", type=int, default=50, help="Max items to show")
def feed(refresh: bool, limit: int):
    """
    Show the aggregated feed, newest first.

    Examples:
      python -m tubefeed feed
      python -m tubefeed feed --refresh -n 20
    """
    session = _session()
    if not len(session.follows):
        console.print("[yellow]No channels followed[/yellow]")
        return

    result = asyncio.run(session.refresh(force=refresh))

    if result.feed:
        table = Table(title="Latest Videos")
        table.add_column("Published", style="cyan")
        table.add_column("Channel", style="yellow")
        table.add_column("Title")
        table.add_column("Item ID", style="dim")
        table.add_column("", style="green")

        for item in result.feed[:limit]:
            published = item.published_at.strftime("%Y-%m-%d %H:%M") if item.published_at else "?"
            watched = "Watched" if item.item_id in session.watched else ""
            table.add_row(published, str(item.channel), item.title, item.item_id, watched)

        console.print(table)
    elif not result.errors:
        console.print("[yellow]No videos found[/yellow]")

    if result.errors:
        console.print("[red]Errors:[/red]")
        for error in result.errors:
            console.print(f"  - {error}")
    if result.stale:
        console.print("[yellow]Every channel failed; showing the last cached feed[/yellow]")

    if session.feed_cache.stored_at:
        updated = datetime.fromtimestamp(session.feed_cache.stored_at)
        console.print(f"\nLast updated: {updated:%Y-%m-%d %H:%M:%S}")


@cli.command()
@click.argument("item_id")
def watch(item_id: str):
    """Mark an item as watched and print its links."""
    session = _session()
    embed_url = session.open_item(item_id)
    console.print(f"[green]Marked {item_id} as watched[/green]")
    console.print(f"  watch: {WATCH_URL_TEMPLATE.format(item_id=item_id)}")
    console.print(f"  embed: {embed_url}")


@cli.command()
def config():
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel("[bold blue]Current Configuration[/bold blue]"))

    console.print("\n[cyan]Gateway:[/cyan]")
    console.print(f"  allowed_origins:          {settings.allowed_origins_list}")
    console.print(f"  client_ip_header:         {settings.client_ip_header}")
    console.print(f"  rate_limit:               {settings.rate_limit_cap} / {settings.rate_limit_window_seconds}s")
    console.print(f"  feed_cache_ttl_seconds:   {settings.feed_cache_ttl_seconds}")
    console.print(f"  search_cache_ttl_seconds: {settings.search_cache_ttl_seconds}")
    console.print(f"  store:                    {'redis' if settings.redis_url else 'memory'}")

    console.print("\n[cyan]Client:[/cyan]")
    console.print(f"  gateway_url:              {settings.gateway_url}")
    console.print(f"  relays:                   {len(settings.relay_urls_list)}")
    console.print(f"  fetch_timeout:            {settings.fetch_timeout}")
    console.print(f"  client_cache_ttl_seconds: {settings.client_cache_ttl_seconds}")
    console.print(f"  filter_shorts:            {settings.filter_shorts} ({settings.shorts_heuristic})")
    console.print(f"  state_dir:                {settings.state_dir}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
