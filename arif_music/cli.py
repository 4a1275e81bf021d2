"""
Command-line interface for arif-music.

This module implements the CLI using Click (rich-click for coloured
help), exercising the repositories the way the app's screens do.

Commands:
    arif register <email>                 Create an account and sign in
    arif login <email>                    Sign in
    arif logout                           Forget the stored session
    arif whoami                           Show the signed-in user
    arif playlist create|list|show|delete|add|remove
    arif watchlist create|list|show|delete|add|remove|favorite
    arif follow <user-id>                 Follow an artist
    arif unfollow <user-id>               Stop following an artist
    arif notifications list|read|delete|clear

Global Options:
    --offline                             Never contact the API this run
    --config <path>                       Explicit config.yaml
    --verbose                             Debug output on the console

Exit Codes:
    0  success
    1  the operation failed (message printed to stderr)
    2  the local store could not be opened

Usage:
    arif register ada@example.com --name ada --full-name "Ada L."
    arif --offline playlist create "Road trip"
    arif watchlist favorite 5f1c...
"""

import sys
from pathlib import Path

import rich_click as click

from arif_music import __version__
from arif_music.client import ArifClient
from arif_music.core import (
    ConfigError,
    DatabaseError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from arif_music.models import LibraryItem, LibraryKind, User, UserType
from arif_music.sync.strategy import Result

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.MAX_WIDTH = 100


logger = get_logger(__name__)


def _unwrap(result: Result):
    """Return the result's value, or print its error and exit with status 1."""
    if not result.ok:
        click.echo(f"Error: {result.error.message}", err=True)
        sys.exit(1)
    return result.value


def _format_user(user: User) -> str:
    return f"{user.name} <{user.email}> [{user.user_type.value}] id={user.id}"


def _format_item(item: LibraryItem) -> str:
    visibility = "public" if item.is_public else "private"
    return f"{item.id}  {item.name}  ({len(item.songs)} songs, {visibility})"


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option("--offline", is_flag=True, help="Work from the local store only")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="arif")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, offline: bool, verbose: bool) -> None:
    """
    arif: offline-aware client for the Arif Music API.

    Every command tries the API first and falls back to the local store
    when the network is unavailable.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    config.storage.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(
        config.storage.data_dir if config.logging.file else None,
        level="DEBUG" if verbose else config.logging.level
    )

    try:
        client = ArifClient.create(config, offline=offline)
    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        shutdown_logging()
        sys.exit(2)

    ctx.obj = client

    def _close() -> None:
        client.close()
        shutdown_logging()

    ctx.call_on_close(_close)


# =============================================================================
# Account
# =============================================================================

@cli.command()
@click.argument("email")
@click.option("--name", required=True, help="Display name")
@click.option("--full-name", required=True, help="Full name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--artist", is_flag=True, help="Register as an artist")
@click.pass_obj
def register(
    client: ArifClient, email: str, name: str, full_name: str, password: str, artist: bool
) -> None:
    """Create an account and sign in."""
    user_type = UserType.ARTIST if artist else UserType.LISTENER
    user = _unwrap(client.users.register(email, password, name, full_name, user_type))
    click.echo(f"Registered {_format_user(user)}")


@cli.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_obj
def login(client: ArifClient, email: str, password: str) -> None:
    """Sign in."""
    user = _unwrap(client.users.login(email, password))
    click.echo(f"Signed in as {_format_user(user)}")


@cli.command()
@click.pass_obj
def logout(client: ArifClient) -> None:
    """Forget the stored session."""
    _unwrap(client.users.logout())
    click.echo("Signed out")


@cli.command()
@click.pass_obj
def whoami(client: ArifClient) -> None:
    """Show the signed-in user."""
    user = _unwrap(client.users.current_user())
    click.echo(_format_user(user))


@cli.command()
@click.argument("user_id")
@click.pass_obj
def follow(client: ArifClient, user_id: str) -> None:
    """Follow an artist."""
    _unwrap(client.users.follow_artist(user_id))
    click.echo(f"Following {user_id}")


@cli.command()
@click.argument("user_id")
@click.pass_obj
def unfollow(client: ArifClient, user_id: str) -> None:
    """Stop following an artist."""
    _unwrap(client.users.unfollow_artist(user_id))
    click.echo(f"No longer following {user_id}")


# =============================================================================
# Playlists and watchlists
# =============================================================================

def _repository(client: ArifClient, kind: LibraryKind):
    return client.playlists if kind is LibraryKind.PLAYLIST else client.watchlists


def _library_group(kind: LibraryKind) -> click.Group:
    """Build the playlist or watchlist command group."""
    label = kind.label

    @click.group(name=label, help=f"Manage your {label}s.")
    def group() -> None:
        pass

    @group.command("create", help=f"Create a {label}.")
    @click.argument("name")
    @click.option("--description", default="", help="Description")
    @click.option("--private", is_flag=True, help="Hide from other users (playlists)")
    @click.pass_obj
    def create(client: ArifClient, name: str, description: str, private: bool) -> None:
        item = _unwrap(_repository(client, kind).create_item(
            name, description=description, is_public=not private
        ))
        click.echo(f"Created {label} {_format_item(item)}")

    @group.command("list", help=f"List your {label}s.")
    @click.pass_obj
    def list_items(client: ArifClient) -> None:
        items = _unwrap(_repository(client, kind).list_items())
        if not items:
            click.echo(f"No {label}s")
        for item in items:
            click.echo(_format_item(item))

    @group.command("show", help=f"Show a {label} and its songs.")
    @click.argument("item_id", type=int)
    @click.pass_obj
    def show(client: ArifClient, item_id: int) -> None:
        item = _unwrap(_repository(client, kind).get_item(item_id))
        click.echo(_format_item(item))
        if item.description:
            click.echo(item.description)
        for position, music_id in enumerate(item.songs, start=1):
            music = client.music.get_music(music_id)
            if music.ok:
                click.echo(f"  {position:>3}. {music.value.title} - {music.value.artist}"
                           f" [{music.value.duration_str}]")
            else:
                click.echo(f"  {position:>3}. {music_id}")

    @group.command("delete", help=f"Delete a {label}.")
    @click.argument("item_id", type=int)
    @click.pass_obj
    def delete(client: ArifClient, item_id: int) -> None:
        _unwrap(_repository(client, kind).delete_item(item_id))
        click.echo(f"Deleted {label} {item_id}")

    @group.command("add", help=f"Add a song to a {label}.")
    @click.argument("item_id", type=int)
    @click.argument("music_id")
    @click.pass_obj
    def add(client: ArifClient, item_id: int, music_id: str) -> None:
        item = _unwrap(_repository(client, kind).add_music(item_id, music_id))
        click.echo(f"Added {music_id} to {_format_item(item)}")

    @group.command("remove", help=f"Remove a song from a {label}.")
    @click.argument("item_id", type=int)
    @click.argument("music_id")
    @click.pass_obj
    def remove(client: ArifClient, item_id: int, music_id: str) -> None:
        item = _unwrap(_repository(client, kind).remove_music(item_id, music_id))
        click.echo(f"Removed {music_id} from {_format_item(item)}")

    if kind is LibraryKind.WATCHLIST:
        @group.command("favorite", help="Toggle a song in your favorites.")
        @click.argument("music_id")
        @click.pass_obj
        def favorite(client: ArifClient, music_id: str) -> None:
            is_favorite = _unwrap(client.watchlists.toggle_favorite(music_id))
            click.echo(f"{music_id} {'added to' if is_favorite else 'removed from'} favorites")

    return group


cli.add_command(_library_group(LibraryKind.PLAYLIST))
cli.add_command(_library_group(LibraryKind.WATCHLIST))


# =============================================================================
# Notifications
# =============================================================================

@cli.group()
def notifications() -> None:
    """Read and manage your notifications."""


@notifications.command("list")
@click.pass_obj
def list_notifications(client: ArifClient) -> None:
    """List notifications, newest first."""
    entries = _unwrap(client.notifications.notifications())
    if not entries:
        click.echo("No notifications")
    for entry in entries:
        marker = " " if entry.is_read else "*"
        click.echo(f"{marker} {entry.id}  {entry.title}: {entry.message}")


@notifications.command("read")
@click.argument("notification_id", required=False)
@click.pass_obj
def read_notifications(client: ArifClient, notification_id: str | None) -> None:
    """Mark one notification, or all of them, as read."""
    if notification_id:
        _unwrap(client.notifications.mark_as_read(notification_id))
        click.echo(f"Marked {notification_id} as read")
    else:
        changed = _unwrap(client.notifications.mark_all_as_read())
        click.echo(f"Marked {changed} notification(s) as read")


@notifications.command("delete")
@click.argument("notification_id")
@click.pass_obj
def delete_notification(client: ArifClient, notification_id: str) -> None:
    """Delete a notification."""
    _unwrap(client.notifications.delete_notification(notification_id))
    click.echo(f"Deleted notification {notification_id}")


@notifications.command("clear")
@click.pass_obj
def clear_notifications(client: ArifClient) -> None:
    """Delete all notifications."""
    removed = _unwrap(client.notifications.clear_all())
    click.echo(f"Cleared {removed} notification(s)")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `arif` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
