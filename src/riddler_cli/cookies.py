"""
CLI commands for the cookie jar.
"""
from typing import Optional

import click

from cookies.parser import format_expires

from .session import load_cookie_store


@click.group()
def cookie():
    """Inspect and edit the cookie jar."""


@cookie.command('list')
@click.option('--domain', '-d', help='Only cookies whose domain contains this text')
@click.pass_obj
def list_cookies(config, domain: Optional[str]):
    """List stored cookies."""
    store = load_cookie_store(config)
    entries = store.list(domain)
    if not entries:
        click.echo("No cookies stored")
        return
    click.echo(f"{'Domain':28} {'Name':20} {'Path':10} {'Flags':12} Expires")
    click.echo("-" * 90)
    for entry in entries:
        flags = ' '.join(flag for flag, on in (('secure', entry.secure), ('httponly', entry.http_only)) if on)
        click.echo(f"{entry.domain:28} {entry.name:20} {entry.path:10} {flags:12} "
                   f"{format_expires(entry.expires)}")
    click.echo(f"\n{len(entries)} cookie(s)")


@cookie.command('add')
@click.option('--url', '-u', required=True, help='URL the cookie belongs to')
@click.argument('set_cookie')
@click.pass_obj
def add_cookie(config, url: str, set_cookie: str):
    """
    Add a cookie from a Set-Cookie string.

    Example:
      riddler cookie add -u https://example.com "session=abc; Path=/; Secure"
    """
    store = load_cookie_store(config)
    entry = store.add_from_set_cookie(url, set_cookie)
    if entry is None:
        raise click.ClickException(f"Could not parse cookie string: {set_cookie!r}")
    store.save_to_file()
    click.echo(f"Stored {entry.name} for {entry.domain}{entry.path}")


@cookie.command('clean')
@click.pass_obj
def clean_cookies(config):
    """Remove expired cookies."""
    store = load_cookie_store(config)
    removed = store.prune_expired()
    store.save_to_file()
    click.echo(f"Removed {removed} expired cookie(s), {len(store)} left")


@cookie.command('clear')
@click.confirmation_option(prompt='Delete every stored cookie?')
@click.pass_obj
def clear_cookies(config):
    """Remove all cookies."""
    store = load_cookie_store(config)
    store.clear_all()
    store.save_to_file()
    click.echo("Cookie jar cleared")
