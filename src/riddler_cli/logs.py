"""
CLI commands over the request log: listing, search, stats and replay.
"""
from pathlib import Path
from typing import Optional

import click

from analysis.replay import ReplayEngine
from models.log_entry import LOG_SOURCES, RequestLogEntry
from request_log.logger import RequestLogger

from .session import client_session


def _echo_entry(entry: RequestLogEntry):
    req = entry.request
    status = str(entry.response.status) if entry.response else '---'
    elapsed = f"{entry.response.response_time_ms}ms" if entry.response else ''
    stamp = entry.timestamp.strftime('%Y-%m-%d %H:%M:%S')
    click.echo(f"{stamp}  {entry.source:9} {req.method:7} {status:4} {elapsed:>8}  {req.url}")


@click.command()
@click.option('--limit', '-n', type=int, default=20, show_default=True, help='Entries to show')
@click.option('--source', '-s', type=click.Choice(LOG_SOURCES), help='Only entries from this source')
@click.option('--query', '-q', help='Case-insensitive search over URL, method, headers and body')
@click.option('--stats', 'show_stats', is_flag=True, help='Print aggregate statistics instead')
@click.option('--path', type=click.Path(dir_okay=False, path_type=Path), help='Read this log file instead')
@click.pass_obj
def logs(config, limit: int, source: Optional[str], query: Optional[str], show_stats: bool,
         path: Optional[Path]):
    """Show logged requests."""
    with RequestLogger(path or config.storage.log_file) as request_logger:
        if show_stats:
            stats = request_logger.stats()
            click.echo("=== REQUEST STATISTICS ===")
            click.echo(f"Total Requests:     {stats.total_requests}")
            click.echo(f"  Monitored:        {stats.monitored_requests}")
            click.echo(f"  Manual:           {stats.manual_requests}")
            click.echo(f"  Replay:           {stats.replay_requests}")
            click.echo(f"Successful (2xx):   {stats.successful_requests}")
            click.echo(f"Failed (>=400):     {stats.failed_requests}")
            click.echo(f"Avg Response Time:  {stats.average_response_time:.1f}ms")
            if stats.methods:
                click.echo("Methods:")
                for method, count in sorted(stats.methods.items(), key=lambda item: -item[1]):
                    click.echo(f"  {method:8} {count}")
            return

        if query:
            entries = request_logger.search(query, limit)
            if source is not None:
                entries = [e for e in entries if e.source == source]
        elif source is not None:
            entries = [e for e in request_logger.entries() if e.source == source][-limit:]
        else:
            entries = request_logger.recent(limit)

    if not entries:
        click.echo("No matching log entries")
        return
    for entry in entries:
        _echo_entry(entry)


@click.command()
@click.option('--limit', '-n', type=int, default=10, show_default=True, help='Replay the last N logged requests')
@click.option('--source', '-s', type=click.Choice(LOG_SOURCES), help='Only replay entries from this source')
@click.option('--count', '-c', type=click.IntRange(min=1), default=1, show_default=True,
              help='Times to send each request')
@click.option('--delay', type=click.IntRange(min=0), default=1000, show_default=True,
              help='Milliseconds between repeats (twice this between requests)')
@click.pass_obj
def replay(config, limit: int, source: Optional[str], count: int, delay: int):
    """Re-send requests from the log."""
    with client_session(config) as (_, client, request_logger):
        engine = ReplayEngine(client, request_logger)
        entries = engine.select(limit, source)
        if not entries:
            click.echo("No requests to replay")
            return
        click.echo(f"Replaying {len(entries)} request(s) x{count}")
        summary = engine.replay_entries(entries, count=count, delay_ms=delay)

    for attempt in summary.attempts:
        if attempt.succeeded:
            response = attempt.entry.response
            click.echo(f"  [{attempt.iteration}] {attempt.method:7} {attempt.url} -> "
                       f"{response.status} ({response.response_time_ms}ms)")
        else:
            click.secho(f"  [{attempt.iteration}] {attempt.method:7} {attempt.url} failed: {attempt.error}",
                        fg='red', err=True)
    click.echo(f"\n{summary.succeeded} succeeded, {summary.failed} failed")
