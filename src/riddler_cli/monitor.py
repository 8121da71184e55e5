"""
CLI commands for live HTTP capture.
"""
import threading
from typing import Optional

import click

from capture.dummy_backend import DummyBackend
from capture.exceptions import CaptureError, CapturePermissionDenied, InterfaceNotFound, InvalidFilter
from capture.icapture_backend import ICaptureBackend
from capture.monitor import PacketMonitor
from capture.scapy_backend import ScapyBackend
from http_client.exceptions import HttpClientError
from models.log_entry import SOURCE_MONITORED

from .session import client_session

BACKENDS = ('scapy', 'dummy')


def make_backend(name: str) -> ICaptureBackend:
    if name == 'dummy':
        return DummyBackend()
    try:
        return ScapyBackend()
    except RuntimeError as e:
        raise click.ClickException(
            f"{e}\nOn Linux/macOS install libpcap; on Windows install Npcap from https://npcap.com/"
        ) from e


@click.command()
@click.option('--backend', type=click.Choice(BACKENDS), default='scapy', show_default=True,
              help='Capture backend to use')
def interfaces(backend: str):
    """List capture interfaces."""
    capture_backend = make_backend(backend)
    try:
        found = capture_backend.list_interfaces()
    except CaptureError as e:
        raise click.ClickException(str(e)) from e

    click.echo("Available interfaces:")
    for iface in found:
        ips = ', '.join(iface.get('ips') or []) or '-'
        click.echo(f"  {iface['name']:20} {ips:18} {iface.get('description', '')}")


@click.command()
@click.option('--interface', '-i', help='Interface to capture from (default: en0 on macOS, eth0 elsewhere)')
@click.option('--filter', '-f', 'bpf_filter', help='BPF filter (default: "tcp port 80 or tcp port 443")')
@click.option('--replay', is_flag=True, help='Re-issue every captured request')
@click.option('--backend', type=click.Choice(BACKENDS), default='scapy', show_default=True,
              help='Capture backend to use')
@click.option('--duration', '-d', type=int, help='Stop after this many seconds (default: run until Ctrl+C)')
@click.pass_obj
def monitor(config, interface: Optional[str], bpf_filter: Optional[str], replay: bool,
            backend: str, duration: Optional[int]):
    """
    Capture HTTP requests off the wire and log them.

    Examples:
      riddler monitor -i eth0 -f "tcp port 80"
      riddler monitor --backend dummy -i dummy0 --duration 5
    """
    capture_backend = make_backend(backend)
    interface = interface or ('dummy0' if backend == 'dummy' else config.network.interface)
    bpf_filter = bpf_filter or config.network.filter

    packet_monitor = PacketMonitor(
        capture_backend,
        interface,
        bpf_filter,
        max_memory_usage=config.network.max_memory_usage,
    )
    try:
        packet_monitor.start()
    except InterfaceNotFound as e:
        raise click.ClickException(
            f"{e}\nRun 'riddler interfaces' to see interface names."
        ) from e
    except CapturePermissionDenied as e:
        raise click.ClickException(f"{e}\nExample: sudo riddler monitor -i {interface}") from e
    except InvalidFilter as e:
        raise click.ClickException(f"{e}\nExample filter: \"tcp port 80 or tcp port 443\"") from e
    except CaptureError as e:
        raise click.ClickException(f"Error starting capture: {e}") from e

    click.echo(f"Monitoring '{interface}' with filter '{bpf_filter}'")
    if duration:
        click.echo(f"Duration: {duration} seconds")
        timer = threading.Timer(duration, packet_monitor.shutdown)
        timer.daemon = True
        timer.start()
    click.echo("Press Ctrl+C to stop\n")

    seen = replayed = 0
    with client_session(config) as (_, client, request_logger):
        try:
            for captured in packet_monitor.requests():
                seen += 1
                request_logger.log_request(captured, SOURCE_MONITORED)
                click.echo(f"{captured.method:7} {captured.url}  ({captured.source_ip}:{captured.source_port})")
                if not replay:
                    continue
                try:
                    response = client.replay(captured)
                except HttpClientError as e:
                    click.secho(f"  replay failed: {e}", fg='red', err=True)
                    request_logger.log_replay(captured, None)
                else:
                    replayed += 1
                    request_logger.log_replay(captured, response)
                    click.echo(f"  replayed -> {response.status} in {response.response_time_ms}ms")
        except KeyboardInterrupt:
            click.echo("\nStopping capture...")
        finally:
            packet_monitor.shutdown()

    try:
        packet_monitor.join(timeout=5)
    except CaptureError as e:
        raise click.ClickException(f"Capture stopped: {e}") from e
    finally:
        _print_summary(packet_monitor.get_stats(), seen, replayed if replay else None)


def _print_summary(stats, seen: int, replayed: Optional[int]):
    click.echo("\n" + "=" * 50)
    click.echo("CAPTURE SUMMARY")
    click.echo("=" * 50)
    click.echo(f"Total Packets:    {stats['packets_total']}")
    click.echo(f"HTTP Candidates:  {stats['http_candidates']}")
    click.echo(f"HTTP Requests:    {seen}")
    if replayed is not None:
        click.echo(f"Replayed:         {replayed}")
    click.echo(f"Memory Drops:     {stats['drops_memory']}")
    click.echo(f"Capture Errors:   {stats['capture_errors']}")
