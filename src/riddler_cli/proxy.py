"""
CLI command for the proxy server.
"""
from typing import Optional

import click

from proxy.server import ProxyServer


@click.command()
@click.option('--address', '-a', help='Bind address (default: 127.0.0.1)')
@click.option('--port', '-p', type=click.IntRange(0, 65535), help='Listen port (default: 8080)')
@click.pass_obj
def proxy(config, address: Optional[str], port: Optional[int]):
    """
    Run the HTTP proxy (CONNECT tunnels for HTTPS).

    Example:
      riddler proxy -p 8888
      curl -x http://127.0.0.1:8888 https://example.com/
    """
    address = address or config.proxy.bind_address
    port = config.proxy.port if port is None else port
    try:
        server = ProxyServer(address, port)
    except OSError as e:
        raise click.ClickException(f"Cannot listen on {address}:{port}: {e}") from e

    host, bound_port = server.address
    click.echo(f"Proxy listening on {host}:{bound_port}")
    click.echo("Press Ctrl+C to stop\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        click.echo("\nStopping proxy...")
    finally:
        server.server_close()
