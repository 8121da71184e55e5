"""
CLI command for manual HTTP requests.
"""
from typing import Optional, Tuple

import click

from http_client.client import OutgoingRequest, normalize_method
from http_client.exceptions import HttpClientError
from models.packet import HttpRequest

from .session import client_session, parse_headers


@click.command()
@click.option('--method', '-X', default='GET', show_default=True, help='HTTP method')
@click.option('--url', '-u', required=True, help='Absolute http(s) URL')
@click.option('--header', '-H', 'header_values', multiple=True, help="Request header, 'Name: Value' (repeatable)")
@click.option('--body', '-b', help='Request body')
@click.option('--timeout', '-t', type=int, default=30, show_default=True, help='Timeout in seconds (minimum 5)')
@click.option('--show-body/--no-body', default=True, help='Print the response body')
@click.pass_obj
def request(config, method: str, url: str, header_values: Tuple[str, ...], body: Optional[str],
            timeout: int, show_body: bool):
    """
    Send one HTTP request with the stored cookies attached.

    Examples:
      riddler request -u https://example.com/
      riddler request -X POST -u https://httpbin.org/post -H "Content-Type: application/json" -b '{"a": 1}'
    """
    headers = parse_headers(header_values)
    method = normalize_method(method)
    with client_session(config) as (_, client, request_logger):
        logged = HttpRequest(method=method, url=url, headers=headers, body=body or b"")
        try:
            response = client.send(OutgoingRequest(
                method=method,
                url=url,
                headers=headers,
                body=body,
                timeout_seconds=timeout,
            ))
        except HttpClientError as e:
            request_logger.log_manual(logged, None)
            raise click.ClickException(str(e)) from e
        request_logger.log_manual(logged, response)

    colour = 'green' if response.is_success else 'yellow' if response.status < 400 else 'red'
    click.secho(f"{response.status}  {response.final_url}  ({response.response_time_ms}ms)", fg=colour)
    for name, value in response.headers.items():
        click.echo(f"{name}: {value}")
    if response.cookies:
        click.echo(f"\n{len(response.cookies)} cookie(s) stored")
    if show_body and response.body:
        click.echo("")
        click.echo(response.body)
