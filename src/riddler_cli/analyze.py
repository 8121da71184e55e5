"""
CLI command for response-time analysis.
"""
from pathlib import Path
from typing import Optional

import click

from analysis.performance import PerformanceRunner, format_summary, summarize, write_report

from .session import client_session

SEVERITY_COLOURS = {
    'Excellent': 'green',
    'Good': 'green',
    'Average': 'yellow',
    'Poor': 'red',
    'Critical': 'red',
}


@click.command()
@click.option('--url', '-u', required=True, help='URL to measure')
@click.option('--iterations', '-n', type=click.IntRange(min=1), default=5, show_default=True,
              help='Number of GET requests')
@click.option('--report', '-r', 'report_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the per-request analyses as JSON (default: ./performance_report.json)')
@click.option('--no-report', is_flag=True, help='Do not write a report file')
@click.option('--details', is_flag=True, help='Print the full analysis of every request')
@click.pass_obj
def analyze(config, url: str, iterations: int, report_path: Optional[Path], no_report: bool, details: bool):
    """Measure and classify response times for a URL."""
    with client_session(config) as (_, client, _request_logger):
        analyses = PerformanceRunner(client).run(url, iterations)

    if not analyses:
        raise click.ClickException(f"All {iterations} request(s) to {url} failed")

    for index, analysis in enumerate(analyses, 1):
        severity = analysis.severity.value
        click.secho(f"  #{index:<3} {analysis.metrics.total_time_ms:>6}ms  {severity}",
                    fg=SEVERITY_COLOURS[severity])
        if details:
            click.echo(analysis.describe())
            click.echo("Recommendations:")
            for rec in analysis.recommendations:
                click.echo(f"  - {rec}")
            click.echo("")

    click.echo("")
    click.echo(format_summary(summarize(analyses)))

    if not no_report:
        written = write_report(analyses, report_path or config.storage.report_file)
        click.echo(f"\nReport written to {written}")
