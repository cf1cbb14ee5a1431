#!/usr/bin/env python3
"""
Command-line entry point for SiteMapper.

Usage:
  site-mapper DOMAIN [options]

Crawls DOMAIN starting at http://www.DOMAIN and prints a JSON sitemap.

Options:
  --config PATH         YAML/JSON file with crawl settings
  --protocol PROTO      http or https for the seed (default: http)
  --concurrency INT     Outstanding fetch quota (default: 6)
  --timeout SEC         Per-request timeout
  --max-pages INT       Stop after this many URIs
  --crawl-timeout SEC   Deadline for the whole crawl
  --json PATH           Write the report to a file instead of stdout
  --pretty              Indent JSON output
  --log-level LEVEL     DEBUG, INFO, ...
  --log-file PATH       Also log to this file
  --log-format FORMAT   logging format string
  --version, -v         Show the SiteMapper version

Example:
  site-mapper mydomain.com --concurrency 4 --max-pages 500 --json sitemap.json
"""
import asyncio
import sys
from pathlib import Path

import click

from site_mapper import __version__
from site_mapper.aggregator import aggregate_graph
from site_mapper.config import load_config
from site_mapper.engine import start_crawl
from site_mapper.errors import SeedResolutionError
from site_mapper.logger import DEFAULT_FORMAT, init_logging
from site_mapper.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteMapper, version %(version)s')
@click.argument('domain')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='YAML/JSON file with crawl settings.'
)
@click.option(
    '--protocol', 'protocol',
    type=click.Choice(['http', 'https']),
    default=None,
    help='Protocol for the seed URL and for references without one.'
)
@click.option('--concurrency', 'max_concurrency', type=click.IntRange(min=1), default=None,
              help='Maximum number of outstanding requests.')
@click.option('--timeout', 'timeout', type=float, default=None, help='Per-request timeout (seconds).')
@click.option('--max-pages', 'max_pages', type=click.IntRange(min=1), default=None,
              help='Stop dispatching after this many URIs.')
@click.option('--crawl-timeout', 'crawl_timeout', type=float, default=None,
              help='Deadline for the whole crawl (seconds).')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Write the JSON report to this file.'
)
@click.option('--pretty', is_flag=True, help='Indent JSON output (2 spaces).')
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level.'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (console only if omitted).'
)
@click.option('--log-format', 'log_format', default=DEFAULT_FORMAT, help='Logging format string.')
def cli(domain, config_path, protocol, max_concurrency, timeout, max_pages, crawl_timeout,
        json_output, pretty, log_level, log_file, log_format):
    """Map every page of DOMAIN reachable from its home page."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = load_config(
            config_path,
            domain=domain,
            protocol=f'{protocol}://' if protocol else None,
            max_concurrency=max_concurrency,
            timeout=timeout,
            max_pages=max_pages,
            crawl_timeout=crawl_timeout,
        )
    except Exception as e:
        print_error(f'Invalid configuration: {e}')

    try:
        graph = asyncio.run(start_crawl(cfg))
    except SeedResolutionError as e:
        print_error(f'Cannot start crawl: {e}')

    report = aggregate_graph(graph, cfg.domain)

    if json_output:
        try:
            saved = render_json(report, json_output, pretty=pretty)
        except OSError as e:
            print_error(f'Cannot write report: {e}')
        click.echo(f'JSON report: {saved}')
        return

    click.echo(report.json(pretty=pretty))


if __name__ == "__main__":
    cli()
