"""
Command-line interface for the MetaCPAN client
"""

import json
import sys
from typing import Any, Dict, List

import click
from rich.console import Console
from rich.pretty import Pretty
from rich.table import Table

from .client import MetaCPANClient
from .exceptions import MetaCPANError
from .query import query_fields
from .utils import parse_params


error_console = Console(stderr=True)  # For stderr


@click.group()
@click.option("--domain", default=None, help="MetaCPAN API host (Default: api.metacpan.org)")
@click.option("--version", "api_version", default=None, help="API version / search index (Default: v0)")
@click.option("--base-url", default=None, help="Override the derived http://DOMAIN/VERSION base URL")
@click.option("--agent", default=None, help="User-Agent header for HTTP requests")
@click.option("--timeout", default=None, type=float, help="Request timeout in seconds (Default: none)")
@click.option("--debug/--no-debug", default=False, help="Enable debug output (Default: False)")
@click.pass_context
def cli(ctx, domain, api_version, base_url, agent, timeout, debug):
    """MetaCPANPy - Python client for the MetaCPAN API"""
    ctx.ensure_object(dict)
    ua_args: Dict[str, Any] = {}
    if agent:
        ua_args["agent"] = agent
    if timeout is not None:
        ua_args["timeout"] = timeout
    ctx.obj["client"] = MetaCPANClient(
        domain=domain,
        version=api_version,
        base_url=base_url,
        ua_args=ua_args or None,
    )
    if debug:
        import logging
        logging.basicConfig(level=logging.DEBUG)


@cli.command()
@click.argument("path")
@click.option("--param", "-p", "params", multiple=True, help="Request parameter as key=value (sent as a JSON POST body)")
@click.option("--json", "output_json", is_flag=True, help="Output raw JSON")
@click.pass_context
def fetch(ctx, path, params, output_json):
    """Fetch a path from the MetaCPAN API"""
    client = ctx.obj["client"]
    console = Console()

    try:
        result = client.fetch(path, parse_params(params))

        if output_json:
            click.echo(json.dumps(result, indent=2))
            return

        console.print(f"[bold green]{client.base_url}/{path.lstrip('/')}[/bold green]")
        console.print(Pretty(result))

    except MetaCPANError as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    finally:
        client.close()


@cli.command()
@click.argument("doc_type")
@click.argument("query")
@click.option("--size", "-s", default=None, type=int, help="Hits per scroll page (default: 1000)")
@click.option("--limit", "-n", default=None, type=int, help="Stop after this many hits")
@click.option("--field", "-f", "fields", multiple=True, help="Source field to display (default: the queried fields)")
@click.option("--json", "output_json", is_flag=True, help="Output one JSON hit per line")
@click.pass_context
def search(ctx, doc_type, query, size, limit, fields, output_json):
    """Scroll through DOC_TYPE documents matching a JSON QUERY

    Example: metacpanpy search release '{"either": [{"name": "Moose"}, {"name": "Moo*"}]}'
    """
    client = ctx.obj["client"]
    console = Console()

    try:
        dsl = json.loads(query)
    except ValueError as e:
        error_console.print(f"[bold red]Error:[/bold red] query is not valid JSON: {e}")
        sys.exit(1)

    overrides: Dict[str, Any] = {}
    if size is not None:
        overrides["size"] = size

    try:
        columns: List[str] = list(fields) or query_fields(dsl)
        hits = []
        with client.open_scroll(doc_type, dsl, overrides) as session:
            for count, hit in enumerate(session, 1):
                if output_json:
                    click.echo(json.dumps(hit))
                else:
                    hits.append(hit)
                if limit is not None and count >= limit:
                    break

        if output_json:
            return

        console.print(f"[bold green]Found [/bold green][bold yellow]{session.total}[/bold yellow] "
                      f"[bold green]{doc_type} documents[/bold green]")
        console.print()

        table = Table(show_header=True, header_style="bold")
        table.add_column("ID")
        for column in columns:
            table.add_column(column)

        for hit in hits:
            source = hit.get("_source") or hit.get("fields") or {}
            table.add_row(
                str(hit.get("_id", "-")),
                *(_format_value(source.get(column)) for column in columns),
            )

        console.print(table)

    except MetaCPANError as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    finally:
        client.close()


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def main():
    """Entry point for the CLI"""
    cli(obj={})


if __name__ == "__main__":
    main()
