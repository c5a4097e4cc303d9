"""
prefixagg command line interface.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from prefixagg import __version__
from prefixagg.config import Config, load_env_files
from prefixagg.errors import PrefixAggError
from prefixagg.http.client import validate_source
from prefixagg.logging_config import configure_logging
from prefixagg.pipeline import RunReport, run


def _validate_urls(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> tuple[str, ...]:
    for url in value:
        try:
            validate_source(url)
        except ValueError as e:
            raise click.BadParameter(str(e), ctx=ctx, param=param)
    return value


def print_stats(console: Console, report: RunReport) -> None:
    table = Table(title="Aggregation Summary", show_header=False, box=None)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Destination", escape(report.destination))
    table.add_row("Sources", f"{report.sources:,}")
    table.add_row("Networks Found", f"{report.extracted:,}")
    table.add_row("Networks Published", f"{report.published:,}")
    table.add_row("  IPv4", f"{report.ipv4:,}")
    table.add_row("  IPv6", f"{report.ipv6:,}")
    table.add_row("Reduction", f"{report.reduction_pct:.1f}%")
    table.add_row("Elapsed", f"{report.elapsed_ms:,.0f} ms")

    console.print(table)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="prefixagg")
@click.option("-t", "--tempdir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory where the temporary file is created")
@click.option("--timeout", type=float, help="Per-request timeout in seconds")
@click.option("--concurrency", type=click.IntRange(min=1), help="Number of parallel downloads")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also log to this (rotated) file")
@click.option("--syslog", is_flag=True, help="Also log to the local syslog")
@click.option("--stats", is_flag=True, help="Print a summary to stderr")
@click.option("-v", "--verbose", count=True, help="More logging (repeat for debug)")
@click.option("-q", "--quiet", count=True, help="Less logging")
@click.argument("destfile")
@click.argument("urls", nargs=-1, required=True, callback=_validate_urls)
def main(
    tempdir: Path | None,
    timeout: float | None,
    concurrency: int | None,
    log_file: str | None,
    syslog: bool,
    stats: bool,
    verbose: int,
    quiet: int,
    destfile: str,
    urls: tuple[str, ...],
):
    """Download and aggregate lists of IP prefixes into DESTFILE.

    DESTFILE is replaced atomically and keeps its owner, group and
    permissions. Use - to write to standard output instead.

    Examples:
        prefixagg /etc/firewall/blocklist.txt https://example.com/drop.txt
        prefixagg -t /var/tmp - https://example.com/v4.txt https://example.com/v6.txt
    """
    console = Console(stderr=True)

    load_env_files()
    try:
        config = Config.from_env(
            destination=destfile,
            sources=list(urls),
            staging_dir=tempdir,
            verbosity=verbose - quiet,
            timeout=timeout,
            concurrency=concurrency,
            log_file=log_file,
            syslog=syslog or None,
        )
    except PrefixAggError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)
    try:
        configure_logging(config.verbosity, log_file=config.log_file, syslog=config.syslog)
    except OSError as e:
        console.print(f"[red]Error:[/red] Cannot set up logging: {escape(str(e))}")
        raise SystemExit(1)

    try:
        report = run(config)
    except PrefixAggError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    if stats:
        print_stats(console, report)


if __name__ == "__main__":
    main()
