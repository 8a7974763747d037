"""Click-based CLI for barcache.

Thin wrapper around the library: every command builds a request and hands it
to :class:`~barcache.engine.BarEngine`.
"""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from barcache.errors import BarCacheError
from barcache.log import LEVELS, configure_logging, level_from_env
from barcache.models.request import DEFAULT_FIELDS, CachePolicy
from barcache.output import create_writer
from barcache.request import build_request

console = Console(stderr=True)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_engine(ctx: click.Context):
    """Build the engine lazily from env vars, caching on first call."""
    if "engine" not in ctx.obj:
        from barcache import create_engine_from_env

        ctx.obj["engine"] = create_engine_from_env()
    return ctx.obj["engine"]


def _print_plan(plan) -> None:
    table = Table(title="Fetch plan")
    table.add_column("Ticker", style="bold")
    table.add_column("Missing ranges")
    for ticker, ranges in plan.coverage.missing.items():
        table.add_row(ticker, ", ".join(str(r) for r in ranges) or "-")
    console.print(table)

    console.print(f"Provider: [bold]{plan.provider}[/bold] ({plan.fetch_interval})")
    if plan.resample_to:
        console.print(f"Resampling {plan.fetch_interval} -> {plan.resample_to}")
    console.print(f"Estimated API calls: [bold]{plan.estimated_calls}[/bold]")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.option("--silent", is_flag=True, default=False, help="Suppress all log output.")
@click.version_option(package_name="barcache")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, silent: bool) -> None:
    """barcache: historical price bars with a local cache."""
    ctx.ensure_object(dict)
    if silent:
        level = LEVELS["SILENT"]
    elif verbose:
        level = logging.DEBUG
    else:
        level = level_from_env()
    configure_logging(level)


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--ticker", "-t", "tickers",
    multiple=True,
    required=True,
    help="Ticker symbol; repeat or comma-separate for several.",
)
@click.option(
    "--date", "-d", "dates",
    default="-1d",
    show_default=True,
    help="YYYY-MM-DD or relative token (-5y, -2w), as 'start:end' or a single day.",
)
@click.option("--granularity", "-g", default="1d", show_default=True, help="Bar interval, e.g. 5min, 1hr, 1d, 1w, 1mo.")
@click.option("--fields", "-f", default=DEFAULT_FIELDS, show_default=True, help="Field selector letters (o,h,l,c,v,a,d,s,r).")
@click.option("--unadjusted", is_flag=True, default=False, help="Skip split/dividend price adjustment.")
@click.option(
    "--cache-policy",
    type=click.Choice([p.value for p in CachePolicy], case_sensitive=False),
    default=CachePolicy.USE.value,
    show_default=True,
    help="use: read and fill the cache; ignore: bypass it; refresh: refetch and overwrite.",
)
@click.option("--plan", "show_plan", is_flag=True, default=False, help="Show missing ranges and API call estimate first.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip the confirmation prompt after --plan.")
@click.option(
    "--of", "--output-format", "output_format",
    type=click.Choice(["json", "csv"], case_sensitive=False),
    default="json",
    show_default=True,
)
@click.option("--op", "--output-path", "output_path", default=None, help="Output file for csv; supports $ticker$, $date$, $timestamp$.")
@click.pass_context
def fetch(
    ctx: click.Context,
    tickers: tuple[str, ...],
    dates: str,
    granularity: str,
    fields: str,
    unadjusted: bool,
    cache_policy: str,
    show_plan: bool,
    yes: bool,
    output_format: str,
    output_path: str | None,
) -> None:
    """Fetch bars for one or more tickers."""
    try:
        request = build_request(
            tickers,
            dates,
            granularity=granularity,
            fields=fields,
            unadjusted=unadjusted,
            cache_policy=CachePolicy(cache_policy.lower()),
        )
        writer = create_writer(output_format)
        engine = _get_engine(ctx)

        if show_plan:
            plan = engine.plan(request)
            _print_plan(plan)
            if plan.estimated_calls and not yes:
                if not click.confirm("Proceed with fetch?", default=True, err=True):
                    console.print("Aborted.")
                    return

        records = engine.run(request)
        path = writer.write(records, output_path)
        if path is not None:
            console.print(f"[green]Wrote {len(records)} record(s) to {path}[/green]")
    except BarCacheError as exc:
        logger.error("%s", exc.message)
        sys.exit(1)


# ---------------------------------------------------------------------------
# cache
# ---------------------------------------------------------------------------


@cli.group()
def cache() -> None:
    """Manage the local bar cache."""


@cache.command("clear")
@click.argument("ticker", required=False)
@click.option("--all", "clear_all", is_flag=True, default=False, help="Clear every ticker.")
@click.pass_context
def cache_clear(ctx: click.Context, ticker: str | None, clear_all: bool) -> None:
    """Remove cached bars for TICKER, or everything with --all."""
    if not ticker and not clear_all:
        raise click.UsageError("Give a TICKER or --all")
    try:
        engine = _get_engine(ctx)
        if clear_all:
            engine.clear_all_cache()
            console.print("[green]Cleared the entire cache.[/green]")
        else:
            engine.clear_cache(ticker.upper())
            console.print(f"[green]Cleared cached bars for {ticker.upper()}.[/green]")
    except BarCacheError as exc:
        logger.error("%s", exc.message)
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
