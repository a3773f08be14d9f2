"""
Command-line interface for tickisinator.

Translates ticker symbols, ISINs and CUSIPs. Lookup results are
written to stdout as JSONL (one object per designator); logs go to
stderr.

Usage:
    tickisinator lookup ticker:AAPL isin:US0378331005 cusip:037833100
    cat designators.txt | tickisinator lookup
    tickisinator init-db           # Create tables
    tickisinator seed [PATH]       # Load securities from JSON
    tickisinator health            # Check database and FMP configuration
    tickisinator check-isin US0378331005
    tickisinator cusip-to-isin 037833100

Exit codes for lookup:
    0  All lookups succeeded
    1  Partial success
    2  All lookups failed
    3  No designators provided
"""

import asyncio
import json
import sys
from contextlib import AsyncExitStack
from pathlib import Path

import asyncpg
import click

from tickisinator import __version__
from tickisinator.observability.logging import setup_logging
from tickisinator.observability.metrics import get_metrics
from tickisinator.resolution.schemas import EXIT_USAGE, ResolutionResult


class InfrastructureError(click.ClickException):
    """The database could not be reached or prepared."""

    exit_code = 2


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="tickisinator")
def main(debug: bool) -> None:
    """Tickisinator - Translate investment identifiers (ticker, ISIN, CUSIP)."""
    setup_logging("DEBUG" if debug else None)


def _read_stdin_designators() -> list[str]:
    stream = click.get_text_stream("stdin")
    if stream.isatty():
        return []
    return [line.strip() for line in stream if line.strip()]


@main.command()
@click.argument("designators", nargs=-1)
@click.option("--exchange", default=None, help="Exchange qualifier for ticker designators")
@click.option("--metrics-port", default=None, type=int, help="Expose Prometheus metrics on this port")
def lookup(designators: tuple[str, ...], exchange: str | None, metrics_port: int | None) -> None:
    """Resolve designators and print one JSON object per line.

    Designators look like ticker:AAPL, isin:US0378331005 or
    cusip:037833100. With no arguments they are read from stdin,
    one per line.

    Example:
        tickisinator lookup ticker:AAPL ticker:MSFT
        tickisinator lookup --exchange NYSE ticker:IBM
    """
    from tickisinator.resolution.service import ResolutionEngine
    from tickisinator.resolver.config import FMPConfig
    from tickisinator.resolver.fmp import FMPResolver
    from tickisinator.security_master.service import SecurityMasterService
    from tickisinator.storage.database import Database

    raws = list(designators) or _read_stdin_designators()
    if not raws:
        click.echo(
            "Error: No designators provided. Use --help for usage information.",
            err=True,
        )
        sys.exit(EXIT_USAGE)

    if metrics_port is not None:
        get_metrics().start_server(port=metrics_port)

    def emit(result: ResolutionResult) -> None:
        click.echo(json.dumps(result.to_dict()))

    async def run() -> int:
        async with AsyncExitStack() as stack:
            db = Database()
            try:
                await db.connect()
                stack.push_async_callback(db.close)
                store = SecurityMasterService(db)
                await store.ensure_schema()
            except (asyncpg.PostgresError, OSError) as e:
                raise InfrastructureError(f"Database unavailable: {e}") from e

            fmp_config = FMPConfig()
            resolver = None
            if fmp_config.configured:
                resolver = await stack.enter_async_context(FMPResolver(fmp_config))

            engine = ResolutionEngine(store, resolver)
            summary = await engine.resolve_all(raws, exchange=exchange, on_result=emit)
            return summary.exit_code

    sys.exit(asyncio.run(run()))


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from tickisinator.security_master.service import SecurityMasterService
    from tickisinator.storage.database import Database

    async def run():
        db = Database()
        try:
            await db.connect()
            await SecurityMasterService(db).ensure_schema()
        except (asyncpg.PostgresError, OSError) as e:
            raise InfrastructureError(f"Database unavailable: {e}") from e
        finally:
            await db.close()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command()
@click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def seed(path: Path | None) -> None:
    """Load securities from a JSON file (bundled seed data by default).

    The file holds a list of objects with ticker, exchange, name, isin,
    cusip, cik and optional source fields.
    """
    from tickisinator.security_master.repository import InvalidRecordError
    from tickisinator.security_master.service import SecurityMasterService
    from tickisinator.storage.database import Database

    async def run():
        db = Database()
        try:
            await db.connect()
            service = SecurityMasterService(db)
            await service.repository.create_tables()
            count = await service.seed_from_json(path)
        except (asyncpg.PostgresError, OSError) as e:
            raise InfrastructureError(f"Database unavailable: {e}") from e
        except (InvalidRecordError, json.JSONDecodeError, KeyError) as e:
            raise click.ClickException(f"Invalid seed data: {e}") from e
        finally:
            await db.close()

        click.echo(f"Seeded {count} securities")

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check database reachability, table sizes and FMP configuration."""
    import structlog

    from tickisinator.resolver.config import FMPConfig
    from tickisinator.security_master.service import SecurityMasterService
    from tickisinator.storage.database import Database

    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}
        counts: dict[str, int] = {}

        db = Database()
        try:
            await db.connect()
            results["postgres"] = await db.health_check()
            if results["postgres"]:
                try:
                    counts = await SecurityMasterService(db).repository.count_rows()
                except asyncpg.UndefinedTableError:
                    logger.warning("Security master tables missing, run init-db")
        except (asyncpg.PostgresError, OSError) as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))
        finally:
            await db.close()

        results["fmp_configured"] = FMPConfig().configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
        for table, count in counts.items():
            click.echo(f"  {table}: {count} rows")
        click.echo("-" * 40)

        if results["postgres"]:
            click.echo(click.style("Store healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Store unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


@main.command("check-isin")
@click.argument("isin")
def check_isin(isin: str) -> None:
    """Validate an ISIN, including its check digit."""
    from tickisinator.identifiers import validate_isin

    value = isin.strip().upper()
    validation = validate_isin(value)
    if validation.valid:
        click.echo(click.style(f"✓ {value} is valid", fg="green"))
        return

    click.echo(click.style(f"✗ {value} is invalid: {validation.error}", fg="red"))
    sys.exit(1)


@main.command("cusip-to-isin")
@click.argument("cusip")
def cusip_to_isin_command(cusip: str) -> None:
    """Compute the US ISIN for a 9-character CUSIP."""
    from tickisinator.identifiers import IdentifierError, cusip_to_isin

    try:
        click.echo(cusip_to_isin(cusip.strip()))
    except IdentifierError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    main()
