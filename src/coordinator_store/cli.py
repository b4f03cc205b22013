"""CLI for the coordinator store.

Provides operator commands to bootstrap the database and inspect stored
signatures and spend transactions.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from .config import resolve_config_for_cli
from .database import CoordinatorDB
from .exceptions import StoreError
from .models import OutPoint, Txid

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--db", envvar="COORDINATOR_STORE_DB", type=click.Path(dir_okay=False),
              help="Database path (overrides --config)")
@click.option("--config", "config_file", type=click.Path(dir_okay=False),
              help="TOML config file (default: ./coordinator.toml if present)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db: str | None, config_file: str | None) -> None:
    """Coordinator store - signatures and spend transactions for vault co-signing."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj["db"] = db
    ctx.obj["config_file"] = config_file


def _open_db(ctx: click.Context) -> CoordinatorDB:
    """Build a CoordinatorDB from the group options, exiting on bad config."""
    try:
        config = resolve_config_for_cli(ctx.obj["db"], ctx.obj["config_file"])
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    return CoordinatorDB(config)


@cli.command("init")
@click.pass_context
def init_command(ctx: click.Context) -> None:
    """Create the database schema if it does not exist."""
    db = _open_db(ctx)
    try:
        version = asyncio.run(_init_db(db))
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Database ready: {db.config.database}")
    click.echo(f"  Schema version: {version}")


async def _init_db(db: CoordinatorDB) -> int | None:
    """Bootstrap the schema and return the recorded version."""
    await db.maybe_create_db()
    return await db.get_schema_version()


@cli.command("version")
@click.pass_context
def version_command(ctx: click.Context) -> None:
    """Show the schema version recorded in the database."""
    db = _open_db(ctx)
    try:
        version = asyncio.run(db.get_schema_version())
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if version is None:
        click.echo("Database is not initialized. Run 'coordinator-store init' first.", err=True)
        sys.exit(1)
    click.echo(str(version))


@cli.command("sigs")
@click.argument("txid")
@click.pass_context
def sigs_command(ctx: click.Context, txid: str) -> None:
    """List the signatures stored for TXID."""
    try:
        parsed = Txid.from_hex(txid)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="TXID") from exc

    db = _open_db(ctx)
    try:
        sigs = asyncio.run(db.fetch_sigs(parsed))
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not sigs.signatures:
        click.echo(f"No signatures for {parsed}")
        return
    for pubkey, signature in sigs.signatures.items():
        click.echo(f"{pubkey} {signature}")


@cli.command("spend-tx")
@click.argument("outpoint")
@click.pass_context
def spend_tx_command(ctx: click.Context, outpoint: str) -> None:
    """Show the spend transaction consuming OUTPOINT (<txid>:<vout>)."""
    try:
        parsed = OutPoint.from_str(outpoint)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="OUTPOINT") from exc

    db = _open_db(ctx)
    try:
        spend_tx = asyncio.run(db.fetch_spend_tx(parsed))
    except StoreError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if spend_tx is None:
        click.echo(f"No spend transaction for {parsed}", err=True)
        sys.exit(1)
    click.echo(f"txid: {spend_tx.txid}")
    click.echo(spend_tx.serialize().hex())


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
