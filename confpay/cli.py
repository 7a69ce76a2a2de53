"""
Command-line interface for the confidential payroll client.
"""

from __future__ import annotations

import asyncio
import os
import time
from datetime import datetime, timezone
from pathlib import Path

import click

from confpay.client.client import PayrollClient
from confpay.client.infrastructure.grant_store import FileGrantStore
from confpay.client.infrastructure.keygen import KeyGenerator
from confpay.common.config import Config
from confpay.common.models import ClientConfig


@click.group()
def cli() -> None:
    """Confidential payroll client CLI"""


@cli.command()
@click.option(
    "--key-path",
    default=None,
    help="File to save the wallet key to (default: ~/.confpay/wallet.key)",
)
def keygen(key_path: str | None) -> None:
    """Generate a local secp256k1 wallet key"""
    if key_path:
        os.environ["CONFPAY_WALLET_KEY"] = key_path

    keygen = KeyGenerator()
    path = keygen.generate_key()
    click.echo(f"Wallet key generated and saved to {path}")


@cli.group()
def grants() -> None:
    """Inspect the cached decryption grants"""


def _grant_store(data_dir: str | None) -> FileGrantStore:
    if data_dir:
        os.environ["CONFPAY_DATA_DIR"] = data_dir
    return FileGrantStore(Config().GRANT_STORE_PATH)


@grants.command("list")
@click.option("--data-dir", default=None, help="Data directory (default: ~/.confpay)")
def list_grants(data_dir: str | None) -> None:
    """List cached grants and their expiry"""
    store = _grant_store(data_dir)
    cached = store.all()
    if not cached:
        click.echo("No cached grants")
        return
    now = time.time()
    for grant in cached:
        expires = datetime.fromtimestamp(grant.expires_at, tz=timezone.utc)
        state = "expired" if grant.is_expired(now) else "valid"
        click.echo(
            f"chain={grant.chain_id} holder={grant.holder} "
            f"resources={','.join(grant.resources)} "
            f"expires={expires.isoformat()} ({state})"
        )


@grants.command("purge")
@click.option("--data-dir", default=None, help="Data directory (default: ~/.confpay)")
@click.option("--chain-id", type=int, required=True, help="Chain id of the grants")
@click.option("--holder", required=True, help="Holder account address")
def purge_grants(data_dir: str | None, chain_id: int, holder: str) -> None:
    """Remove every cached grant of a holder"""
    store = _grant_store(data_dir)
    removed = store.purge(chain_id, holder)
    click.echo(f"Removed {removed} grant(s)")


@cli.command()
@click.option("--chain-id", type=int, required=True, help="Chain id to connect to")
@click.option("--gateway-url", default=None, help="Ledger gateway URL")
@click.option("--data-dir", default=None, help="Data directory (default: ~/.confpay)")
@click.option("--key-path", default=None, help="Wallet key file")
def status(
    chain_id: int,
    gateway_url: str | None,
    data_dir: str | None,
    key_path: str | None,
) -> None:
    """Refresh and print the payroll state of the wallet account"""
    config = ClientConfig(
        gateway_url=gateway_url,
        data_dir=Path(data_dir) if data_dir else None,
        wallet_key_path=Path(key_path) if key_path else None,
    )
    try:
        client = PayrollClient(config=config, chain_id=chain_id)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    session = client.session
    outcome = asyncio.run(session.refresh())
    view = session.snapshot()
    click.echo(f"account: {client.wallet.account}")
    click.echo(f"deployed: {view.is_deployed}")
    click.echo(f"refresh: {outcome.value}")
    for name, handle in view.handles.items():
        click.echo(f"{name} handle: {handle}")
    click.echo(f"entries: {view.entry_count}")
    click.echo(f"authority: {view.authority}")
    if view.message:
        click.echo(view.message)


if __name__ == "__main__":
    cli()
