#!/usr/bin/env python3

import os

import click
from ape_accounts import import_account_from_private_key

from vault_deployment.constants import DEPLOYER_PASSPHRASE, DEPLOYER_PRIVATE_KEY


@click.command()
@click.option("--alias", help="Keystore alias for the deployer", default="deployer")
def cli(alias):
    """Imports the deployer private key from the environment into the ape keystore."""
    try:
        passphrase = os.environ[DEPLOYER_PASSPHRASE]
        private_key = os.environ[DEPLOYER_PRIVATE_KEY]
    except KeyError:
        raise click.ClickException(
            "There are missing environment variables. "
            f"Please set {DEPLOYER_PASSPHRASE} and {DEPLOYER_PRIVATE_KEY}."
        )
    account = import_account_from_private_key(alias, passphrase, private_key)
    print(f"Account imported: {account.address}")


if __name__ == "__main__":
    cli()
