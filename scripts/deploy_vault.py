#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from vault_deployment.config import VaultConfig, load_environment
from vault_deployment.options import (
    artifacts_root_option,
    autosign_option,
    env_file_option,
    registry_filepath_option,
    verify_option,
)
from vault_deployment.orchestrator import VaultDeployment
from vault_deployment.runner import resolve_config, run_pipeline


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@env_file_option
@verify_option
@autosign_option
@artifacts_root_option
@registry_filepath_option
def cli(network, env_file, verify, autosign, artifacts_root, registry_filepath):
    """
    Deploys a vault and an accountant through their factories, configures
    both, then hands vault management over to the governance factory.

    ape run deploy_vault --network ethereum:sepolia:node --env-file .env
    """
    environ = load_environment(env_file)
    config = resolve_config(VaultConfig.from_environ, environ)
    run_pipeline(
        VaultDeployment,
        config=config,
        verify=verify,
        autosign=autosign,
        artifacts_root=artifacts_root,
        registry_filepath=registry_filepath,
    )


if __name__ == "__main__":
    cli()
