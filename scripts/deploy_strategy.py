#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from vault_deployment.config import StrategyConfig, load_environment
from vault_deployment.options import (
    artifacts_root_option,
    autosign_option,
    env_file_option,
    event_emitter_impl_option,
    registry_filepath_option,
    verify_option,
)
from vault_deployment.orchestrator import StrategyDeployment
from vault_deployment.runner import resolve_config, run_pipeline


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@env_file_option
@event_emitter_impl_option
@verify_option
@autosign_option
@artifacts_root_option
@registry_filepath_option
def cli(
    network, env_file, event_emitter_impl, verify, autosign, artifacts_root, registry_filepath
):
    """
    Deploys the TermVaultEventEmitter proxy and a Strategy, then runs the
    strategy's post-deployment configuration.

    Pass --event-emitter-impl (or set EVENT_EMITTER_IMPL_ADDRESS) to reuse an
    implementation deployed by an earlier, interrupted run.

    ape run deploy_strategy --network ethereum:sepolia:node --env-file .env
    """
    environ = load_environment(env_file)
    config = resolve_config(
        StrategyConfig.from_environ, environ, event_emitter_impl=event_emitter_impl
    )
    run_pipeline(
        StrategyDeployment,
        config=config,
        verify=verify,
        autosign=autosign,
        artifacts_root=artifacts_root,
        registry_filepath=registry_filepath,
    )


if __name__ == "__main__":
    cli()
