from pathlib import Path
from typing import Callable, Optional, Type

import click

from vault_deployment.artifacts import ArtifactLocator
from vault_deployment.exceptions import DeploymentError
from vault_deployment.orchestrator import Pipeline, stage
from vault_deployment.registry import registry_from_pipeline
from vault_deployment.sequencer import TransactionSequencer
from vault_deployment.state import PipelineState
from vault_deployment.utils import check_etherscan_plugin, get_chain_id, print_deployment_info
from vault_deployment.verify import ContractVerifier


def _fail(error: DeploymentError) -> click.ClickException:
    return click.ClickException(f"Deployment failed at step '{error.step}': {error}")


def resolve_config(resolver: Callable, *args, **kwargs):
    """Runs the ResolveConfig stage; a bad configuration ends the run before any transaction."""
    try:
        with stage("ResolveConfig"):
            return resolver(*args, **kwargs)
    except DeploymentError as e:
        raise _fail(e) from e


def run_pipeline(
    pipeline_class: Type[Pipeline],
    config,
    verify: bool,
    autosign: bool,
    artifacts_root: Path,
    registry_filepath: Optional[Path] = None,
) -> PipelineState:
    sequencer = TransactionSequencer(autosign=autosign)
    if verify:
        verify = check_etherscan_plugin()
    print_deployment_info(sequencer.address, verify)

    pipeline = pipeline_class(
        config=config,
        sequencer=sequencer,
        locator=ArtifactLocator(root=artifacts_root),
        verifier=ContractVerifier(enabled=verify),
    )
    try:
        state = pipeline.run()
    except DeploymentError as e:
        raise _fail(e) from e

    if registry_filepath:
        registry_from_pipeline(state, chain_id=get_chain_id(), output_filepath=registry_filepath)
    return state
