from pathlib import Path

import click

from vault_deployment.types import ChecksumAddress

env_file_option = click.option(
    "--env-file",
    "-e",
    help="Optional .env file; its values override the process environment.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

event_emitter_impl_option = click.option(
    "--event-emitter-impl",
    help="Existing TermVaultEventEmitter implementation to reuse instead of deploying one.",
    type=ChecksumAddress(),
    required=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish deployed contracts to the network's block explorer.",
    default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without prompting for confirmation.",
    is_flag=True,
    default=False,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    help="Write a registry of the deployed contracts to this file.",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)

artifacts_root_option = click.option(
    "--artifacts-root",
    help="Directory holding the hardhat 'artifacts/' and foundry 'out/' build outputs.",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=Path.cwd(),
)
