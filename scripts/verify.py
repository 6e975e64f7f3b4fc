import click
from ape.cli import ConnectedProviderCommand, network_option

from vault_deployment.artifacts import ArtifactLocator
from vault_deployment.options import artifacts_root_option
from vault_deployment.types import ChecksumAddress
from vault_deployment.utils import check_etherscan_plugin
from vault_deployment.verify import ContractVerifier


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--contract-name",
    "-c",
    help="Name of the contract to verify",
    type=click.STRING,
    required=True,
)
@click.option(
    "--address",
    "-a",
    "addresses",
    help="Deployed address of the contract",
    type=ChecksumAddress(),
    required=True,
    multiple=True,
)
@artifacts_root_option
def cli(network, contract_name, addresses, artifacts_root):
    """Verify already deployed contracts; failures are reported, never fatal."""
    if not check_etherscan_plugin():
        raise click.UsageError("Verification is not available on this network.")

    locator = ArtifactLocator(root=artifacts_root)
    container = locator.container(contract_name)
    verifier = ContractVerifier()
    for address in addresses:
        verifier.verify(container.at(address), name=contract_name)


if __name__ == "__main__":
    cli()
