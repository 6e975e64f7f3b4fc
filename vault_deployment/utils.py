import json
import os
from pathlib import Path

from ape import networks, project
from ape.contracts import ContractContainer
from ape.logging import logger

from vault_deployment.constants import ETHERSCAN_API_KEY_ENVVAR, LOCAL_NETWORKS


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def is_local_network() -> bool:
    return networks.provider.network.name in LOCAL_NETWORKS


def get_chain_id() -> int:
    return networks.provider.network.chain_id


def check_etherscan_plugin() -> bool:
    """
    Checks that the ape-etherscan plugin is installed and that
    the API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return False
    try:
        import ape_etherscan  # noqa: F401
    except ImportError:
        logger.warning("ape-etherscan plugin is not installed; skipping verification.")
        return False
    if not os.environ.get(ETHERSCAN_API_KEY_ENVVAR):
        logger.warning(f"{ETHERSCAN_API_KEY_ENVVAR} is not set; skipping verification.")
        return False
    return True


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def print_deployment_info(account_address: str, verify: bool) -> None:
    print(
        f"Account: {account_address}",
        f"Verify: {verify}",
        f"Ecosystem: {networks.provider.network.ecosystem.name}",
        f"Network: {networks.provider.network.name}",
        f"Chain ID: {networks.provider.network.chain_id}",
        f"Gas Price: {networks.provider.gas_price}",
        sep="\n",
    )
