import json
from collections import defaultdict
from pathlib import Path
from typing import List, NamedTuple

from eth_typing import ABI, ChecksumAddress
from eth_utils import to_checksum_address

from vault_deployment.state import DeployedContract, PipelineState
from vault_deployment.utils import _load_json

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single entry in a contract registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str


def _get_abi(deployed: DeployedContract) -> ABI:
    """Returns the ABI of a deployed contract instance."""
    contract_abi = list()
    for entry in deployed.contract.contract_type.abi:
        contract_abi.append(json.loads(entry.model_dump_json(by_alias=True)))
    return contract_abi


def _get_entry(key: str, deployed: DeployedContract, chain_id: ChainId) -> RegistryEntry:
    receipt = deployed.receipt
    return RegistryEntry(
        chain_id=chain_id,
        name=key,
        address=to_checksum_address(deployed.address),
        abi=_get_abi(deployed),
        tx_hash=str(receipt.txn_hash),
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
    )


def _get_entries(state: PipelineState, chain_id: ChainId) -> List[RegistryEntry]:
    """Returns registry entries for every contract deployed (not reused) by a pipeline run."""
    entries = list()
    for key, deployed in state.contracts:
        if deployed.reused or deployed.receipt is None:
            continue
        entries.append(_get_entry(key, deployed, chain_id))
    return entries


def _entry_data(entry: RegistryEntry) -> dict:
    abi = sorted(entry.abi, key=lambda item: (item["type"], item.get("name", "")))
    return {
        "address": entry.address,
        "abi": abi,
        "tx_hash": entry.tx_hash,
        "block_number": int(entry.block_number),
        "deployer": entry.deployer,
    }


def write_registry(entries: List[RegistryEntry], filepath: Path) -> Path:
    """
    Writes registry entries keyed by chain id, then pipeline key. Entries for a
    chain already present in the file go to a sibling '.unmerged.json' file.
    """
    data = defaultdict(dict)
    for entry in sorted(entries, key=lambda entry: entry.name):
        data[str(entry.chain_id)][entry.name] = _entry_data(entry)

    filepath.parent.mkdir(parents=True, exist_ok=True)
    if filepath.exists():
        existing_data = _load_json(filepath)
        if data.keys() & existing_data.keys():
            filepath = filepath.with_suffix(".unmerged.json")
            print(f"(i) Chain already present in registry; writing to {filepath} instead.")
        else:
            existing_data.update(data)
            data = existing_data

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
    return filepath


def registry_from_pipeline(state: PipelineState, chain_id: ChainId, output_filepath: Path) -> Path:
    """Creates a contract registry from the contracts deployed by a pipeline run."""
    entries = _get_entries(state=state, chain_id=chain_id)
    if not entries:
        print("(i) Nothing deployed; no registry written.")
        return output_filepath
    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath
