import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

from ape.contracts import ContractContainer
from ape.exceptions import ApeException
from ethpm_types import ContractType

from vault_deployment.constants import APE_PROJECT_SOURCE, ARTIFACT_LAYOUTS, PROJECT_ROOT
from vault_deployment.exceptions import ArtifactNotFound
from vault_deployment.utils import _load_json, get_contract_container


class ArtifactDescriptor(NamedTuple):
    """A resolved compiled contract: ABI plus deployment bytecode."""

    name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source: str

    @property
    def deployable(self) -> bool:
        return self.bytecode not in ("", "0x")

    def to_contract_type(self) -> ContractType:
        return ContractType.model_validate(
            {
                "contractName": self.name,
                "abi": self.abi,
                "deploymentBytecode": {"bytecode": self.bytecode},
            }
        )


def _read_bytecode(data: Dict[str, Any]) -> Optional[str]:
    bytecode = data.get("bytecode")
    if isinstance(bytecode, dict):
        # foundry: {"object": "0x...", "sourceMap": ..., "linkReferences": ...}
        bytecode = bytecode.get("object")
    if not isinstance(bytecode, str):
        return None
    if not bytecode.startswith("0x"):
        bytecode = f"0x{bytecode}"
    return bytecode


def read_artifact(contract_name: str, filepath: Path) -> Optional[ArtifactDescriptor]:
    """Returns a descriptor for a build output file, or None if it is absent or unusable."""
    if not filepath.is_file():
        return None
    try:
        data = _load_json(filepath)
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict) or not isinstance(data.get("abi"), list):
        return None
    bytecode = _read_bytecode(data)
    if bytecode is None:
        return None
    return ArtifactDescriptor(
        name=contract_name, abi=data["abi"], bytecode=bytecode, source=str(filepath)
    )


def _descriptor_from_container(
    contract_name: str, container: ContractContainer
) -> ArtifactDescriptor:
    contract_type = container.contract_type
    abi = [json.loads(entry.model_dump_json(by_alias=True)) for entry in contract_type.abi]
    bytecode = contract_type.get_deployment_bytecode() or b""
    return ArtifactDescriptor(
        name=contract_name,
        abi=abi,
        bytecode=f"0x{bytes(bytecode).hex()}",
        source=APE_PROJECT_SOURCE,
    )


class ArtifactLocator:
    """
    Resolves compiled contracts across the hardhat and foundry output
    directories (in that order), falling back to the ape project.
    """

    def __init__(
        self,
        root: Path = PROJECT_ROOT,
        layouts: Tuple[Tuple[str, str, str], ...] = ARTIFACT_LAYOUTS,
        fallback: Optional[Callable[[str], ContractContainer]] = get_contract_container,
    ):
        self.root = Path(root)
        self.layouts = layouts
        self.fallback = fallback
        self._cache: Dict[str, ArtifactDescriptor] = dict()

    def candidate_paths(self, contract_name: str) -> Iterator[Path]:
        """Yields candidate artifact files in priority order, without duplicates."""
        artifact_filename = Path(f"{contract_name}.sol") / f"{contract_name}.json"
        seen = set()
        for _toolchain, output_dir, source_dir in self.layouts:
            output_root = self.root / output_dir
            canonical = output_root / source_dir / artifact_filename
            candidates = [canonical]
            if output_root.is_dir():
                candidates.extend(sorted(output_root.glob(f"**/{artifact_filename}")))
            for candidate in candidates:
                if candidate in seen:
                    continue
                seen.add(candidate)
                yield candidate

    def locate(self, contract_name: str) -> ArtifactDescriptor:
        if contract_name in self._cache:
            return self._cache[contract_name]

        tried = list()
        descriptor = None
        for candidate in self.candidate_paths(contract_name):
            tried.append(str(candidate))
            descriptor = read_artifact(contract_name, candidate)
            if descriptor:
                break

        if descriptor is None and self.fallback is not None:
            tried.append(f"{APE_PROJECT_SOURCE}:{contract_name}")
            try:
                container = self.fallback(contract_name)
            except (AttributeError, ValueError, ApeException):
                container = None
            if container is not None:
                descriptor = _descriptor_from_container(contract_name, container)

        if descriptor is None:
            raise ArtifactNotFound(contract_name, tried)

        print(f"(i) Using {contract_name} artifact from {descriptor.source}")
        self._cache[contract_name] = descriptor
        return descriptor

    def container(self, contract_name: str, deployable: bool = False) -> ContractContainer:
        descriptor = self.locate(contract_name)
        if deployable and not descriptor.deployable:
            raise ArtifactNotFound(
                contract_name, [descriptor.source], reason="Artifact has no deployable bytecode."
            )
        return ContractContainer(descriptor.to_contract_type())
