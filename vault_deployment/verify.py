from typing import Any, Optional, Sequence

from ape import networks
from ape.api import ExplorerAPI
from ape.contracts import ContractInstance
from ape.logging import logger

from vault_deployment.constants import ALREADY_VERIFIED_MARKERS
from vault_deployment.exceptions import VerificationFailure


def _is_already_verified(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in ALREADY_VERIFIED_MARKERS)


class ContractVerifier:
    """
    Best-effort source verification through the network's block explorer.
    Never raises; every outcome is reported and the pipeline carries on.
    """

    def __init__(self, enabled: bool = True, explorer: Optional[ExplorerAPI] = None):
        self.enabled = enabled
        self._explorer = explorer

    def _get_explorer(self) -> Optional[ExplorerAPI]:
        if self._explorer is not None:
            return self._explorer
        return networks.provider.network.explorer

    def verify(
        self,
        instance: ContractInstance,
        constructor_args: Sequence[Any] = (),
        name: Optional[str] = None,
    ) -> bool:
        contract_name = name or instance.contract_type.name
        if not self.enabled:
            print(f"(i) Verification disabled; skipping {contract_name} at {instance.address}")
            return False

        try:
            explorer = self._get_explorer()
            if explorer is None:
                logger.warning(
                    f"No explorer configured for this network; cannot verify "
                    f"{contract_name} at {instance.address}."
                )
                return False

            print(f"(i) Verifying {contract_name} at {instance.address}...")
            explorer.publish_contract(instance.address)
        except Exception as e:
            if _is_already_verified(e):
                print(f"(i) {contract_name} at {instance.address} is already verified.")
                return True
            failure = VerificationFailure(contract_name, instance.address, constructor_args, e)
            logger.warning(str(failure))
            return False

        print(f"(i) Verified {contract_name} at {instance.address}.")
        return True
