from typing import Iterable, Optional, Sequence


class DeploymentError(Exception):
    """Base class for errors that abort a deployment pipeline."""

    step: Optional[str] = None


class ConfigurationError(DeploymentError, ValueError):
    """Bad, missing or mismatched deployment input."""


class AssetMismatchError(ConfigurationError):
    """Raised when the underlying vault is backed by a different asset."""

    def __init__(self, vault: str, expected: str, actual: str):
        self.vault = vault
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Underlying vault {vault} holds asset {actual}, "
            f"but ASSET_ADDRESS is {expected}."
        )


class ArtifactNotFound(DeploymentError):
    def __init__(self, contract_name: str, paths_tried: Iterable[str], reason: str = ""):
        self.contract_name = contract_name
        self.paths_tried = list(paths_tried)
        tried = "\n\t".join(self.paths_tried) or "(none)"
        message = f"No usable artifact found for '{contract_name}'."
        if reason:
            message = f"{message} {reason}"
        super().__init__(f"{message}\nTried:\n\t{tried}")


class DeploymentEventMissing(DeploymentError):
    def __init__(self, event_name: str, txn_hash: str):
        self.event_name = event_name
        self.txn_hash = txn_hash
        super().__init__(f"'{event_name}' event not found or missing args in receipt {txn_hash}")


class TransactionFailure(DeploymentError):
    """Raised when a transaction is rejected or reverts."""


class ConfirmationTimeout(TransactionFailure):
    """Raised when a receipt never arrives."""


class VerificationFailure(DeploymentError):
    """Non-fatal; only ever logged by the verifier."""

    def __init__(
        self, contract_name: str, address: str, constructor_args: Sequence, cause: Exception
    ):
        self.contract_name = contract_name
        self.address = address
        self.constructor_args = list(constructor_args)
        self.cause = cause
        super().__init__(
            f"Verification of {contract_name} at {address} failed "
            f"(constructor args: {self.constructor_args}): {cause}"
        )
