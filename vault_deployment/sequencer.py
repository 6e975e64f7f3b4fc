import threading
import typing
from typing import Any, Dict, List

from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.exceptions import ApeException, TransactionNotFoundError
from ethpm_types import MethodABI
from web3.auto import w3
from web3.exceptions import TimeExhausted

from vault_deployment.confirm import _continue
from vault_deployment.exceptions import ConfirmationTimeout, TransactionFailure

_TIMEOUT_ERRORS = (TransactionNotFoundError, TimeExhausted)


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


class TransactionSequencer:
    """
    Represents an ape account whose outgoing transactions are nonce-sequenced
    locally, so several can be issued back-to-back without racing.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        set_autosign = getattr(self._account, "set_autosign", None)
        if set_autosign is not None:
            set_autosign(autosign)

        self._lock = threading.Lock()
        self._nonce: typing.Optional[int] = None

    @property
    def account(self) -> AccountAPI:
        return self._account

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def autosign(self) -> bool:
        return self._autosign

    def _submit(self, submit: typing.Callable[[int], Any]) -> Any:
        """Assigns the next nonce and submits; a failed submission forces a resync."""
        with self._lock:
            if self._nonce is None:
                self._nonce = self._account.nonce
            nonce = self._nonce
            try:
                result = submit(nonce)
            except Exception:
                self._nonce = None
                raise
            self._nonce = nonce + 1
            return result

    def issue(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        try:
            named_args = _validate_method_args(method_abis=method.abis, args=args)
        except ValueError as e:
            raise TransactionFailure(f"{method.contract.contract_type.name}.{method}: {e}") from e
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        try:
            receipt = self._submit(lambda nonce: method(*args, sender=self._account, nonce=nonce))
        except _TIMEOUT_ERRORS as e:
            raise ConfirmationTimeout(f"Timed out waiting for {message.strip()}: {e}") from e
        except ApeException as e:
            raise TransactionFailure(f"{message.strip()} failed: {e}") from e

        print(f"(i) Transaction hash: {receipt.txn_hash}")
        return receipt

    def confirm(self, receipt: ReceiptAPI) -> ReceiptAPI:
        try:
            receipt.await_confirmations()
        except _TIMEOUT_ERRORS as e:
            raise ConfirmationTimeout(
                f"Timed out waiting for confirmation of {receipt.txn_hash}: {e}"
            ) from e
        if receipt.failed:
            raise TransactionFailure(f"Transaction {receipt.txn_hash} reverted.")
        return receipt

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        return self.confirm(self.issue(method, *args))

    def deploy(self, container: ContractContainer, *args) -> ContractInstance:
        contract_name = container.contract_type.name
        try:
            instance = self._submit(
                lambda nonce: self._account.deploy(container, *args, nonce=nonce, publish=False)
            )
        except _TIMEOUT_ERRORS as e:
            raise ConfirmationTimeout(f"Timed out deploying {contract_name}: {e}") from e
        except ApeException as e:
            raise TransactionFailure(f"Deployment of {contract_name} failed: {e}") from e
        return instance
