from collections import OrderedDict
from typing import Any, List, NamedTuple, Optional, Tuple

from ape.api import ReceiptAPI
from ape.contracts import ContractInstance
from eth_typing import ChecksumAddress


class DeployedContract(NamedTuple):
    """A contract produced (or reused) by one pipeline step."""

    name: str
    address: ChecksumAddress
    contract: ContractInstance
    receipt: Optional[ReceiptAPI] = None
    reused: bool = False

    @property
    def txn_hash(self) -> Optional[str]:
        if self.receipt is None:
            return None
        return self.receipt.txn_hash


class TransactionRecord(NamedTuple):
    description: str
    txn_hash: str


class PipelineState:
    """
    Contracts and transactions accumulated by a pipeline run.
    Entries are only ever appended; an entry can't be replaced once recorded.
    """

    class DuplicateEntry(KeyError):
        pass

    def __init__(self):
        self._contracts: "OrderedDict[str, DeployedContract]" = OrderedDict()
        self._transactions: List[TransactionRecord] = list()

    def record(self, key: str, deployed: DeployedContract) -> DeployedContract:
        if key in self._contracts:
            existing = self._contracts[key].address
            raise self.DuplicateEntry(f"'{key}' is already recorded at {existing}")
        self._contracts[key] = deployed
        return deployed

    def record_transaction(self, description: str, txn_hash: Any) -> None:
        self._transactions.append(TransactionRecord(description, str(txn_hash)))

    def __getitem__(self, key: str) -> DeployedContract:
        return self._contracts[key]

    def __contains__(self, key: str) -> bool:
        return key in self._contracts

    def get(self, key: str) -> Optional[DeployedContract]:
        return self._contracts.get(key)

    @property
    def contracts(self) -> List[Tuple[str, DeployedContract]]:
        return list(self._contracts.items())

    @property
    def transactions(self) -> List[TransactionRecord]:
        return list(self._transactions)

    def report(self) -> None:
        print("\nDeployment summary")
        for key, deployed in self._contracts.items():
            status = "reused" if deployed.reused else f"tx {deployed.txn_hash}"
            print(f"\t{key}: {deployed.name} at {deployed.address} ({status})")
        print("Transactions")
        for position, record in enumerate(self._transactions, start=1):
            print(f"\t{position}. {record.description}: {record.txn_hash}")
