import itertools
import json
from types import SimpleNamespace

import pytest
from ape.exceptions import ApeException
from eth_utils import to_checksum_address
from web3.exceptions import TimeExhausted

from vault_deployment.config import StrategyConfig, VaultConfig
from vault_deployment.sequencer import TransactionSequencer
from vault_deployment.verify import ContractVerifier

# Common constants
STARTING_NONCE = 7
CHAIN_ID = 11155111


def address(n: int) -> str:
    return to_checksum_address(f"0x{n:040x}")


DEPLOYER = address(0xDE9)
ASSET = address(0xA55E7)
YEARN_VAULT = address(0x7EA4)
DISCOUNT_RATE_ADAPTER = address(0xADA)
TERM_CONTROLLER = address(0xC0)
ADMIN = address(0xAD)
DEVOPS = address(0xDE)
MANAGEMENT = address(0x3A4A)
KEEPER = address(0x4EE)
FEE_RECIPIENT = address(0xFEE)
GOVERNOR = address(0x609)
EVENT_EMITTER_IMPL = address(0xE1)
COLLATERAL_TOKENS = [address(0xC1), address(0xC2), address(0xC3)]
VAULT_FACTORY = address(0xFAC)
ACCOUNTANT_FACTORY = address(0xACC)
GOVERNANCE_FACTORY = address(0x60F)
STRATEGY_ADDER = address(0x5AD)

# Method signatures of the contracts driven by the pipelines
METHOD_INPUTS = {
    "initialize": ["address", "address"],
    "pairVaultContract": ["address"],
    "asset": [],
    "setProfitMaxUnlockTime": ["uint256"],
    "setPendingManagement": ["address"],
    "setKeeper": ["address"],
    "setPerformanceFeeRecipient": ["address"],
    "setCollateralTokenParams": ["address", "uint256"],
    "setPendingGovernor": ["address"],
    "deploy_new_vault": ["address", "string", "string", "address", "uint256"],
    "newAccountant": [],
    "set_role": ["address", "uint256"],
    "set_accountant": ["address"],
    "set_deposit_limit": ["uint256"],
    "set_use_default_queue": ["bool"],
    "transfer_role_manager": ["address"],
    "updateDefaultConfig": ["uint16"] * 6,
    "addVault": ["address"],
    "setFutureFeeManager": ["address"],
    "setFeeRecipient": ["address"],
}

FACTORY_EVENTS = {
    "deploy_new_vault": ("NewVault", "vault_address"),
    "newAccountant": ("NewAccountant", "newAccountant"),
}


def strategy_environ(**overrides):
    environ = {
        "ASSET_ADDRESS": ASSET,
        "YEARN_VAULT_ADDRESS": YEARN_VAULT,
        "DISCOUNT_RATE_ADAPTER_ADDRESS": DISCOUNT_RATE_ADAPTER,
        "TERM_CONTROLLER_ADDRESS": TERM_CONTROLLER,
        "DISCOUNT_RATE_MARKUP": "2500",
        "TIME_TO_MATURITY_THRESHOLD": "3888000",
        "REPOTOKEN_CONCENTRATION_LIMIT": "100000000000000000",
        "NEW_REQUIRED_RESERVE_RATIO": "10000000000000000",
        "ADMIN_ADDRESS": ADMIN,
        "DEVOPS_ADDRESS": DEVOPS,
        "STRATEGY_NAME": "Term USDC Strategy,tsUSDC",
        "PROFIT_MAX_UNLOCK_TIME": "86400",
        "STRATEGY_MANAGEMENT_ADDRESS": MANAGEMENT,
        "KEEPER_ADDRESS": KEEPER,
        "FEE_RECIPIENT": FEE_RECIPIENT,
        "GOVERNOR_ROLE_ADDRESS": GOVERNOR,
        "COLLATERAL_TOKEN_ADDRESSES": ",".join(COLLATERAL_TOKENS[:2]),
        "MIN_COLLATERAL_RATIOS": "1200000000000000000,1500000000000000000",
    }
    environ.update(overrides)
    return environ


def vault_environ(**overrides):
    environ = {
        "VAULT_FACTORY": VAULT_FACTORY,
        "ACCOUNTANT_FACTORY": ACCOUNTANT_FACTORY,
        "VAULT_GOVERNANCE_FACTORY": GOVERNANCE_FACTORY,
        "ASSET_ADDRESS": ASSET,
        "VAULT_NAME": "Term USDC Vault",
        "VAULT_SYMBOL": "tvUSDC",
        "PROFIT_MAX_UNLOCK_TIME": "86400",
        "KEEPER_ADDRESS": KEEPER,
        "STRATEGY_ADDER": STRATEGY_ADDER,
        "FEE_RECIPIENT": FEE_RECIPIENT,
        "DEPOSIT_LIMIT": "1000000000000",
        "DEFAULT_PERFORMANCE": "1000",
        "DEFAULT_MAX_FEE": "500",
        "DEFAULT_MAX_GAIN": "20000",
        "DEFAULT_MAX_LOSS": "1",
    }
    environ.update(overrides)
    return environ


# In-memory ledger


class FakeAbiEntry:
    def __init__(self, name, inputs):
        self.name = name
        self.type = "function"
        self.inputs = [SimpleNamespace(name=f"arg{i}", type=t) for i, t in enumerate(inputs)]

    def model_dump_json(self, by_alias=False):
        return json.dumps(
            {
                "type": self.type,
                "name": self.name,
                "inputs": [{"name": i.name, "type": i.type} for i in self.inputs],
                "outputs": [],
                "stateMutability": "nonpayable",
            }
        )


class FakeLog:
    def __init__(self, event_name, **event_arguments):
        self.event_name = event_name
        self.event_arguments = event_arguments


class FakeReceipt:
    def __init__(self, ledger, txn_hash, block_number, events=(), failed=False):
        self.ledger = ledger
        self.txn_hash = txn_hash
        self.block_number = block_number
        self.events = list(events)
        self.failed = failed
        self.transaction = SimpleNamespace(sender=ledger.deployer)

    def await_confirmations(self):
        if self.txn_hash in self.ledger.timed_out:
            raise TimeExhausted(f"{self.txn_hash} not in chain after 120 seconds")
        return self


class FakeTransaction:
    def __init__(self, nonce, kind, contract, target, args, receipt):
        self.nonce = nonce
        self.kind = kind  # 'deploy' or the method name
        self.contract = contract
        self.target = target
        self.args = args
        self.receipt = receipt

    def __repr__(self):
        return f"<{self.nonce}: {self.contract}.{self.kind}{self.args}>"


class FakeMethod:
    def __init__(self, instance, name):
        self.contract = instance
        self.name = name
        self.abis = [FakeAbiEntry(name, METHOD_INPUTS[name])]

    def __str__(self):
        return f"{self.name}({', '.join(METHOD_INPUTS[self.name])})"

    def encode_input(self, *args):
        return f"{self.name}:{','.join(map(str, args))}".encode()

    def __call__(self, *args, sender=None, nonce=None):
        ledger = self.contract.ledger
        if sender is None:
            return ledger.view(self.contract, self.name, args)
        return ledger.submit(
            nonce, self.name, self.contract.contract_type.name, self.contract.address, args
        )


class FakeInstance:
    def __init__(self, ledger, contract_name, address, receipt=None):
        self.ledger = ledger
        self.contract_type = SimpleNamespace(
            name=contract_name,
            abi=[FakeAbiEntry(name, inputs) for name, inputs in METHOD_INPUTS.items()],
        )
        self.address = address
        self.receipt = receipt

    def __getattr__(self, name):
        if name in METHOD_INPUTS:
            return FakeMethod(self, name)
        raise AttributeError(name)


class FakeContainer:
    def __init__(self, ledger, contract_name):
        self.ledger = ledger
        self.contract_type = SimpleNamespace(name=contract_name)

    def at(self, address):
        return FakeInstance(self.ledger, self.contract_type.name, address)


class FakeLocator:
    def __init__(self, ledger):
        self.ledger = ledger
        self.requested = list()

    def container(self, contract_name, deployable=False):
        self.requested.append((contract_name, deployable))
        return FakeContainer(self.ledger, contract_name)


class FakeLedger:
    """Records every submission in order and checks nonces like a real node would."""

    def __init__(self):
        self.deployer = DEPLOYER
        self.account_nonce = STARTING_NONCE
        self.transactions = list()
        self.vault_asset = ASSET
        self.rejected = set()  # method names (or contract names for deploys) to reject
        self.reverted = set()  # method names whose receipts fail
        self.timed_out = set()  # txn hashes whose confirmation never arrives
        self.emit_factory_events = True
        self._addresses = itertools.count(0x1000)
        self._hashes = itertools.count(1)

    def new_address(self):
        return address(next(self._addresses))

    def _receipt(self, events=(), failed=False):
        n = next(self._hashes)
        return FakeReceipt(self, f"0x{n:064x}", block_number=100 + n, events=events, failed=failed)

    def _check_nonce(self, nonce, name):
        if name in self.rejected:
            raise ApeException(f"{name} rejected by node")
        if nonce != self.account_nonce:
            raise ApeException(f"nonce {nonce} does not match expected {self.account_nonce}")

    def view(self, instance, name, args):
        if name == "asset":
            return self.vault_asset
        raise AssertionError(f"unexpected call {name}")

    def submit(self, nonce, name, contract_name, target, args):
        self._check_nonce(nonce, name)
        events = []
        if name in FACTORY_EVENTS and self.emit_factory_events:
            event_name, argument = FACTORY_EVENTS[name]
            events.append(FakeLog(event_name, **{argument: self.new_address().lower()}))
        receipt = self._receipt(events=events, failed=name in self.reverted)
        self.transactions.append(FakeTransaction(nonce, name, contract_name, target, args, receipt))
        self.account_nonce += 1
        return receipt

    def deploy(self, container, args, nonce):
        contract_name = container.contract_type.name
        self._check_nonce(nonce, contract_name)
        receipt = self._receipt()
        instance = FakeInstance(self, contract_name, self.new_address(), receipt=receipt)
        self.transactions.append(
            FakeTransaction(nonce, "deploy", contract_name, instance.address, args, receipt)
        )
        self.account_nonce += 1
        return instance

    # helpers for assertions

    def deployments(self, contract_name=None):
        return [
            tx
            for tx in self.transactions
            if tx.kind == "deploy" and contract_name in (None, tx.contract)
        ]

    def calls(self):
        return [tx.kind for tx in self.transactions if tx.kind != "deploy"]


class FakeAccount:
    def __init__(self, ledger):
        self.ledger = ledger
        self.address = ledger.deployer
        self.autosign = None

    @property
    def nonce(self):
        return self.ledger.account_nonce

    def set_autosign(self, enabled):
        self.autosign = enabled

    def deploy(self, container, *args, nonce=None, publish=False):
        assert publish is False
        return self.ledger.deploy(container, args, nonce)


class FakeExplorer:
    def __init__(self, error=None):
        self.error = error
        self.published = list()

    def publish_contract(self, address):
        self.published.append(address)
        if self.error is not None:
            raise self.error


# Fixtures


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def deployer_account(ledger):
    return FakeAccount(ledger)


@pytest.fixture
def sequencer(deployer_account):
    return TransactionSequencer(account=deployer_account, autosign=True)


@pytest.fixture
def locator(ledger):
    return FakeLocator(ledger)


@pytest.fixture
def explorer():
    return FakeExplorer()


@pytest.fixture
def verifier(explorer):
    return ContractVerifier(explorer=explorer)


@pytest.fixture
def strategy_config():
    return StrategyConfig.from_environ(strategy_environ())


@pytest.fixture
def vault_config():
    return VaultConfig.from_environ(vault_environ())
