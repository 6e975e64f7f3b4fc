import typing
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Tuple

from ape.api import ReceiptAPI
from ape.contracts.base import ContractInstance, ContractTransactionHandler
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from vault_deployment.artifacts import ArtifactLocator
from vault_deployment.config import StrategyConfig, VaultConfig
from vault_deployment.confirm import _confirm_resolution
from vault_deployment.constants import (
    ACCOUNTANT,
    ACCOUNTANT_FACTORY,
    ALL_ROLES,
    DEFAULT_MANAGEMENT_FEE,
    DEFAULT_REFUND_RATIO,
    ERC4626,
    EVENT_EMITTER,
    KEEPER_ROLES,
    NEW_ACCOUNTANT_EVENT,
    NEW_VAULT_EVENT,
    NO_ROLES,
    PROXY,
    STRATEGY,
    STRATEGY_ADDER_ROLES,
    TOKENIZED_STRATEGY,
    VAULT,
    VAULT_FACTORY,
)
from vault_deployment.exceptions import AssetMismatchError, DeploymentError, DeploymentEventMissing
from vault_deployment.sequencer import TransactionSequencer
from vault_deployment.state import DeployedContract, PipelineState
from vault_deployment.verify import ContractVerifier

Step = Tuple[str, Callable[[], Any]]


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Runs one pipeline stage; a deployment error escaping it is tagged with the stage name."""
    print(f"\n=== {name} ===")
    try:
        yield
    except DeploymentError as e:
        if e.step is None:
            e.step = name
        raise


def created_address(receipt: ReceiptAPI, event_name: str, argument: str) -> ChecksumAddress:
    """Extracts the address of a factory-created contract from the receipt's creation event."""
    for log in receipt.events:
        if log.event_name != event_name:
            continue
        value = log.event_arguments.get(argument)
        if value:
            return to_checksum_address(value)
    raise DeploymentEventMissing(event_name, str(receipt.txn_hash))


class Pipeline(ABC):
    """
    A fixed, linear sequence of deployment stages. Every state change goes
    through the sequencer; every deployment is followed by best-effort
    verification. There is no rollback: a failed stage aborts the run and
    leaves earlier deployments in place.
    """

    NAME = "pipeline"

    def __init__(
        self,
        config: typing.NamedTuple,
        sequencer: TransactionSequencer,
        locator: ArtifactLocator,
        verifier: ContractVerifier,
    ):
        self.config = config
        self.sequencer = sequencer
        self.locator = locator
        self.verifier = verifier
        self.state = PipelineState()

    @abstractmethod
    def steps(self) -> List[Step]:
        raise NotImplementedError

    def run(self) -> PipelineState:
        print(f"Starting {self.NAME} deployment from {self.sequencer.address}")
        if not self.sequencer.autosign:
            _confirm_resolution(self.config._asdict(), self.NAME)
        for name, step in self.steps():
            with stage(name):
                step()
        with stage("Done"):
            self.state.report()
        return self.state

    def _at(self, contract_name: str, address: str) -> ContractInstance:
        return self.locator.container(contract_name).at(address)

    def _deploy(
        self, key: str, contract_name: str, *args, bind_as: typing.Optional[str] = None
    ) -> DeployedContract:
        container = self.locator.container(contract_name, deployable=True)
        instance = self.sequencer.deploy(container, *args)
        receipt = instance.receipt
        print(f"Deployed {contract_name} to: {instance.address}")
        self.state.record_transaction(f"deploy {contract_name}", receipt.txn_hash)

        self.verifier.verify(instance, args, name=contract_name)

        contract = instance
        if bind_as is not None:
            contract = self._at(bind_as, instance.address)
        deployed = DeployedContract(
            name=bind_as or contract_name,
            address=instance.address,
            contract=contract,
            receipt=receipt,
        )
        return self.state.record(key, deployed)

    def _transact(
        self, description: str, method: ContractTransactionHandler, *args
    ) -> ReceiptAPI:
        receipt = self.sequencer.transact(method, *args)
        self.state.record_transaction(description, receipt.txn_hash)
        return receipt


class StrategyDeployment(Pipeline):
    """Event emitter proxy + strategy, then the strategy's post-deployment configuration."""

    NAME = "strategy"

    config: StrategyConfig

    def steps(self) -> List[Step]:
        return [
            ("DeployOrReuseEventEmitter", self.deploy_event_emitter),
            ("ValidateUnderlyingAsset", self.check_underlying_asset),
            ("DeployStrategy", self.deploy_strategy),
            ("ConfigurePostDeploy", self.configure_strategy),
        ]

    def deploy_event_emitter(self) -> DeployedContract:
        impl_address = self.config.event_emitter_impl
        if impl_address:
            print(f"(i) Reusing existing {EVENT_EMITTER} implementation at {impl_address}")
            impl = self.state.record(
                "event_emitter_impl",
                DeployedContract(
                    name=EVENT_EMITTER,
                    address=impl_address,
                    contract=self._at(EVENT_EMITTER, impl_address),
                    reused=True,
                ),
            )
        else:
            impl = self._deploy("event_emitter_impl", EVENT_EMITTER)

        # the proxy runs initialize() in its constructor
        init_data = impl.contract.initialize.encode_input(self.config.admin, self.config.devops)
        emitter = self._deploy(
            "event_emitter", PROXY, impl.address, init_data, bind_as=EVENT_EMITTER
        )
        return emitter

    def check_underlying_asset(self) -> None:
        vault = self._at(ERC4626, self.config.yearn_vault)
        underlying_asset = str(vault.asset())
        if underlying_asset.lower() != self.config.asset.lower():
            raise AssetMismatchError(
                vault=self.config.yearn_vault,
                expected=self.config.asset,
                actual=underlying_asset,
            )
        print(f"(i) Underlying vault {self.config.yearn_vault} holds {underlying_asset}")

    def strategy_params(self) -> tuple:
        config = self.config
        return (
            config.asset,
            config.yearn_vault,
            config.discount_rate_adapter,
            self.state["event_emitter"].address,
            self.sequencer.address,
            config.term_controller,
            config.repo_token_concentration_limit,
            config.time_to_maturity_threshold,
            config.required_reserve_ratio,
            config.discount_rate_markup,
        )

    def deploy_strategy(self) -> DeployedContract:
        return self._deploy(
            "strategy",
            STRATEGY,
            self.config.strategy_name,
            self.config.strategy_symbol,
            self.strategy_params(),
        )

    def configure_strategy(self) -> None:
        config = self.config
        strategy = self.state["strategy"].contract
        tokenized_strategy = self._at(TOKENIZED_STRATEGY, strategy.address)
        event_emitter = self.state["event_emitter"].contract

        self._transact(
            "setProfitMaxUnlockTime",
            tokenized_strategy.setProfitMaxUnlockTime,
            config.profit_max_unlock_time,
        )
        self._transact(
            "setPendingManagement", tokenized_strategy.setPendingManagement, config.management
        )
        print("Set pending management to:", config.management)
        self._transact("setKeeper", tokenized_strategy.setKeeper, config.keeper)
        self._transact(
            "setPerformanceFeeRecipient",
            tokenized_strategy.setPerformanceFeeRecipient,
            config.fee_recipient,
        )

        self._transact("pairVaultContract", event_emitter.pairVaultContract, strategy.address)
        print("Paired strategy with event emitter")

        for token, ratio in config.collateral_params:
            self._transact(
                f"setCollateralTokenParams({token})",
                strategy.setCollateralTokenParams,
                token,
                ratio,
            )

        # governance handoff is always the final transaction
        self._transact("setPendingGovernor", strategy.setPendingGovernor, config.governor)
        print("Set pending governor to:", config.governor)


class VaultDeployment(Pipeline):
    """
    Vault and accountant created through their factories, configured, and
    finally handed over to the governance factory.
    """

    NAME = "vault"

    config: VaultConfig

    def steps(self) -> List[Step]:
        return [
            ("DeployVault", self.deploy_vault),
            ("DeployAccountant", self.deploy_accountant),
            ("ConfigureVault", self.configure_vault),
            ("ConfigureAccountant", self.configure_accountant),
            ("TransferVaultManagement", self.transfer_vault_management),
        ]

    def _deploy_from_factory(
        self,
        key: str,
        contract_name: str,
        event: Tuple[str, str],
        description: str,
        method: ContractTransactionHandler,
        *args,
    ) -> DeployedContract:
        receipt = self._transact(description, method, *args)
        address = created_address(receipt, *event)
        print(f"{contract_name} deployed at address: {address}")
        contract = self._at(contract_name, address)
        deployed = self.state.record(
            key,
            DeployedContract(
                name=contract_name, address=address, contract=contract, receipt=receipt
            ),
        )
        self.verifier.verify(contract, args, name=contract_name)
        return deployed

    def deploy_vault(self) -> DeployedContract:
        config = self.config
        vault_factory = self._at(VAULT_FACTORY, config.vault_factory)
        return self._deploy_from_factory(
            "vault",
            VAULT,
            NEW_VAULT_EVENT,
            "deploy_new_vault",
            vault_factory.deploy_new_vault,
            config.asset,
            config.vault_name,
            config.vault_symbol,
            self.sequencer.address,
            config.profit_max_unlock_time,
        )

    def deploy_accountant(self) -> DeployedContract:
        accountant_factory = self._at(ACCOUNTANT_FACTORY, self.config.accountant_factory)
        return self._deploy_from_factory(
            "accountant",
            ACCOUNTANT,
            NEW_ACCOUNTANT_EVENT,
            "newAccountant",
            accountant_factory.newAccountant,
        )

    def configure_vault(self) -> None:
        config = self.config
        vault = self.state["vault"].contract
        accountant = self.state["accountant"].contract

        self._transact("set_role(deployer)", vault.set_role, self.sequencer.address, int(ALL_ROLES))
        self._transact("set_role(keeper)", vault.set_role, config.keeper, int(KEEPER_ROLES))
        self._transact("set_accountant", vault.set_accountant, accountant.address)
        self._transact("set_deposit_limit", vault.set_deposit_limit, config.deposit_limit)
        self._transact("set_use_default_queue", vault.set_use_default_queue, True)
        self._transact(
            "set_role(strategy_adder)",
            vault.set_role,
            config.strategy_adder,
            int(STRATEGY_ADDER_ROLES),
        )

    def configure_accountant(self) -> None:
        config = self.config
        vault = self.state["vault"].contract
        accountant = self.state["accountant"].contract

        self._transact(
            "updateDefaultConfig",
            accountant.updateDefaultConfig,
            DEFAULT_MANAGEMENT_FEE,
            config.default_performance,
            DEFAULT_REFUND_RATIO,
            config.default_max_fee,
            config.default_max_gain,
            config.default_max_loss,
        )
        self._transact("addVault", accountant.addVault, vault.address)
        self._transact(
            "setFutureFeeManager", accountant.setFutureFeeManager, config.governance_factory
        )
        self._transact("setFeeRecipient", accountant.setFeeRecipient, config.fee_recipient)

    def transfer_vault_management(self) -> None:
        # must stay last: everything above needs the deployer's roles
        vault = self.state["vault"].contract
        self._transact(
            "transfer_role_manager", vault.transfer_role_manager, self.config.governance_factory
        )
        print("Role manager transferred to:", self.config.governance_factory)
        self._transact(
            "set_role(deployer, 0)", vault.set_role, self.sequencer.address, int(NO_ROLES)
        )
        print("Deployer roles removed.")
