from enum import IntFlag
from pathlib import Path

#
# Filesystem
#

PROJECT_ROOT = Path.cwd()

# Build toolchain layouts, in resolution priority order
HARDHAT = "hardhat"
FOUNDRY = "foundry"

ARTIFACT_LAYOUTS = (
    # toolchain, output directory, canonical source subdirectory
    (HARDHAT, "artifacts", "src"),
    (FOUNDRY, "out", ""),
)

APE_PROJECT_SOURCE = "ape project"

#
# Networks
#

LOCAL_NETWORKS = ["local"]
ETHERSCAN_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"

#
# Contracts
#

EVENT_EMITTER = "TermVaultEventEmitter"
PROXY = "ERC1967Proxy"
STRATEGY = "Strategy"
TOKENIZED_STRATEGY = "ITokenizedStrategy"
ERC4626 = "IERC4626"

VAULT_FACTORY = "IVaultFactory"
VAULT = "IVault"
ACCOUNTANT_FACTORY = "AccountantFactory"
ACCOUNTANT = "Accountant"

NEW_VAULT_EVENT = ("NewVault", "vault_address")
NEW_ACCOUNTANT_EVENT = ("NewAccountant", "newAccountant")

ALREADY_VERIFIED_MARKERS = ("already verified",)

#
# Yearn V3 vault roles
#


class Roles(IntFlag):
    ADD_STRATEGY_MANAGER = 1
    REVOKE_STRATEGY_MANAGER = 2
    FORCE_REVOKE_MANAGER = 4
    ACCOUNTANT_MANAGER = 8
    QUEUE_MANAGER = 16
    REPORTING_MANAGER = 32
    DEBT_MANAGER = 64
    MAX_DEBT_MANAGER = 128
    DEPOSIT_LIMIT_MANAGER = 256
    WITHDRAW_LIMIT_MANAGER = 512
    MINIMUM_IDLE_MANAGER = 1024
    PROFIT_UNLOCK_MANAGER = 2048
    DEBT_PURCHASER = 4096
    EMERGENCY_MANAGER = 8192


ALL_ROLES = Roles(16383)
NO_ROLES = Roles(0)
KEEPER_ROLES = Roles.QUEUE_MANAGER | Roles.REPORTING_MANAGER | Roles.DEBT_MANAGER  # 112
STRATEGY_ADDER_ROLES = (
    Roles.ADD_STRATEGY_MANAGER | Roles.DEBT_MANAGER | Roles.MAX_DEBT_MANAGER
)  # 193

#
# Accountant defaults not exposed through configuration
#

DEFAULT_MANAGEMENT_FEE = 0
DEFAULT_REFUND_RATIO = 0

UINT256_MAX = 2**256 - 1

#
# Configuration keys
#

ASSET_ADDRESS = "ASSET_ADDRESS"
YEARN_VAULT_ADDRESS = "YEARN_VAULT_ADDRESS"
DISCOUNT_RATE_ADAPTER_ADDRESS = "DISCOUNT_RATE_ADAPTER_ADDRESS"
TERM_CONTROLLER_ADDRESS = "TERM_CONTROLLER_ADDRESS"
DISCOUNT_RATE_MARKUP = "DISCOUNT_RATE_MARKUP"
TIME_TO_MATURITY_THRESHOLD = "TIME_TO_MATURITY_THRESHOLD"
REPOTOKEN_CONCENTRATION_LIMIT = "REPOTOKEN_CONCENTRATION_LIMIT"
NEW_REQUIRED_RESERVE_RATIO = "NEW_REQUIRED_RESERVE_RATIO"
ADMIN_ADDRESS = "ADMIN_ADDRESS"
DEVOPS_ADDRESS = "DEVOPS_ADDRESS"
STRATEGY_NAME = "STRATEGY_NAME"
PROFIT_MAX_UNLOCK_TIME = "PROFIT_MAX_UNLOCK_TIME"
STRATEGY_MANAGEMENT_ADDRESS = "STRATEGY_MANAGEMENT_ADDRESS"
KEEPER_ADDRESS = "KEEPER_ADDRESS"
FEE_RECIPIENT = "FEE_RECIPIENT"
GOVERNOR_ROLE_ADDRESS = "GOVERNOR_ROLE_ADDRESS"
COLLATERAL_TOKEN_ADDRESSES = "COLLATERAL_TOKEN_ADDRESSES"
MIN_COLLATERAL_RATIOS = "MIN_COLLATERAL_RATIOS"
EVENT_EMITTER_IMPL_ADDRESS = "EVENT_EMITTER_IMPL_ADDRESS"

VAULT_FACTORY_ADDRESS = "VAULT_FACTORY"
ACCOUNTANT_FACTORY_ADDRESS = "ACCOUNTANT_FACTORY"
VAULT_GOVERNANCE_FACTORY = "VAULT_GOVERNANCE_FACTORY"
VAULT_NAME = "VAULT_NAME"
VAULT_SYMBOL = "VAULT_SYMBOL"
STRATEGY_ADDER = "STRATEGY_ADDER"
DEPOSIT_LIMIT = "DEPOSIT_LIMIT"
DEFAULT_PERFORMANCE = "DEFAULT_PERFORMANCE"
DEFAULT_MAX_FEE = "DEFAULT_MAX_FEE"
DEFAULT_MAX_GAIN = "DEFAULT_MAX_GAIN"
DEFAULT_MAX_LOSS = "DEFAULT_MAX_LOSS"

DEPLOYER_PRIVATE_KEY = "DEPLOYER_PRIVATE_KEY"
DEPLOYER_PASSPHRASE = "DEPLOYER_PASSPHRASE"
