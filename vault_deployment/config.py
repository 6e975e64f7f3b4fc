import os
import re
from pathlib import Path
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

from dotenv import dotenv_values
from eth_typing import ChecksumAddress
from eth_utils import (
    is_address,
    is_checksum_address,
    is_checksum_formatted_address,
    to_checksum_address,
)

from vault_deployment import constants as keys
from vault_deployment.exceptions import ConfigurationError

_UINT_PATTERN = re.compile(r"[0-9]+")


def load_environment(env_file: Optional[Path] = None) -> Dict[str, str]:
    """
    Returns the process environment merged with an optional .env file;
    values from the file win.
    """
    environ = dict(os.environ)
    if env_file is not None:
        if not env_file.exists():
            raise ConfigurationError(f"Environment file {env_file} does not exist.")
        file_values = dotenv_values(env_file)
        environ.update({k: v for k, v in file_values.items() if v is not None})
    return environ


def _split(value: str) -> List[str]:
    return [element.strip() for element in value.split(",")]


def _require(environ: Mapping[str, str], key: str) -> str:
    value = environ.get(key)
    if value is None or not value.strip():
        raise ConfigurationError(f"{key} is not set.")
    return value.strip()


def parse_address(value: str, key: str) -> ChecksumAddress:
    value = value.strip()
    if not is_address(value):
        raise ConfigurationError(f"{key}: invalid address '{value}'")
    if is_checksum_formatted_address(value) and not is_checksum_address(value):
        raise ConfigurationError(f"{key}: bad checksum for address '{value}'")
    return to_checksum_address(value)


def parse_address_list(value: Optional[str], key: str) -> List[ChecksumAddress]:
    """Parses a comma separated address list; any invalid element rejects the whole list."""
    if not value or not value.strip():
        return []
    return [parse_address(element, key) for element in _split(value)]


def parse_uint(value: str, key: str, bits: int = 256) -> int:
    """
    Parses a plain decimal integer. The token has to be its own canonical
    representation, so '1e3', '01', '-1' or '1.0' are all rejected.
    """
    token = value.strip()
    if not _UINT_PATTERN.fullmatch(token) or str(int(token)) != token:
        raise ConfigurationError(f"{key}: invalid number '{token}'")
    number = int(token)
    if number > 2**bits - 1:
        raise ConfigurationError(f"{key}: {token} does not fit in uint{bits}")
    return number


def parse_uint_list(value: Optional[str], key: str) -> List[int]:
    if not value or not value.strip():
        return []
    return [parse_uint(element, key) for element in _split(value)]


def parse_name_symbol(value: str, key: str) -> Tuple[str, str]:
    parts = _split(value)
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(f"{key} must be a 'name,symbol' pair; got '{value}'")
    name, symbol = parts
    return name, symbol


def _address(environ: Mapping[str, str], key: str) -> ChecksumAddress:
    return parse_address(_require(environ, key), key)


def _uint(
    environ: Mapping[str, str], key: str, default: Optional[str] = None, bits: int = 256
) -> int:
    raw = environ.get(key) or default
    if raw is None:
        raise ConfigurationError(f"{key} is not set.")
    return parse_uint(raw, key, bits=bits)


class StrategyConfig(NamedTuple):
    """Validated inputs for the event emitter + strategy pipeline."""

    asset: ChecksumAddress
    yearn_vault: ChecksumAddress
    discount_rate_adapter: ChecksumAddress
    term_controller: ChecksumAddress
    discount_rate_markup: int
    time_to_maturity_threshold: int
    repo_token_concentration_limit: int
    required_reserve_ratio: int
    admin: ChecksumAddress
    devops: ChecksumAddress
    strategy_name: str
    strategy_symbol: str
    profit_max_unlock_time: int
    management: ChecksumAddress
    keeper: ChecksumAddress
    fee_recipient: ChecksumAddress
    governor: ChecksumAddress
    collateral_tokens: Tuple[ChecksumAddress, ...] = ()
    min_collateral_ratios: Tuple[int, ...] = ()
    event_emitter_impl: Optional[ChecksumAddress] = None

    @property
    def collateral_params(self) -> List[Tuple[ChecksumAddress, int]]:
        return list(zip(self.collateral_tokens, self.min_collateral_ratios))

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, str], event_emitter_impl: Optional[str] = None
    ) -> "StrategyConfig":
        collateral_tokens = parse_address_list(
            environ.get(keys.COLLATERAL_TOKEN_ADDRESSES), keys.COLLATERAL_TOKEN_ADDRESSES
        )
        min_collateral_ratios = parse_uint_list(
            environ.get(keys.MIN_COLLATERAL_RATIOS), keys.MIN_COLLATERAL_RATIOS
        )
        if len(collateral_tokens) != len(min_collateral_ratios):
            raise ConfigurationError(
                f"{keys.COLLATERAL_TOKEN_ADDRESSES} and {keys.MIN_COLLATERAL_RATIOS} "
                f"must have the same number of entries; got {len(collateral_tokens)} "
                f"and {len(min_collateral_ratios)}."
            )

        impl = event_emitter_impl or environ.get(keys.EVENT_EMITTER_IMPL_ADDRESS)
        if impl is not None and impl.strip():
            impl = parse_address(impl, keys.EVENT_EMITTER_IMPL_ADDRESS)
        else:
            impl = None

        name, symbol = parse_name_symbol(
            _require(environ, keys.STRATEGY_NAME), keys.STRATEGY_NAME
        )

        return cls(
            asset=_address(environ, keys.ASSET_ADDRESS),
            yearn_vault=_address(environ, keys.YEARN_VAULT_ADDRESS),
            discount_rate_adapter=_address(environ, keys.DISCOUNT_RATE_ADAPTER_ADDRESS),
            term_controller=_address(environ, keys.TERM_CONTROLLER_ADDRESS),
            discount_rate_markup=_uint(environ, keys.DISCOUNT_RATE_MARKUP),
            time_to_maturity_threshold=_uint(environ, keys.TIME_TO_MATURITY_THRESHOLD),
            repo_token_concentration_limit=_uint(environ, keys.REPOTOKEN_CONCENTRATION_LIMIT),
            required_reserve_ratio=_uint(environ, keys.NEW_REQUIRED_RESERVE_RATIO),
            admin=_address(environ, keys.ADMIN_ADDRESS),
            devops=_address(environ, keys.DEVOPS_ADDRESS),
            strategy_name=name,
            strategy_symbol=symbol,
            profit_max_unlock_time=_uint(environ, keys.PROFIT_MAX_UNLOCK_TIME),
            management=_address(environ, keys.STRATEGY_MANAGEMENT_ADDRESS),
            keeper=_address(environ, keys.KEEPER_ADDRESS),
            fee_recipient=_address(environ, keys.FEE_RECIPIENT),
            governor=_address(environ, keys.GOVERNOR_ROLE_ADDRESS),
            collateral_tokens=tuple(collateral_tokens),
            min_collateral_ratios=tuple(min_collateral_ratios),
            event_emitter_impl=impl,
        )


class VaultConfig(NamedTuple):
    """Validated inputs for the vault + accountant pipeline."""

    vault_factory: ChecksumAddress
    accountant_factory: ChecksumAddress
    governance_factory: ChecksumAddress
    asset: ChecksumAddress
    vault_name: str
    vault_symbol: str
    profit_max_unlock_time: int
    keeper: ChecksumAddress
    strategy_adder: ChecksumAddress
    fee_recipient: ChecksumAddress
    deposit_limit: int = 0
    default_performance: int = 0
    default_max_fee: int = 0
    default_max_gain: int = 0
    default_max_loss: int = 0

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "VaultConfig":
        return cls(
            vault_factory=_address(environ, keys.VAULT_FACTORY_ADDRESS),
            accountant_factory=_address(environ, keys.ACCOUNTANT_FACTORY_ADDRESS),
            governance_factory=_address(environ, keys.VAULT_GOVERNANCE_FACTORY),
            asset=_address(environ, keys.ASSET_ADDRESS),
            vault_name=_require(environ, keys.VAULT_NAME),
            vault_symbol=_require(environ, keys.VAULT_SYMBOL),
            profit_max_unlock_time=_uint(environ, keys.PROFIT_MAX_UNLOCK_TIME),
            keeper=_address(environ, keys.KEEPER_ADDRESS),
            strategy_adder=_address(environ, keys.STRATEGY_ADDER),
            fee_recipient=_address(environ, keys.FEE_RECIPIENT),
            deposit_limit=_uint(environ, keys.DEPOSIT_LIMIT, default="0"),
            default_performance=_uint(environ, keys.DEFAULT_PERFORMANCE, default="0", bits=16),
            default_max_fee=_uint(environ, keys.DEFAULT_MAX_FEE, default="0", bits=16),
            default_max_gain=_uint(environ, keys.DEFAULT_MAX_GAIN, default="0", bits=16),
            default_max_loss=_uint(environ, keys.DEFAULT_MAX_LOSS, default="0", bits=16),
        )
