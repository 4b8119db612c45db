# PATH: config/__init__.py
"""
Configuration loading utilities for the xbtc harness.

Files:
- networks.yaml: REST endpoints and explorer template per network
- harness.yaml:  contract, accounts, amounts, gas, timeouts

Private keys are never read from YAML; they come from the environment
(a local .env file is loaded with python-dotenv).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_MAX_GAS_AMOUNT,
    DEFAULT_MODULE_NAME,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SETTLE_DELAY_SECONDS,
    DEFAULT_TX_TTL_SECONDS,
    DEFAULT_WAIT_TIMEOUT_SECONDS,
    MIN_SCENARIO_AMOUNT,
    ONE_XBTC,
    ErrorCode,
)
from core.exceptions import ConfigError, ValidationError
from core.validators import normalize_address


CONFIG_DIR = Path(__file__).parent

PRIVATE_KEY_ENV = "TEST_PRIVATE_KEY"
PRIVATE_KEY_2_ENV = "TEST_PRIVATE_KEY_2"


def load_yaml(filename: str, config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory
        config_dir: Override for the config directory

    Returns:
        Parsed YAML as dict
    """
    filepath = (config_dir or CONFIG_DIR) / filename
    if not filepath.exists():
        raise ConfigError(
            f"Config file not found: {filepath}",
            code=ErrorCode.CONFIG_MISSING,
            details={"path": str(filepath)},
        )

    with open(filepath, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {filepath}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {filepath} must be a mapping")
    return data


def load_networks(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load networks configuration."""
    return load_yaml("networks.yaml", config_dir)


def get_network_config(network: str, config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Get configuration for a specific network.

    Args:
        network: Network identifier (e.g., 'testnet')

    Returns:
        Network configuration dict
    """
    networks = load_networks(config_dir)
    if network not in networks:
        raise ConfigError(
            f"Unknown network: {network}",
            details={"available": sorted(networks)},
        )
    config = networks[network]
    if not config.get("rest_urls"):
        raise ConfigError(f"Network {network} has no rest_urls")
    return config


@dataclass
class HarnessConfig:
    """Resolved harness settings for one network."""
    network: str
    rest_urls: List[str]
    contract_address: str
    module_name: str = DEFAULT_MODULE_NAME
    explorer_url: Optional[str] = None
    recipient: Optional[str] = None
    account2: Optional[str] = None
    mint_amount: int = ONE_XBTC
    max_gas_amount: int = DEFAULT_MAX_GAS_AMOUNT
    gas_unit_price: Optional[int] = None
    tx_ttl_seconds: int = DEFAULT_TX_TTL_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    wait_timeout_seconds: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS
    pause_blocks_transfer: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "rest_urls": list(self.rest_urls),
            "contract_address": self.contract_address,
            "module_name": self.module_name,
            "recipient": self.recipient,
            "account2": self.account2,
            "mint_amount": self.mint_amount,
            "max_gas_amount": self.max_gas_amount,
            "gas_unit_price": self.gas_unit_price,
            "settle_delay_seconds": self.settle_delay_seconds,
            "pause_blocks_transfer": self.pause_blocks_transfer,
        }


def _optional_address(value: Any, key: str) -> Optional[str]:
    if value in (None, ""):
        return None
    try:
        return normalize_address(value)
    except ValidationError as e:
        raise ConfigError(f"Invalid address for '{key}': {value!r}") from e


def load_harness_config(
    network: Optional[str] = None,
    config_dir: Optional[Path] = None,
) -> HarnessConfig:
    """
    Load harness.yaml merged with the selected network.

    Network precedence: the `network` argument, then the XBTC_NETWORK
    environment variable, then harness.yaml's `network`.
    """
    load_dotenv()
    raw = load_yaml("harness.yaml", config_dir)

    network = network or os.getenv("XBTC_NETWORK") or raw.get("network")
    if not network:
        raise ConfigError("No network selected", code=ErrorCode.CONFIG_MISSING)
    net = get_network_config(network, config_dir)

    contract = raw.get("contract") or {}
    if not contract.get("address"):
        raise ConfigError("harness.yaml: contract.address is required", code=ErrorCode.CONFIG_MISSING)

    accounts = raw.get("accounts") or {}
    gas = raw.get("gas") or {}
    timeouts = raw.get("timeouts") or {}
    amounts = raw.get("amounts") or {}

    mint_amount = int(amounts.get("mint", ONE_XBTC))
    if mint_amount < MIN_SCENARIO_AMOUNT:
        raise ConfigError(
            f"harness.yaml: amounts.mint must be at least {MIN_SCENARIO_AMOUNT} base units",
            details={"mint": mint_amount},
        )

    return HarnessConfig(
        network=network,
        rest_urls=list(net["rest_urls"]),
        explorer_url=net.get("explorer_url"),
        contract_address=_optional_address(contract["address"], "contract.address"),
        module_name=contract.get("module", DEFAULT_MODULE_NAME),
        recipient=_optional_address(accounts.get("recipient"), "accounts.recipient"),
        account2=_optional_address(accounts.get("account2"), "accounts.account2"),
        mint_amount=mint_amount,
        max_gas_amount=int(gas.get("max_gas_amount", DEFAULT_MAX_GAS_AMOUNT)),
        gas_unit_price=gas.get("gas_unit_price"),
        tx_ttl_seconds=int(timeouts.get("tx_ttl_seconds", DEFAULT_TX_TTL_SECONDS)),
        request_timeout_seconds=float(timeouts.get("request_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS)),
        wait_timeout_seconds=float(timeouts.get("wait_seconds", DEFAULT_WAIT_TIMEOUT_SECONDS)),
        poll_interval_seconds=float(timeouts.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS)),
        settle_delay_seconds=float(timeouts.get("settle_delay_seconds", DEFAULT_SETTLE_DELAY_SECONDS)),
        pause_blocks_transfer=bool(raw.get("pause_blocks_transfer", True)),
    )


def get_private_key(env_var: str = PRIVATE_KEY_ENV) -> str:
    """
    Read a private key from the environment (.env honoured).

    Raises:
        ConfigError: variable unset or empty
    """
    load_dotenv()
    value = os.getenv(env_var, "").strip()
    if not value:
        raise ConfigError(
            f"{env_var} is not set",
            code=ErrorCode.CONFIG_MISSING,
            details={"env_var": env_var},
        )
    return value
