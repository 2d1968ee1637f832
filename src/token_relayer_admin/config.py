#!/usr/bin/env python3
"""Configuration management for the token registration run.

Two sources feed a run: release settings fixed per deployment (home chain,
RPC endpoint, token bridge address, signer key) read from environment
variables, and the registration file describing which tokens the relayer
should accept. Both are validated when loaded so that a bad value aborts the
run before any transaction is sent.
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar
from urllib.parse import urlparse

from web3 import Web3

from .address_resolver import to_native_address
from .chains import ChainId
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

UNIVERSAL_ADDRESS_LENGTH = 32
MAX_UINT256 = 2**256 - 1


def parse_universal_address(value: Any, what: str = "token contract") -> bytes:
    """Parse a 32-byte hex identifier, with or without 0x prefix."""
    if not isinstance(value, str):
        raise ConfigurationError(f"Invalid {what}: expected hex string, got {value!r}")

    hex_str = value[2:] if value.startswith(("0x", "0X")) else value
    if len(hex_str) != UNIVERSAL_ADDRESS_LENGTH * 2:
        raise ConfigurationError(
            f"Invalid {what} {value!r}: expected {UNIVERSAL_ADDRESS_LENGTH} bytes "
            f"({UNIVERSAL_ADDRESS_LENGTH * 2} hex characters), got {len(hex_str)} characters"
        )

    try:
        return bytes.fromhex(hex_str)
    except ValueError:
        raise ConfigurationError(f"Invalid {what} {value!r}: not hexadecimal") from None


def parse_uint(value: Any, what: str) -> int:
    """Parse a uint256 from a JSON number or decimal string."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {what}: {value!r}")

    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ConfigurationError(f"Invalid {what}: expected unsigned integer, got {value!r}")

    if number < 0:
        raise ConfigurationError(f"Invalid {what}: must be non-negative, got {number}")
    if number > MAX_UINT256:
        raise ConfigurationError(f"Invalid {what}: exceeds uint256, got {number}")
    return number


def parse_contract_address(value: Any, chain: ChainId) -> str:
    """Accept either a 20-byte EVM address or a 32-byte left-padded one."""
    if isinstance(value, str):
        hex_str = value[2:] if value.startswith(("0x", "0X")) else value
        if len(hex_str) == UNIVERSAL_ADDRESS_LENGTH * 2:
            return to_native_address(parse_universal_address(value, "contract address"))
        if Web3.is_address(value):
            return Web3.to_checksum_address(value)

    raise ConfigurationError(f"Invalid deployed contract address for chain {int(chain)}: {value!r}")


def _check_fields(raw: Mapping[str, Any], expected: set[str], where: str) -> None:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{where} must be an object, got {type(raw).__name__}")

    if missing := expected - raw.keys():
        raise ConfigurationError(f"{where} is missing field(s): {', '.join(sorted(missing))}")
    if unknown := raw.keys() - expected:
        raise ConfigurationError(f"{where} has unknown field(s): {', '.join(sorted(unknown))}")


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Per-deployment settings read from the environment.

    Attributes:
        chain_id: Wormhole chain id of the home chain
        rpc_url: HTTP(S) RPC endpoint of the home chain
        bridge_address: Checksummed token bridge address on the home chain
        private_key: Signer key; required for any transaction
        request_timeout: HTTP request timeout in seconds
        receipt_timeout: Seconds to wait for a transaction to be mined
    """

    chain_id: ChainId
    rpc_url: str
    bridge_address: str
    private_key: str | None = field(default=None, repr=False)
    request_timeout: int = 30
    receipt_timeout: int = 180

    MAX_REQUEST_TIMEOUT: ClassVar[int] = 120
    MAX_RECEIPT_TIMEOUT: ClassVar[int] = 1800

    def __post_init__(self) -> None:
        """Validate release configuration."""
        if not self.chain_id.is_evm:
            raise ConfigurationError(
                f"Home chain {self.chain_id.name} ({int(self.chain_id)}) is not an EVM chain"
            )

        if not self.rpc_url:
            raise ConfigurationError("RPC URL is required (RELEASE_RPC)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https'):
            raise ConfigurationError(
                f"Invalid RPC URL scheme: {parsed.scheme}. Expected http or https"
            )

        if not self.bridge_address:
            raise ConfigurationError("Token bridge address is required (RELEASE_BRIDGE_ADDRESS)")

        if not Web3.is_address(self.bridge_address):
            raise ConfigurationError(f"Invalid token bridge address: {self.bridge_address}")

        checksummed = Web3.to_checksum_address(self.bridge_address)
        if checksummed != self.bridge_address:
            object.__setattr__(self, 'bridge_address', checksummed)

        if self.private_key:
            key = self.private_key[2:] if self.private_key.startswith('0x') else self.private_key
            if len(key) != 64:
                raise ConfigurationError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )
            try:
                int(key, 16)
            except ValueError:
                raise ConfigurationError("Invalid private key format. Must be hexadecimal") from None

        if not 0 < self.request_timeout <= self.MAX_REQUEST_TIMEOUT:
            raise ConfigurationError(
                f"Request timeout must be between 1 and {self.MAX_REQUEST_TIMEOUT}s, "
                f"got {self.request_timeout}"
            )
        if not 0 < self.receipt_timeout <= self.MAX_RECEIPT_TIMEOUT:
            raise ConfigurationError(
                f"Receipt timeout must be between 1 and {self.MAX_RECEIPT_TIMEOUT}s, "
                f"got {self.receipt_timeout}"
            )

    @classmethod
    def from_env(cls) -> "ReleaseConfig":
        """Load release settings from environment variables.

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        chain_value = os.environ.get("RELEASE_CHAIN_ID", "")
        if not chain_value:
            raise ConfigurationError(
                "RELEASE_CHAIN_ID environment variable is required. "
                "This is the wormhole chain id of the home chain."
            )

        rpc_url = os.environ.get("RELEASE_RPC", "")
        if not rpc_url:
            raise ConfigurationError("RELEASE_RPC environment variable is required.")

        bridge_address = os.environ.get("RELEASE_BRIDGE_ADDRESS", "")
        if not bridge_address:
            raise ConfigurationError(
                "RELEASE_BRIDGE_ADDRESS environment variable is required. "
                "This is the token bridge contract on the home chain."
            )

        try:
            request_timeout = int(os.environ.get("REQUEST_TIMEOUT", "30"))
            receipt_timeout = int(os.environ.get("RECEIPT_TIMEOUT", "180"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid timeout value: {e}") from None

        return cls(
            chain_id=ChainId.parse(chain_value),
            rpc_url=rpc_url,
            bridge_address=bridge_address,
            private_key=os.environ.get("PRIVATE_KEY") or None,
            request_timeout=request_timeout,
            receipt_timeout=receipt_timeout,
        )

    def log_config(self) -> None:
        """Log the configuration, hiding the signer key."""
        logger.info("=" * 60)
        logger.info("Token Relayer Admin Configuration")
        logger.info("=" * 60)
        logger.info(f"  Home Chain: {self.chain_id.name} ({int(self.chain_id)})")
        logger.info(f"  RPC URL: {self.rpc_url}")
        logger.info(f"  Token Bridge: {self.bridge_address}")
        logger.info(f"  Private Key: {'[SET]' if self.private_key else '[NOT SET]'}")
        logger.info(f"  Request Timeout: {self.request_timeout}s")
        logger.info(f"  Receipt Timeout: {self.receipt_timeout}s")
        logger.info("=" * 60)


@dataclass(frozen=True, slots=True)
class TokenEntry:
    """One entry of `acceptedTokensList`.

    Attributes:
        contract: 32-byte token identifier on its origin chain
        swap_rate: Swap rate to set when swap rates are synchronized
    """

    contract: bytes
    swap_rate: int

    FIELDS: ClassVar[set[str]] = {"contract", "swapRate"}

    def __post_init__(self) -> None:
        if len(self.contract) != UNIVERSAL_ADDRESS_LENGTH:
            raise ConfigurationError(
                f"Token contract must be {UNIVERSAL_ADDRESS_LENGTH} bytes, got {len(self.contract)}"
            )
        if not 0 <= self.swap_rate <= MAX_UINT256:
            raise ConfigurationError(f"Swap rate out of uint256 range: {self.swap_rate}")

    @property
    def contract_hex(self) -> str:
        return "0x" + self.contract.hex()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], where: str) -> "TokenEntry":
        _check_fields(raw, cls.FIELDS, where)
        return cls(
            contract=parse_universal_address(raw["contract"]),
            swap_rate=parse_uint(raw["swapRate"], f"swapRate in {where}"),
        )


@dataclass(frozen=True)
class RegistrationConfig:
    """The registration file, loaded once and never mutated.

    Mappings preserve file order, which is the order tokens are processed in.
    """

    deployed_contracts: dict[ChainId, str]
    accepted_tokens: dict[ChainId, tuple[TokenEntry, ...]]
    max_native_swap_amounts: dict[ChainId, int]

    FIELDS: ClassVar[set[str]] = {"deployedContracts", "acceptedTokensList", "maxNativeSwapAmount"}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RegistrationConfig":
        _check_fields(data, cls.FIELDS, "config")

        deployed = data["deployedContracts"]
        tokens = data["acceptedTokensList"]
        amounts = data["maxNativeSwapAmount"]
        for name, value in (("deployedContracts", deployed),
                            ("acceptedTokensList", tokens),
                            ("maxNativeSwapAmount", amounts)):
            if not isinstance(value, Mapping):
                raise ConfigurationError(f"{name} must be an object keyed by chain id")

        deployed_contracts: dict[ChainId, str] = {}
        for key, address in deployed.items():
            chain = ChainId.parse(key)
            deployed_contracts[chain] = parse_contract_address(address, chain)

        accepted_tokens: dict[ChainId, tuple[TokenEntry, ...]] = {}
        for key, entries in tokens.items():
            chain = ChainId.parse(key)
            if not isinstance(entries, list):
                raise ConfigurationError(f"acceptedTokensList[{key}] must be a list")
            accepted_tokens[chain] = tuple(
                TokenEntry.from_dict(entry, f"acceptedTokensList[{key}][{index}]")
                for index, entry in enumerate(entries)
            )

        max_native_swap_amounts = {
            ChainId.parse(key): parse_uint(value, f"maxNativeSwapAmount[{key}]")
            for key, value in amounts.items()
        }

        return cls(
            deployed_contracts=deployed_contracts,
            accepted_tokens=accepted_tokens,
            max_native_swap_amounts=max_native_swap_amounts,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "RegistrationConfig":
        """Load and validate the registration file.

        Raises:
            ConfigurationError: If the file is unreadable or does not match the schema
        """
        config_path = Path(path)
        try:
            with config_path.open(encoding="utf-8") as file:
                data = json.load(file)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from None
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {config_path} is not valid JSON: {e}") from None

        config = cls.from_dict(data)
        logger.info(
            f"Loaded {config.token_count} token(s) across "
            f"{len(config.accepted_tokens)} chain(s) from {config_path}"
        )
        return config

    @property
    def token_count(self) -> int:
        return sum(len(entries) for entries in self.accepted_tokens.values())

    def relayer_address(self, chain: ChainId) -> str:
        try:
            return self.deployed_contracts[chain]
        except KeyError:
            raise ConfigurationError(
                f"No relayer contract configured in deployedContracts for chain {int(chain)}"
            ) from None

    def max_native_swap_amount(self, chain: ChainId) -> int:
        try:
            return self.max_native_swap_amounts[chain]
        except KeyError:
            raise ConfigurationError(
                f"No maxNativeSwapAmount configured for chain {int(chain)}"
            ) from None


@dataclass(frozen=True, slots=True)
class RunContext:
    """Immutable values every component of a run needs."""

    home_chain: ChainId
    relayer_address: str
    bridge_address: str

    @classmethod
    def from_config(cls, release: ReleaseConfig, registration: RegistrationConfig) -> "RunContext":
        return cls(
            home_chain=release.chain_id,
            relayer_address=registration.relayer_address(release.chain_id),
            bridge_address=release.bridge_address,
        )
