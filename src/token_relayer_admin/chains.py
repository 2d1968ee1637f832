"""Wormhole chain identifiers known to the token bridge relayer."""

from enum import IntEnum

from .errors import ConfigurationError


class ChainId(IntEnum):
    """Wormhole chain ids (not EVM chain ids)."""

    SOLANA = 1
    ETHEREUM = 2
    BSC = 4
    POLYGON = 5
    AVALANCHE = 6
    FANTOM = 10
    KLAYTN = 13
    CELO = 14
    MOONBEAM = 16
    SUI = 21
    APTOS = 22
    ARBITRUM = 23
    OPTIMISM = 24
    BASE = 30

    @classmethod
    def parse(cls, value: int | str) -> "ChainId":
        """
        Parse a chain id from a config key or environment value.

        Raises:
            ConfigurationError: If the value is not a supported chain id
        """
        if isinstance(value, bool):
            raise ConfigurationError(f"Unknown wormhole chain id {value!r}")

        if isinstance(value, str):
            stripped = value.strip()
            if not stripped.isdigit():
                raise ConfigurationError(f"Unknown wormhole chain id {value!r}")
            value = int(stripped)

        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Unknown wormhole chain id {value!r}") from None

    @property
    def is_evm(self) -> bool:
        return self not in NON_EVM_CHAINS


NON_EVM_CHAINS: frozenset[ChainId] = frozenset({ChainId.SOLANA, ChainId.SUI, ChainId.APTOS})

# Chains where the relayer's deployer sends legacy (type 0) transactions
LEGACY_GAS_PRICE_CHAINS: frozenset[ChainId] = frozenset({ChainId.BSC, ChainId.KLAYTN, ChainId.CELO})
