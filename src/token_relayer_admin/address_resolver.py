"""Resolution of configured token identifiers to home-chain addresses."""

import logging
from typing import TYPE_CHECKING

from web3 import Web3
from web3.contract import Contract

from .errors import ConfigurationError, TokenNotAttestedError, TokenResolutionError

if TYPE_CHECKING:
    from .chains import ChainId
    from .config import RunContext

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40
EVM_ADDRESS_LENGTH = 20


def to_native_address(universal: bytes) -> str:
    """
    Convert a 32-byte left-padded address to a checksummed EVM address.

    Raises:
        ConfigurationError: If the input is not 32 bytes or the padding is not zero
    """
    if len(universal) != 32:
        raise ConfigurationError(f"Expected a 32-byte address, got {len(universal)} bytes")

    padding, address = universal[:-EVM_ADDRESS_LENGTH], universal[-EVM_ADDRESS_LENGTH:]
    if any(padding):
        raise ConfigurationError(
            f"0x{universal.hex()} is not a left-padded EVM address"
        )
    return Web3.to_checksum_address(address)


class AddressResolver:
    """Maps (origin chain, 32-byte token id) to the token address on the home chain."""

    def __init__(self, context: "RunContext", token_bridge: Contract) -> None:
        self.context = context
        self.token_bridge = token_bridge

    def resolve(self, chain: "ChainId", raw_token: bytes) -> str:
        """
        Resolve a token to the address the home chain relayer knows it by.

        Tokens native to the home chain are converted locally. Foreign tokens
        are looked up through the token bridge's wrapped asset registry.

        Args:
            chain: Chain the token originates from
            raw_token: 32-byte token identifier on that chain

        Returns:
            Checksummed token address on the home chain

        Raises:
            ConfigurationError: If the identifier is malformed
            TokenNotAttestedError: If no wrapped asset exists on the home chain
            TokenResolutionError: If the wrapped asset lookup itself failed
        """
        if len(raw_token) != 32:
            raise ConfigurationError(
                f"Token for chain {int(chain)} must be 32 bytes, got {len(raw_token)}"
            )

        if chain == self.context.home_chain:
            return to_native_address(raw_token)

        token_hex = "0x" + raw_token.hex()
        try:
            wrapped = self.token_bridge.functions.wrappedAsset(int(chain), raw_token).call()
        except Exception as e:
            raise TokenResolutionError(int(chain), token_hex, f"wrapped asset lookup failed: {e}") from e

        if not wrapped or wrapped.lower() == ZERO_ADDRESS:
            raise TokenNotAttestedError(int(chain), token_hex)

        wrapped = Web3.to_checksum_address(wrapped)
        logger.debug(f"Resolved chainId={int(chain)} token={token_hex} to wrapped asset {wrapped}")
        return wrapped
