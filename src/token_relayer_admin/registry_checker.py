"""Read-only queries against the relayer's token registry."""

from web3 import Web3
from web3.contract import Contract


class RegistryChecker:
    """Reads the relayer state used to decide whether a mutation is needed."""

    def __init__(self, relayer: Contract) -> None:
        self.relayer = relayer

    def is_accepted(self, token: str) -> bool:
        return bool(self.relayer.functions.isAcceptedToken(token).call())

    def max_native_swap_amount(self, token: str) -> int:
        return int(self.relayer.functions.maxNativeSwapAmount(token).call())

    def accepted_tokens(self) -> list[str]:
        """Current accepted token list, checksummed, in contract order."""
        tokens = self.relayer.functions.getAcceptedTokensList().call()
        return [Web3.to_checksum_address(token) for token in tokens]
