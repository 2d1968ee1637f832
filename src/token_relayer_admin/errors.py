"""Exception types for the token registration run."""


class ConfigurationError(ValueError):
    """Fatal configuration problem; the run aborts before submitting anything else."""


class TokenResolutionError(Exception):
    """A token could not be mapped to a home-chain address. Only that token is skipped."""

    def __init__(self, chain_id: int, token_hex: str, reason: str) -> None:
        self.chain_id = chain_id
        self.token_hex = token_hex
        self.reason = reason
        super().__init__(f"{reason}, chainId={chain_id}, token={token_hex}")


class TokenNotAttestedError(TokenResolutionError):
    """The token bridge has no wrapped asset for the token on the home chain."""

    def __init__(self, chain_id: int, token_hex: str) -> None:
        super().__init__(chain_id, token_hex, "token not attested")
