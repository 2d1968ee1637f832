"""
Token Relayer Admin package.

Synchronizes a token bridge relayer's accepted tokens, swap rates and
max native swap amounts with a registration file.
"""

from .chains import ChainId
from .config import RegistrationConfig, ReleaseConfig, RunContext
from .coordinator import RunCoordinator, RunOptions
from .errors import ConfigurationError, TokenNotAttestedError, TokenResolutionError

__all__ = [
    "ChainId",
    "ConfigurationError",
    "RegistrationConfig",
    "ReleaseConfig",
    "RunContext",
    "RunCoordinator",
    "RunOptions",
    "TokenNotAttestedError",
    "TokenResolutionError",
]
__version__ = "0.1.0"
