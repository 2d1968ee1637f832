#!/usr/bin/env python3
"""Data models for the token registration run.

This module provides immutable data classes for swap rate updates,
submitted transaction outcomes and the deferred checks that verify them.
"""

from dataclasses import dataclass, field
from enum import Enum

from web3.types import TxReceipt


@dataclass(frozen=True, slots=True)
class SwapRateUpdate:
    """One element of the `updateSwapRate` batch.

    Attributes:
        token: Checksummed token address on the home chain
        value: Swap rate, arbitrary precision
    """

    token: str
    value: int

    def as_struct(self) -> tuple[str, int]:
        """ABI tuple for `SwapRateUpdate(address token, uint256 value)`."""
        return (self.token, self.value)


class CheckKind(Enum):
    ACCEPTANCE = "acceptance"
    CEILING = "ceiling"
    BATCH_ACKNOWLEDGED = "batch-acknowledged"


@dataclass(frozen=True, slots=True)
class AcceptanceCheck:
    """Passes when the relayer reports the token as accepted."""

    token: str
    kind: CheckKind = field(default=CheckKind.ACCEPTANCE, init=False)


@dataclass(frozen=True, slots=True)
class CeilingCheck:
    """Passes when the relayer's max native swap amount equals `expected` exactly."""

    token: str
    expected: int
    kind: CheckKind = field(default=CheckKind.CEILING, init=False)


@dataclass(frozen=True, slots=True)
class BatchAcknowledgedCheck:
    """Swap rate batches are acknowledged on a mined receipt, not read back per token.

    Swap rates are monitored outside this tool; the digest labels the
    line so it is never mistaken for a verified read.
    """

    tokens: tuple[str, ...]
    kind: CheckKind = field(default=CheckKind.BATCH_ACKNOWLEDGED, init=False)


Check = AcceptanceCheck | CeilingCheck | BatchAcknowledgedCheck


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    passed: bool
    detail: str


@dataclass(frozen=True, slots=True)
class TxResult:
    """Outcome of one submitted mutation.

    Attributes:
        description: Short name of the action, used in logs
        receipt: Mined receipt, None if the transaction never got one
        tx_hash: Hex transaction hash once known
        success_message: Digest line when the check passes
        failure_message: Digest line when the transaction failed
        check: Deferred check, only run when the transaction succeeded
        error: Error text when estimation, submission or confirmation raised
    """

    description: str
    receipt: TxReceipt | None
    tx_hash: str | None
    success_message: str
    failure_message: str
    check: Check
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.receipt is not None and self.receipt.get("status", 0) == 1

    def failure_line(self) -> str:
        parts = [self.failure_message]
        if self.tx_hash:
            parts.append(f"txHash={self.tx_hash}")
        if self.error:
            parts.append(f"error={self.error}")
        elif self.receipt is not None:
            parts.append(f"status={self.receipt.get('status')}")
        return ", ".join(parts)


@dataclass(frozen=True, slots=True)
class ResolutionFailure:
    """A configured token that was skipped because it has no home-chain address."""

    chain_id: int
    token_hex: str
    reason: str

    def line(self) -> str:
        return f"Failed: {self.reason}, chainId={self.chain_id}, token={self.token_hex}"
