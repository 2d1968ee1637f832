#!/usr/bin/env python3
"""Transaction submission for relayer registry mutations.

Every mutation follows the same protocol: estimate gas against current
state, derive overrides from the estimate and the home chain's fee policy,
send, log the hash, wait for the receipt and wrap the outcome in a TxResult
carrying the check that later verifies it. Failures never raise out of this
module; they come back as failed TxResults so the run can go on.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction
from web3.types import TxParams, TxReceipt, Wei

from .chains import LEGACY_GAS_PRICE_CHAINS, ChainId
from .models import (
    AcceptanceCheck,
    BatchAcknowledgedCheck,
    CeilingCheck,
    Check,
    SwapRateUpdate,
    TxResult,
)

if TYPE_CHECKING:
    from .config import RunContext

logger = logging.getLogger(__name__)

GAS_LIMIT_HEADROOM_PERCENT = 10
POLYGON_MIN_PRIORITY_FEE: Wei = Web3.to_wei(30, "gwei")


def build_overrides(w3: Web3, chain: ChainId, gas_estimate: int) -> TxParams:
    """
    Derive transaction overrides from a gas estimate.

    Args:
        w3: Web3 instance connected to the home chain
        chain: Home chain, selects the fee policy
        gas_estimate: Result of estimate_gas for the call

    Returns:
        Overrides to pass to transact()
    """
    gas_limit = (gas_estimate * (100 + GAS_LIMIT_HEADROOM_PERCENT) + 99) // 100
    overrides: TxParams = {'gas': gas_limit}

    match chain:
        case ChainId.POLYGON:
            # Polygon rejects tips under 30 gwei and its base fee swings hard
            priority_fee = max(int(w3.eth.max_priority_fee), POLYGON_MIN_PRIORITY_FEE)
            base_fee = int(w3.eth.get_block('latest')['baseFeePerGas'])
            overrides['maxPriorityFeePerGas'] = Wei(priority_fee)
            overrides['maxFeePerGas'] = Wei(2 * base_fee + priority_fee)
        case _ if chain in LEGACY_GAS_PRICE_CHAINS:
            overrides['gasPrice'] = w3.eth.gas_price

    return overrides


def _to_hex(value: Any) -> str:
    return value if isinstance(value, str) else Web3.to_hex(value)


class MutationSubmitter:
    """Sends relayer mutations one at a time from the signing account."""

    def __init__(
        self,
        context: "RunContext",
        relayer: Contract,
        w3: Web3,
        receipt_timeout: int = 180
    ) -> None:
        """
        Initialize the MutationSubmitter.

        Args:
            context: Run context with the home chain id
            relayer: Relayer contract bound to a signing Web3 instance
            w3: The same Web3 instance, used for fees and receipts
            receipt_timeout: Seconds to wait for each transaction to be mined
        """
        self.context = context
        self.relayer = relayer
        self.w3 = w3
        self.receipt_timeout = receipt_timeout

        # Single writer: one signed transaction in flight, no nonce races
        self._writer_lock = asyncio.Lock()

    async def register_token(self, chain: ChainId, token: str) -> TxResult:
        """Register `token`; verified by re-reading isAcceptedToken."""
        home_chain = int(self.context.home_chain)
        return await self._submit(
            description="register token",
            build_call=lambda: self.relayer.functions.registerToken(home_chain, token),
            sent_message=f"Token register tx sent, chainId={int(chain)}, token={token}",
            success_message=f"Success: token registered, chainId={int(chain)}, token={token}",
            failure_message=f"Failed: could not register token, chainId={int(chain)}, token={token}",
            check=AcceptanceCheck(token=token),
        )

    async def update_swap_rate(self, batch: list[SwapRateUpdate]) -> TxResult:
        """Submit the whole swap rate batch in one transaction."""
        home_chain = int(self.context.home_chain)
        rates = ", ".join(f"token: {update.token}, swap rate: {update.value}" for update in batch)
        return await self._submit(
            description="update swap rates",
            build_call=lambda: self.relayer.functions.updateSwapRate(
                home_chain, [update.as_struct() for update in batch]
            ),
            sent_message=f"Swap rates update tx sent, entries={len(batch)}",
            success_message=f"Success: swap rates updated (batch not read back), {rates}",
            failure_message=f"Failed: could not update swap rates, entries={len(batch)}",
            check=BatchAcknowledgedCheck(tokens=tuple(update.token for update in batch)),
        )

    async def update_max_native_swap_amount(
        self,
        chain: ChainId,
        token: str,
        amount: int,
        original_token: str
    ) -> TxResult:
        """Set the max native swap amount; verified by exact read-back."""
        home_chain = int(self.context.home_chain)
        return await self._submit(
            description="update max native swap amount",
            build_call=lambda: self.relayer.functions.updateMaxNativeSwapAmount(home_chain, token, amount),
            sent_message=(
                f"Max swap amount update tx sent, chainId={int(chain)}, token={token}, max={amount}"
            ),
            success_message=(
                f"Success: max swap amount updated, chainId={int(chain)}, token={token}, max={amount}"
            ),
            failure_message=(
                f"Failed: could not update max native swap amount, chainId={int(chain)}, "
                f"token={original_token}"
            ),
            check=CeilingCheck(token=token, expected=amount),
        )

    async def _submit(
        self,
        description: str,
        build_call: Callable[[], ContractFunction],
        sent_message: str,
        success_message: str,
        failure_message: str,
        check: Check
    ) -> TxResult:
        async with self._writer_lock:
            return await asyncio.to_thread(
                self._send_and_wait,
                description, build_call, sent_message, success_message, failure_message, check
            )

    def _send_and_wait(
        self,
        description: str,
        build_call: Callable[[], ContractFunction],
        sent_message: str,
        success_message: str,
        failure_message: str,
        check: Check
    ) -> TxResult:
        tx_hash: str | None = None
        try:
            # ABI encoding errors surface here, before anything is sent
            call = build_call()
            gas_estimate = call.estimate_gas()
            overrides = build_overrides(self.w3, self.context.home_chain, gas_estimate)
            logger.debug(f"{description}: estimated gas={gas_estimate}, overrides={overrides}")

            tx_hash = _to_hex(call.transact(overrides))
            logger.info(f"{sent_message}, txHash={tx_hash}")

            receipt: TxReceipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            stage = "confirmation" if tx_hash else "estimation/submission"
            logger.error(f"✗ {description} failed during {stage}: {e}")
            return TxResult(
                description=description,
                receipt=None,
                tx_hash=tx_hash,
                success_message=success_message,
                failure_message=failure_message,
                check=check,
                error=str(e),
            )

        if (receipt_hash := receipt.get('transactionHash')) is not None:
            tx_hash = _to_hex(receipt_hash)

        result = TxResult(
            description=description,
            receipt=receipt,
            tx_hash=tx_hash,
            success_message=f"{success_message}, txHash={tx_hash}",
            failure_message=failure_message,
            check=check,
        )

        if result.succeeded:
            logger.info(f"✓ {description} confirmed in block {receipt.get('blockNumber')}, txHash={tx_hash}")
        else:
            logger.error(f"✗ {description} reverted, status={receipt.get('status')}, txHash={tx_hash}")
        return result
