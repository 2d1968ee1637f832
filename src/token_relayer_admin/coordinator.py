"""
Token registration run.

This module drives one synchronization of the relayer's token registry
against the registration file, delegating address resolution, state reads,
transaction submission and verification to the other components.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from .address_resolver import AddressResolver, to_native_address
from .chains import ChainId
from .config import RegistrationConfig, ReleaseConfig, RunContext, TokenEntry
from .errors import ConfigurationError, TokenResolutionError
from .models import ResolutionFailure, SwapRateUpdate, TxResult
from .mutation_submitter import MutationSubmitter
from .outcome_verifier import OutcomeVerifier, VerificationReport
from .registry_checker import RegistryChecker
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


class TokenState(Enum):
    RESOLUTION_FAILED = "resolution-failed"
    ALREADY_REGISTERED = "registered-skipped-already-present"
    REGISTERED = "registered"
    MAX_AMOUNT_UPDATED = "max-amount-updated"
    RATE_QUEUED = "rate-queued"


@dataclass(frozen=True, slots=True)
class RunOptions:
    set_swap_rates: bool = False
    set_max_native_amounts: bool = False


@dataclass
class TokenOutcome:
    chain: ChainId
    token_hex: str
    address: str | None = None
    states: list[TokenState] = field(default_factory=list)


@dataclass
class RunResult:
    tokens: list[TokenOutcome]
    tx_results: list[TxResult]
    swap_rate_updates: list[SwapRateUpdate]
    report: VerificationReport
    accepted_tokens: list[str] | None


class RunCoordinator:
    """Walks the configured tokens chain by chain and reconciles each one."""

    def __init__(
        self,
        context: RunContext,
        config: RegistrationConfig,
        resolver: AddressResolver,
        registry: RegistryChecker,
        submitter: MutationSubmitter,
        verifier: OutcomeVerifier,
        options: RunOptions
    ) -> None:
        self.context = context
        self.config = config
        self.resolver = resolver
        self.registry = registry
        self.submitter = submitter
        self.verifier = verifier
        self.options = options

        # Append-only during the mutation phase
        self.tx_results: list[TxResult] = []
        self.resolution_failures: list[ResolutionFailure] = []
        self.swap_rate_updates: list[SwapRateUpdate] = []

    @classmethod
    def from_config(
        cls,
        release: ReleaseConfig,
        registration: RegistrationConfig,
        options: RunOptions
    ) -> "RunCoordinator":
        """
        Wire all components against the home chain.

        Raises:
            ConfigurationError: If no signer key is configured or the relayer
                address for the home chain is missing
        """
        if not release.private_key:
            raise ConfigurationError("PRIVATE_KEY environment variable is required to sign transactions")

        context = RunContext.from_config(release, registration)
        contract_util = ContractUtility(
            rpc_url=release.rpc_url,
            secret=release.private_key,
            request_timeout=release.request_timeout,
        )
        relayer = contract_util.contract("ITokenBridgeRelayer", context.relayer_address)
        token_bridge = contract_util.contract("ITokenBridge", context.bridge_address)
        logger.info(f"Signing as {contract_util.account.address}, relayer at {context.relayer_address}")

        registry = RegistryChecker(relayer)
        return cls(
            context=context,
            config=registration,
            resolver=AddressResolver(context, token_bridge),
            registry=registry,
            submitter=MutationSubmitter(
                context, relayer, contract_util.w3, receipt_timeout=release.receipt_timeout
            ),
            verifier=OutcomeVerifier(registry),
            options=options,
        )

    def _max_native_amount(self) -> int | None:
        if not self.options.set_max_native_amounts:
            return None
        # Keyed by the home chain: the ceiling is denominated in its native token
        return self.config.max_native_swap_amount(self.context.home_chain)

    def _prevalidate(self) -> None:
        """Raise configuration errors that would otherwise surface mid-run."""
        for entry in self.config.accepted_tokens.get(self.context.home_chain, ()):
            to_native_address(entry.contract)

    async def _process_token(self, chain: ChainId, entry: TokenEntry, max_amount: int | None) -> TokenOutcome:
        outcome = TokenOutcome(chain=chain, token_hex=entry.contract_hex)

        try:
            token = await asyncio.to_thread(self.resolver.resolve, chain, entry.contract)
            is_registered = await asyncio.to_thread(self.registry.is_accepted, token)
        except TokenResolutionError as e:
            logger.warning(f"Skipping token: {e}")
            self.resolution_failures.append(ResolutionFailure(e.chain_id, e.token_hex, e.reason))
            outcome.states.append(TokenState.RESOLUTION_FAILED)
            return outcome
        except ConfigurationError:
            raise
        except Exception as e:
            # Acceptance lookup failed for an otherwise resolvable token
            logger.error(f"Registry lookup failed, chainId={int(chain)}, token={entry.contract_hex}: {e}")
            self.resolution_failures.append(
                ResolutionFailure(int(chain), entry.contract_hex, f"registry lookup failed: {e}")
            )
            outcome.states.append(TokenState.RESOLUTION_FAILED)
            return outcome

        outcome.address = token

        if is_registered:
            print(f"Token already registered. token={entry.contract_hex}")
            outcome.states.append(TokenState.ALREADY_REGISTERED)
        else:
            result = await self.submitter.register_token(chain, token)
            self.tx_results.append(result)
            if result.succeeded:
                outcome.states.append(TokenState.REGISTERED)

        if max_amount is not None:
            result = await self.submitter.update_max_native_swap_amount(
                chain, token, max_amount, entry.contract_hex
            )
            self.tx_results.append(result)
            if result.succeeded:
                outcome.states.append(TokenState.MAX_AMOUNT_UPDATED)

        if self.options.set_swap_rates:
            self.swap_rate_updates.append(SwapRateUpdate(token=token, value=entry.swap_rate))
            outcome.states.append(TokenState.RATE_QUEUED)

        return outcome

    async def _fetch_accepted_tokens(self) -> list[str] | None:
        try:
            return await asyncio.to_thread(self.registry.accepted_tokens)
        except Exception as e:
            logger.error(f"Could not fetch accepted tokens list: {e}", exc_info=True)
            return None

    async def run(self) -> RunResult:
        """
        Execute the run end to end and print the digest.

        Raises:
            ConfigurationError: Before any transaction, if the configuration
                cannot be acted on
        """
        max_amount = self._max_native_amount()
        self._prevalidate()

        logger.info(
            f"Starting token registration on chain {self.context.home_chain.name} "
            f"(relayer={self.context.relayer_address}, "
            f"setSwapRates={self.options.set_swap_rates}, "
            f"setMaxNativeAmounts={self.options.set_max_native_amounts})"
        )

        tokens: list[TokenOutcome] = []
        for chain, entries in self.config.accepted_tokens.items():
            print(f"\nChainId {int(chain)}")
            for entry in entries:
                tokens.append(await self._process_token(chain, entry, max_amount))

        if self.options.set_swap_rates:
            print()
            if self.swap_rate_updates:
                self.tx_results.append(await self.submitter.update_swap_rate(self.swap_rate_updates))
            else:
                logger.warning("No resolvable tokens, swap rate batch not submitted")

        report = await self.verifier.verify(self.tx_results, self.resolution_failures)
        print(report.render())

        accepted_tokens = await self._fetch_accepted_tokens()
        print("\nAccepted tokens list:")
        if accepted_tokens is None:
            print("  [unavailable, see log]")
        else:
            for token in accepted_tokens:
                print(token)

        return RunResult(
            tokens=tokens,
            tx_results=list(self.tx_results),
            swap_rate_updates=list(self.swap_rate_updates),
            report=report,
            accepted_tokens=accepted_tokens,
        )
