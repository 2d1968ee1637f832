"""
Deferred verification of submitted mutations.

Checks run only after the mutation phase, concurrently, since each is an
independent read. Lines in the report keep submission order.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from .models import (
    AcceptanceCheck,
    BatchAcknowledgedCheck,
    CeilingCheck,
    Check,
    CheckOutcome,
    ResolutionFailure,
    TxResult,
)
from .registry_checker import RegistryChecker

logger = logging.getLogger(__name__)


@dataclass
class VerificationReport:
    """Aggregated digest of one run."""

    lines: list[str] = field(default_factory=list)
    verified: int = 0
    tx_failures: int = 0
    mismatches: int = 0
    check_errors: int = 0
    skipped_tokens: int = 0

    @property
    def failures(self) -> int:
        return self.tx_failures + self.mismatches + self.check_errors + self.skipped_tokens

    @property
    def ok(self) -> bool:
        return self.failures == 0

    def summary(self) -> str:
        return (
            f"Summary: {self.verified} verified, {self.tx_failures} transaction failure(s), "
            f"{self.mismatches} verification failure(s), {self.check_errors} check error(s), "
            f"{self.skipped_tokens} skipped token(s)"
        )

    def render(self) -> str:
        return "\n".join([*self.lines, self.summary()])


class OutcomeVerifier:
    """Evaluates deferred checks against current relayer state."""

    def __init__(self, registry: RegistryChecker) -> None:
        self.registry = registry

    def evaluate(self, check: Check) -> CheckOutcome:
        """
        Run one check against the chain.

        Args:
            check: Deferred check recorded at submission time

        Returns:
            Whether on-chain state matches, with a description of what was read
        """
        match check:
            case AcceptanceCheck(token=token):
                if self.registry.is_accepted(token):
                    return CheckOutcome(True, f"token={token} is accepted")
                return CheckOutcome(False, f"token={token} is not accepted")
            case CeilingCheck(token=token, expected=expected):
                actual = self.registry.max_native_swap_amount(token)
                if actual == expected:
                    return CheckOutcome(True, f"token={token} max native swap amount is {actual}")
                return CheckOutcome(
                    False,
                    f"token={token} max native swap amount is {actual}, expected {expected}",
                )
            case BatchAcknowledgedCheck(tokens=tokens):
                return CheckOutcome(True, f"batch of {len(tokens)} swap rate(s) acknowledged by receipt")
            case _:
                raise TypeError(f"Unknown check type: {type(check).__name__}")

    async def _evaluate_async(self, result: TxResult) -> CheckOutcome | Exception:
        try:
            return await asyncio.to_thread(self.evaluate, result.check)
        except Exception as e:
            logger.error(f"Check for {result.description} raised: {e}", exc_info=True)
            return e

    async def verify(
        self,
        results: list[TxResult],
        resolution_failures: list[ResolutionFailure] | None = None
    ) -> VerificationReport:
        """
        Build the digest for a finished mutation phase.

        Failed transactions are reported as they are, their checks are not
        run. Checks of succeeded transactions are evaluated concurrently.
        """
        report = VerificationReport()

        for failure in resolution_failures or []:
            report.lines.append(failure.line())
            report.skipped_tokens += 1

        succeeded = [result for result in results if result.succeeded]
        outcomes = await asyncio.gather(*(self._evaluate_async(result) for result in succeeded))
        outcome_by_result = {id(result): outcome for result, outcome in zip(succeeded, outcomes)}

        for result in results:
            if not result.succeeded:
                report.lines.append(result.failure_line())
                report.tx_failures += 1
                continue

            match outcome_by_result[id(result)]:
                case CheckOutcome(passed=True):
                    report.lines.append(result.success_message)
                    report.verified += 1
                case CheckOutcome(detail=detail):
                    report.lines.append(
                        f"Verification failed: {result.description}, {detail}, txHash={result.tx_hash}"
                    )
                    report.mismatches += 1
                case Exception() as error:
                    report.lines.append(
                        f"Verification error: {result.description}, txHash={result.tx_hash}, error={error}"
                    )
                    report.check_errors += 1

        logger.info(report.summary())
        return report
