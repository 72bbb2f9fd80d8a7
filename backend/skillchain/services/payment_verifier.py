"""
Payment Verifier — Decides whether a claimed SOL payment is real, sufficient,
unspent and made by the claimed payer, using only what the ledger says.

A signature is consumed at most once: the final step is an atomic
insert-if-absent into the signature ledger, and losing that race is reported
as ALREADY_USED. Declines are returned as values; only ledger faults raise.
Storage calls run in the threadpool so a locked database never stalls the
event loop.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from fastapi.concurrency import run_in_threadpool

from skillchain.config import Settings, LAMPORTS_PER_SOL, get_settings
from skillchain.schemas.schemas import PaymentRecord
from skillchain.services.ledger_client import LedgerTransaction
from skillchain.storage.base import Storage
from skillchain.utils.logger import get_logger, short

logger = get_logger(__name__)


class PaymentFailure(str, Enum):
    ALREADY_USED = "AlreadyUsed"
    NOT_FOUND = "NotFound"
    EXECUTION_FAILED = "ExecutionFailed"
    PAYER_MISMATCH = "PayerMismatch"
    TREASURY_NOT_INVOLVED = "TreasuryNotInvolved"
    INSUFFICIENT_AMOUNT = "InsufficientAmount"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    PaymentFailure.ALREADY_USED: "This payment has already been used. Please make a new payment.",
    PaymentFailure.NOT_FOUND: "Payment transaction not found. Wait for confirmation and try again.",
    PaymentFailure.EXECUTION_FAILED: "Payment transaction failed on-chain. Please pay again.",
    PaymentFailure.PAYER_MISMATCH: "Payment was not sent from the connected wallet.",
    PaymentFailure.TREASURY_NOT_INVOLVED: "Payment was not sent to the SkillChain treasury.",
    PaymentFailure.INSUFFICIENT_AMOUNT: "Payment amount is below the test price.",
}


class LedgerClient(Protocol):
    async def get_transaction(self, signature: str) -> Optional[LedgerTransaction]:
        ...


@dataclass
class PaymentVerification:
    verified: bool
    reason: Optional[PaymentFailure] = None
    amount: int = 0
    payer: Optional[str] = None

    def __bool__(self) -> bool:
        return self.verified

    @classmethod
    def declined(cls, reason: PaymentFailure, **kwargs) -> "PaymentVerification":
        return cls(verified=False, reason=reason, **kwargs)


class PaymentVerifier:
    """Sole authority on whether a payment signature may unlock a test."""

    def __init__(self, storage: Storage, ledger: LedgerClient, settings: Settings | None = None):
        self.storage = storage
        self.ledger = ledger
        self.settings = settings or get_settings()

    @property
    def minimum_lamports(self) -> int:
        """Smallest accepted treasury delta (price scaled by tolerance, rounded up)."""
        price = self.settings.TEST_PRICE_LAMPORTS
        # Scale the tolerance to basis points so the boundary is exact in integers
        tolerance_bp = round(self.settings.PAYMENT_TOLERANCE * 10_000)
        return -(-price * tolerance_bp // 10_000)

    async def verify(self, signature: str, expected_payer: str) -> PaymentVerification:
        """Validate a payment end-to-end and consume its signature.

        Args:
            signature: Ledger transaction signature supplied by the client.
            expected_payer: Wallet address the payment must come from.

        Returns:
            PaymentVerification; truthy only when the signature was committed.

        Raises:
            LedgerUnavailableError: the ledger could not be queried.
        """
        log = logger.bind(signature=short(signature), payer=short(expected_payer))

        # 1. Replay check
        if await run_in_threadpool(self.storage.is_payment_signature_used, signature):
            log.warning("payment_declined", reason=PaymentFailure.ALREADY_USED.value)
            return PaymentVerification.declined(PaymentFailure.ALREADY_USED)

        # 2. Existence
        tx = await self.ledger.get_transaction(signature)
        if tx is None:
            log.warning("payment_declined", reason=PaymentFailure.NOT_FOUND.value)
            return PaymentVerification.declined(PaymentFailure.NOT_FOUND)

        # 3. Execution
        if not tx.success:
            log.warning("payment_declined", reason=PaymentFailure.EXECUTION_FAILED.value, error=str(tx.error))
            return PaymentVerification.declined(PaymentFailure.EXECUTION_FAILED)

        # 4. Payer
        payer = tx.fee_payer
        if payer != expected_payer:
            log.warning("payment_declined", reason=PaymentFailure.PAYER_MISMATCH.value, actual_payer=short(payer))
            return PaymentVerification.declined(PaymentFailure.PAYER_MISMATCH, payer=payer)

        # 5. Amount received by the treasury
        delta = tx.balance_delta(self.settings.TREASURY_WALLET)
        if delta is None:
            log.warning("payment_declined", reason=PaymentFailure.TREASURY_NOT_INVOLVED.value)
            return PaymentVerification.declined(PaymentFailure.TREASURY_NOT_INVOLVED, payer=payer)

        if delta < self.minimum_lamports:
            log.warning(
                "payment_declined",
                reason=PaymentFailure.INSUFFICIENT_AMOUNT.value,
                expected=self.settings.TEST_PRICE_LAMPORTS,
                actual=delta,
            )
            return PaymentVerification.declined(PaymentFailure.INSUFFICIENT_AMOUNT, amount=delta, payer=payer)

        if delta < self.settings.TEST_PRICE_LAMPORTS:
            log.warning("payment_shortfall_accepted", expected=self.settings.TEST_PRICE_LAMPORTS, actual=delta)

        # 6. Commit; a concurrent request may have won the insert
        committed = await run_in_threadpool(self.storage.record_payment, PaymentRecord(
            signature=signature,
            payer_address=payer,
            amount=delta,
            recorded_at=datetime.now(timezone.utc),
        ))
        if not committed:
            log.warning("payment_declined", reason=PaymentFailure.ALREADY_USED.value, race=True)
            return PaymentVerification.declined(PaymentFailure.ALREADY_USED, amount=delta, payer=payer)

        log.info("payment_verified", amount_lamports=delta, amount_sol=delta / LAMPORTS_PER_SOL)
        return PaymentVerification(verified=True, amount=delta, payer=payer)
