"""Storage protocol - pluggable persistence for payments, tests and stats.

Implementations: SQLStorage (SQLAlchemy, production) and MemoryStorage
(single process only, no durability).
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from skillchain.config import LAMPORTS_PER_SOL
from skillchain.schemas.schemas import Certificate, PaymentRecord, Test, TestResult, UserStats


@runtime_checkable
class Storage(Protocol):
    """Capability interface shared by every backend."""

    # Signature ledger
    def is_payment_signature_used(self, signature: str) -> bool:
        ...

    def record_payment(self, record: PaymentRecord) -> bool:
        """Insert if absent. True if inserted, False if the signature already exists."""
        ...

    def get_payment(self, signature: str) -> Optional[PaymentRecord]:
        ...

    # Tests
    def create_test(self, test: Test) -> Test:
        ...

    def get_test(self, test_id: str) -> Optional[Test]:
        ...

    # Results, certificates & stats
    def is_test_submitted(self, test_id: str) -> bool:
        ...

    def record_graded_submission(
        self, result: TestResult, certificate: Optional[Certificate], reward_lamports: int
    ) -> Optional[UserStats]:
        """Store result, certificate and stats increment as one unit.

        Returns the updated stats, or None if a result for the test already
        exists, in which case nothing is written.
        """
        ...

    def list_certificates(self, wallet_address: str) -> list[Certificate]:
        ...

    def get_user_stats(self, wallet_address: str) -> UserStats:
        """Return stats for a wallet, creating the zero row on first access."""
        ...

    def ping(self) -> bool:
        ...


def success_rate(total_certificates: int, total_tests: int) -> int:
    """Rounded (half up) percentage of passed tests."""
    if total_tests <= 0:
        return 0
    return (total_certificates * 200 + total_tests) // (total_tests * 2)


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL
