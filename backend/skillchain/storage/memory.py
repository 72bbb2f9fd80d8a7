"""
In-memory storage backend.

Not for production: state lives in this process only, is lost on restart and
gives no guarantees across multiple server instances. A single lock makes
insert-if-absent and stats updates atomic within the process.
"""
import threading
from typing import Dict, List, Optional

from skillchain.schemas.schemas import Certificate, PaymentRecord, Test, TestResult, UserStats
from skillchain.storage.base import lamports_to_sol, success_rate


class MemoryStorage:
    """Dict-backed Storage implementation."""

    def __init__(self):
        self._lock = threading.Lock()
        self._payments: Dict[str, PaymentRecord] = {}
        self._tests: Dict[str, Test] = {}
        self._results: Dict[str, TestResult] = {}
        self._certificates: List[Certificate] = []
        self._stats: Dict[str, dict] = {}

    def is_payment_signature_used(self, signature: str) -> bool:
        with self._lock:
            return signature in self._payments

    def record_payment(self, record: PaymentRecord) -> bool:
        with self._lock:
            if record.signature in self._payments:
                return False
            self._payments[record.signature] = record.model_copy()
            return True

    def get_payment(self, signature: str) -> Optional[PaymentRecord]:
        with self._lock:
            record = self._payments.get(signature)
            return record.model_copy() if record else None

    def create_test(self, test: Test) -> Test:
        with self._lock:
            self._tests[test.id] = test.model_copy(deep=True)
        return test

    def get_test(self, test_id: str) -> Optional[Test]:
        with self._lock:
            test = self._tests.get(test_id)
            return test.model_copy(deep=True) if test else None

    def is_test_submitted(self, test_id: str) -> bool:
        with self._lock:
            return test_id in self._results

    def list_certificates(self, wallet_address: str) -> list[Certificate]:
        with self._lock:
            return [c.model_copy() for c in self._certificates if c.wallet_address == wallet_address]

    @staticmethod
    def _zero_row() -> dict:
        return {
            "total_tests": 0,
            "total_certificates": 0,
            "success_rate": 0,
            "total_sol_earned_lamports": 0,
        }

    def _row(self, wallet_address: str) -> dict:
        return self._stats.setdefault(wallet_address, self._zero_row())

    def _to_stats(self, wallet_address: str, row: dict) -> UserStats:
        return UserStats(
            wallet_address=wallet_address,
            total_tests=row["total_tests"],
            total_certificates=row["total_certificates"],
            success_rate=row["success_rate"],
            total_sol_earned=lamports_to_sol(row["total_sol_earned_lamports"]),
            certificates=[c.model_copy() for c in self._certificates if c.wallet_address == wallet_address],
        )

    def get_user_stats(self, wallet_address: str) -> UserStats:
        with self._lock:
            return self._to_stats(wallet_address, self._row(wallet_address))

    def record_graded_submission(
        self, result: TestResult, certificate: Optional[Certificate], reward_lamports: int
    ) -> Optional[UserStats]:
        wallet_address = result.wallet_address
        with self._lock:
            if result.test_id in self._results:
                return None

            # Build every new value before touching shared state
            row = dict(self._stats.get(wallet_address) or self._zero_row())
            row["total_tests"] += 1
            if result.passed:
                row["total_certificates"] += 1
            row["total_sol_earned_lamports"] += reward_lamports
            row["success_rate"] = success_rate(row["total_certificates"], row["total_tests"])
            stored_result = result.model_copy()
            stored_certificate = certificate.model_copy() if certificate else None

            self._results[result.test_id] = stored_result
            if stored_certificate:
                self._certificates.append(stored_certificate)
            self._stats[wallet_address] = row
            return self._to_stats(wallet_address, row)

    def ping(self) -> bool:
        return True
