"""
SQL storage backend (SQLAlchemy).

Uniqueness lives in the database: `payment_signatures.signature` and
`test_results.test_id` are unique, so concurrent duplicate inserts lose with
an IntegrityError that is reported as a False or None return. A graded
submission writes its result, certificate and stats increment in one
transaction. The counters use a single UPDATE whose right-hand sides read the
pre-update row, so concurrent submissions for one wallet never lose an
increment.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from skillchain.database import SessionLocal
from skillchain.models.payment import PaymentSignature
from skillchain.models.assessment import TestRecord, TestResultRecord, CertificateRecord
from skillchain.models.stats import UserStatsRecord
from skillchain.schemas.schemas import Certificate, PaymentRecord, Test, TestResult, UserStats
from skillchain.storage.base import lamports_to_sol
from skillchain.utils.logger import get_logger, short

logger = get_logger(__name__)


class SQLStorage:
    """Durable Storage implementation over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker | None = None):
        self._session_factory = session_factory or SessionLocal

    # ──────────────── Signature ledger ────────────────

    def is_payment_signature_used(self, signature: str) -> bool:
        with self._session_factory() as db:
            row = db.query(PaymentSignature.id).filter(PaymentSignature.signature == signature).first()
            return row is not None

    def record_payment(self, record: PaymentRecord) -> bool:
        with self._session_factory() as db:
            db.add(PaymentSignature(
                signature=record.signature,
                wallet_address=record.payer_address,
                amount=record.amount,
                created_at=record.recorded_at,
            ))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("payment_signature_conflict", signature=short(record.signature))
                return False
        return True

    def get_payment(self, signature: str) -> Optional[PaymentRecord]:
        with self._session_factory() as db:
            row = db.query(PaymentSignature).filter(PaymentSignature.signature == signature).first()
            if not row:
                return None
            return PaymentRecord(
                signature=row.signature,
                payer_address=row.wallet_address,
                amount=row.amount,
                recorded_at=row.created_at,
            )

    # ──────────────── Tests ────────────────

    def create_test(self, test: Test) -> Test:
        with self._session_factory() as db:
            db.add(TestRecord(
                id=test.id,
                topic=test.topic,
                main_category=test.main_category,
                narrow_category=test.narrow_category,
                specific_category=test.specific_category,
                questions=[q.model_dump() for q in test.questions],
                created_at=test.created_at,
            ))
            db.commit()
        return test

    def get_test(self, test_id: str) -> Optional[Test]:
        with self._session_factory() as db:
            row = db.get(TestRecord, test_id)
            return Test.model_validate(row) if row else None

    # ──────────────── Results, certificates & stats ────────────────

    def is_test_submitted(self, test_id: str) -> bool:
        with self._session_factory() as db:
            row = db.query(TestResultRecord.id).filter(TestResultRecord.test_id == test_id).first()
            return row is not None

    def record_graded_submission(
        self, result: TestResult, certificate: Optional[Certificate], reward_lamports: int
    ) -> Optional[UserStats]:
        wallet_address = result.wallet_address
        self._ensure_stats_row(wallet_address)
        cert_inc = 1 if result.passed else 0
        tests_after = UserStatsRecord.total_tests + 1
        certs_after = UserStatsRecord.total_certificates + cert_inc

        # Result, certificate and counters commit together or not at all
        with self._session_factory() as db:
            db.add(TestResultRecord(
                test_id=result.test_id,
                wallet_address=wallet_address,
                topic=result.topic,
                score=result.score,
                level=result.level.value,
                correct_answers=result.correct_answers,
                total_questions=result.total_questions,
                total_points=result.total_points,
                passed=result.passed,
                sol_reward_lamports=reward_lamports,
                completed_at=result.completed_at,
            ))
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                logger.info("test_result_conflict", test_id=result.test_id)
                return None

            if certificate is not None:
                db.add(CertificateRecord(
                    id=certificate.id,
                    wallet_address=certificate.wallet_address,
                    test_id=certificate.test_id,
                    topic=certificate.topic,
                    level=certificate.level.value,
                    score=certificate.score,
                    nft_mint=certificate.nft_mint,
                    nft_metadata_uri=certificate.nft_metadata_uri,
                    earned_at=certificate.earned_at,
                ))

            db.execute(
                update(UserStatsRecord)
                .where(UserStatsRecord.wallet_address == wallet_address)
                .values(
                    total_tests=tests_after,
                    total_certificates=certs_after,
                    total_sol_earned_lamports=UserStatsRecord.total_sol_earned_lamports + reward_lamports,
                    # round-half-up in integer arithmetic
                    success_rate=(certs_after * 200 + tests_after) // (tests_after * 2),
                    updated_at=datetime.now(timezone.utc),
                )
            )
            db.commit()
        return self.get_user_stats(wallet_address)

    def list_certificates(self, wallet_address: str) -> list[Certificate]:
        with self._session_factory() as db:
            rows = (
                db.query(CertificateRecord)
                .filter(CertificateRecord.wallet_address == wallet_address)
                .order_by(CertificateRecord.earned_at.asc())
                .all()
            )
            return [Certificate.model_validate(r) for r in rows]

    def _ensure_stats_row(self, wallet_address: str) -> None:
        with self._session_factory() as db:
            if db.get(UserStatsRecord, wallet_address) is not None:
                return
        with self._session_factory() as db:
            db.add(UserStatsRecord(
                wallet_address=wallet_address,
                total_tests=0,
                total_certificates=0,
                success_rate=0,
                total_sol_earned_lamports=0,
            ))
            try:
                db.commit()
            except IntegrityError:
                # Created concurrently by another request
                db.rollback()

    def get_user_stats(self, wallet_address: str) -> UserStats:
        self._ensure_stats_row(wallet_address)
        with self._session_factory() as db:
            row = db.get(UserStatsRecord, wallet_address)
            return UserStats(
                wallet_address=row.wallet_address,
                total_tests=row.total_tests,
                total_certificates=row.total_certificates,
                success_rate=row.success_rate,
                total_sol_earned=lamports_to_sol(row.total_sol_earned_lamports),
                certificates=self.list_certificates(wallet_address),
            )

    def ping(self) -> bool:
        with self._session_factory() as db:
            db.execute(text("SELECT 1"))
        return True
