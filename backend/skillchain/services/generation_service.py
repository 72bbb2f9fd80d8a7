"""
Test Generation — Gatekeeps AI test creation behind a verified payment.
"""
import uuid
from datetime import datetime, timezone
from typing import Protocol

from fastapi.concurrency import run_in_threadpool

from skillchain.config import Settings, get_settings
from skillchain.exceptions import GenerationError, PaymentRequiredError, StorageError
from skillchain.schemas.schemas import PublicQuestion, PublicTest, Question, Test
from skillchain.services.payment_verifier import PaymentVerifier
from skillchain.storage.base import Storage
from skillchain.utils.logger import get_logger, short

logger = get_logger(__name__)


class QuestionGenerator(Protocol):
    async def generate_questions(self, category_path: tuple[str, str, str]) -> list[Question]:
        ...


def _log_orphaned_payment(signature: str, payer: str, amount: int, error: Exception, **context) -> None:
    """Paid but no test: the signature stays consumed, so surface it for manual refund."""
    logger.error(
        "payment_orphaned",
        signature=signature,
        payer=payer,
        amount_lamports=amount,
        error=str(error) or type(error).__name__,
        **context,
    )


def format_topic(category_path: tuple[str, str, str]) -> str:
    return " > ".join(part.strip() for part in category_path)


def sanitize_test(test: Test) -> PublicTest:
    """Drop solution fields before a test leaves the server."""
    return PublicTest(
        id=test.id,
        topic=test.topic,
        main_category=test.main_category,
        narrow_category=test.narrow_category,
        specific_category=test.specific_category,
        questions=[
            PublicQuestion(id=q.id, question=q.question, options=q.options, points=q.points)
            for q in test.questions
        ],
        created_at=test.created_at,
    )


class GenerationService:
    """Orchestrates verify -> generate -> persist for new tests."""

    def __init__(
        self,
        storage: Storage,
        verifier: PaymentVerifier,
        generator: QuestionGenerator,
        settings: Settings | None = None,
    ):
        self.storage = storage
        self.verifier = verifier
        self.generator = generator
        self.settings = settings or get_settings()

    async def generate(self, payer_address: str, category_path: tuple[str, str, str], payment_signature: str) -> Test:
        """Create a test for a verified payment.

        Raises:
            PaymentRequiredError: the payment was declined.
            LedgerUnavailableError: the ledger could not be queried.
            GenerationError: the AI collaborator failed or returned the wrong shape.
            StorageError: the test could not be read back after saving.
        """
        verification = await self.verifier.verify(payment_signature, payer_address)
        if not verification:
            raise PaymentRequiredError(verification.reason)

        try:
            questions = await self.generator.generate_questions(category_path)
            if len(questions) != self.settings.QUESTIONS_PER_TEST:
                raise GenerationError(
                    f"Invalid number of questions generated: expected "
                    f"{self.settings.QUESTIONS_PER_TEST}, got {len(questions)}"
                )
        except GenerationError as e:
            _log_orphaned_payment(payment_signature, payer_address, verification.amount, e)
            raise

        test = Test(
            id=f"{payer_address}-{uuid.uuid4()}",
            topic=format_topic(category_path),
            main_category=category_path[0],
            narrow_category=category_path[1],
            specific_category=category_path[2],
            questions=questions,
            created_at=datetime.now(timezone.utc),
        )
        try:
            await run_in_threadpool(self.storage.create_test, test)
            # Read back to confirm durability before answering
            stored = await run_in_threadpool(self.storage.get_test, test.id)
            if stored is None:
                raise StorageError(f"Test {test.id} was not persisted")
        except Exception as e:
            _log_orphaned_payment(payment_signature, payer_address, verification.amount, e, test_id=test.id)
            raise

        logger.info("test_generated", test_id=test.id, payer=short(payer_address), topic=test.topic)
        return stored
