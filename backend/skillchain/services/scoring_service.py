"""
Scoring & Reward Engine — Grades submissions, assigns tiers, issues rewards
and certificates, and folds each submission into the wallet's stats.
"""
import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from fastapi.concurrency import run_in_threadpool

from skillchain.config import Settings, LAMPORTS_PER_SOL, get_settings
from skillchain.exceptions import DuplicateSubmissionError, TestNotFoundError
from skillchain.schemas.schemas import Certificate, Level, Question, TestResult
from skillchain.services.minter import CredentialMinter, MintedCredential, placeholder_credential
from skillchain.storage.base import Storage
from skillchain.utils.logger import get_logger, short

logger = get_logger(__name__)


@dataclass(frozen=True)
class Tier:
    level: Level
    passed: bool
    reward_rate: float


def grade(questions: Sequence[Question], answers: Sequence[Optional[int]]) -> int:
    """Count positions where the answer equals the correct option.

    Missing, null or out-of-range answers count as incorrect.
    """
    correct = 0
    for index, question in enumerate(questions):
        if index >= len(answers):
            break
        answer = answers[index]
        if isinstance(answer, bool) or not isinstance(answer, int):
            continue
        if answer == question.correct_answer:
            correct += 1
    return correct


def tier_for(score: int, settings: Settings) -> Tier:
    """Tier table, evaluated high to low; first match wins."""
    if score >= settings.SENIOR_MIN_SCORE:
        return Tier(Level.SENIOR, True, settings.SENIOR_REWARD_RATE)
    if score >= settings.MIDDLE_MIN_SCORE:
        return Tier(Level.MIDDLE, True, settings.MIDDLE_REWARD_RATE)
    if score >= settings.JUNIOR_MIN_SCORE:
        return Tier(Level.JUNIOR, True, settings.JUNIOR_REWARD_RATE)
    return Tier(Level.FAILED, False, 0.0)


def reward_lamports_for(score: int, settings: Settings) -> int:
    """Reward in lamports: tier rate times the test price; zero iff failed."""
    tier = tier_for(score, settings)
    if not tier.passed:
        return 0
    return round(settings.TEST_PRICE_LAMPORTS * tier.reward_rate)


def reward_for(score: int, settings: Settings) -> float:
    """Reward in SOL."""
    return reward_lamports_for(score, settings) / LAMPORTS_PER_SOL


class ScoringService:
    """Handles test submissions end to end."""

    def __init__(self, storage: Storage, minter: CredentialMinter, settings: Settings | None = None):
        self.storage = storage
        self.minter = minter
        self.settings = settings or get_settings()

    async def _mint(self, wallet_address: str, topic: str, level: Level, score: int) -> MintedCredential:
        """Mint the credential; fall back to a placeholder so submission never blocks."""
        try:
            return await asyncio.wait_for(
                self.minter.mint(wallet_address, topic, level.value, score),
                timeout=self.settings.MINT_TIMEOUT_SECONDS,
            )
        except Exception as e:
            credential = placeholder_credential()
            logger.warning(
                "mint_failed_placeholder_issued",
                wallet=short(wallet_address),
                placeholder=credential.mint,
                error=str(e) or type(e).__name__,
            )
            return credential

    async def submit(self, test_id: str, wallet_address: str, answers: Sequence[Optional[int]]) -> TestResult:
        """Grade a submission and apply its side effects.

        The result, certificate and stats increment are stored together, so a
        failed write leaves the test open for a retry.

        Raises:
            TestNotFoundError: no test with this id.
            DuplicateSubmissionError: the test was already submitted.
        """
        test = await run_in_threadpool(self.storage.get_test, test_id)
        if not test:
            raise TestNotFoundError(test_id)

        if await run_in_threadpool(self.storage.is_test_submitted, test_id):
            logger.warning("submission_rejected_duplicate", test_id=test_id, wallet=short(wallet_address))
            raise DuplicateSubmissionError(test_id)

        correct = grade(test.questions, answers)
        score = correct * self.settings.POINTS_PER_QUESTION
        tier = tier_for(score, self.settings)
        reward_lamports = reward_lamports_for(score, self.settings)
        now = datetime.now(timezone.utc)

        result = TestResult(
            test_id=test.id,
            wallet_address=wallet_address,
            topic=test.topic,
            score=score,
            level=tier.level,
            correct_answers=correct,
            total_questions=len(test.questions),
            total_points=sum(q.points for q in test.questions),
            passed=tier.passed,
            sol_reward=reward_lamports / LAMPORTS_PER_SOL,
            completed_at=now,
        )

        certificate = None
        if tier.passed:
            credential = await self._mint(wallet_address, test.topic, tier.level, score)
            certificate = Certificate(
                id=str(uuid.uuid4()),
                wallet_address=wallet_address,
                test_id=test.id,
                topic=test.topic,
                level=tier.level,
                score=score,
                nft_mint=credential.mint,
                nft_metadata_uri=credential.metadata_uri,
                earned_at=now,
            )

        stats = await run_in_threadpool(
            self.storage.record_graded_submission, result, certificate, reward_lamports,
        )
        if stats is None:
            # A concurrent submission for the same test committed first
            logger.warning(
                "submission_rejected_duplicate",
                test_id=test_id,
                wallet=short(wallet_address),
                discarded_mint=certificate.nft_mint if certificate else None,
            )
            raise DuplicateSubmissionError(test_id)

        logger.info(
            "test_submitted",
            test_id=test_id,
            wallet=short(wallet_address),
            score=score,
            level=tier.level.value,
            passed=tier.passed,
            total_tests=stats.total_tests,
            success_rate=stats.success_rate,
        )
        return result
