"""
Pydantic Schemas — Domain records plus request & response models for API validation.
JSON field names are camelCase to match the web client.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from skillchain.utils.validators import validate_wallet_address, validate_signature


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def _wallet(value: str) -> str:
    value = value.strip()
    if not validate_wallet_address(value):
        raise ValueError("Invalid Solana wallet address")
    return value


# ──────────────── Tiers ────────────────

class Level(str, Enum):
    SENIOR = "Senior"
    MIDDLE = "Middle"
    JUNIOR = "Junior"
    FAILED = "Failed"


# ──────────────── Categories ────────────────

class Category(CamelModel):
    id: str
    name: str
    level: int


class CategoriesRequest(CamelModel):
    level: int = Field(..., ge=1, le=3, description="1 = field, 2 = area, 3 = specific topic")
    parent_category: Optional[str] = Field(None, max_length=200)


class CategoriesResponse(CamelModel):
    categories: List[Category]


# ──────────────── Tests ────────────────

class Question(CamelModel):
    id: str
    question: str
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: int = Field(..., ge=0, le=3)
    points: int


class PublicQuestion(CamelModel):
    """Question as served to the test taker: no solution fields."""
    id: str
    question: str
    options: List[str]
    points: int


class Test(CamelModel):
    id: str
    topic: str
    main_category: str
    narrow_category: str
    specific_category: str
    questions: List[Question]
    created_at: datetime

    @property
    def category_path(self) -> tuple[str, str, str]:
        return (self.main_category, self.narrow_category, self.specific_category)


class PublicTest(CamelModel):
    id: str
    topic: str
    main_category: str
    narrow_category: str
    specific_category: str
    questions: List[PublicQuestion]
    created_at: datetime


class GenerateTestRequest(CamelModel):
    main_category: str = Field(..., min_length=1, max_length=128)
    narrow_category: str = Field(..., min_length=1, max_length=128)
    specific_category: str = Field(..., min_length=1, max_length=128)
    wallet_address: str
    payment_signature: str = Field(..., description="Transaction signature for backend verification")

    @field_validator("wallet_address")
    @classmethod
    def check_wallet(cls, value: str) -> str:
        return _wallet(value)

    @field_validator("payment_signature")
    @classmethod
    def check_signature(cls, value: str) -> str:
        value = value.strip()
        if not validate_signature(value):
            raise ValueError("Invalid transaction signature")
        return value


class GenerateTestResponse(CamelModel):
    test: Test
    payment_required: bool = True
    amount: float  # SOL


# ──────────────── Submission ────────────────

class TestSubmissionRequest(CamelModel):
    test_id: str = Field(..., min_length=1, max_length=128)
    wallet_address: str
    answers: List[Optional[int]] = Field(..., max_length=100)  # null = unanswered

    @field_validator("wallet_address")
    @classmethod
    def check_wallet(cls, value: str) -> str:
        return _wallet(value)


class TestResult(CamelModel):
    test_id: str
    wallet_address: str
    topic: str
    score: int
    level: Level
    correct_answers: int
    total_questions: int
    total_points: int
    passed: bool
    sol_reward: float
    completed_at: datetime


class Certificate(CamelModel):
    id: str
    wallet_address: str
    test_id: Optional[str] = None
    topic: str
    level: Level
    score: int
    nft_mint: Optional[str] = None
    nft_metadata_uri: Optional[str] = None
    earned_at: datetime


# ──────────────── Payments ────────────────

class PaymentRecord(CamelModel):
    signature: str
    payer_address: str
    amount: int  # Lamports received by the treasury
    recorded_at: datetime


# ──────────────── User ────────────────

class UserStats(CamelModel):
    wallet_address: str
    total_tests: int = 0
    total_certificates: int = 0
    success_rate: int = 0
    total_sol_earned: float = 0.0
    certificates: List[Certificate] = []


# ──────────────── Generic ────────────────

class ErrorResponse(CamelModel):
    error: str
    reason: Optional[str] = None
