"""
Assessment Models — Generated tests, graded results and issued certificates.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, BigInteger, Boolean, DateTime, JSON

from skillchain.database import Base


class TestRecord(Base):
    __tablename__ = "tests"

    id = Column(String(128), primary_key=True)
    topic = Column(String(512), nullable=False)
    main_category = Column(String(128), nullable=False)
    narrow_category = Column(String(128), nullable=False)
    specific_category = Column(String(128), nullable=False)

    # [{id, question, options[4], correct_answer, points}]
    questions = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class TestResultRecord(Base):
    __tablename__ = "test_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # One submission per test
    test_id = Column(String(128), nullable=False, unique=True, index=True)
    wallet_address = Column(String(64), nullable=False, index=True)
    topic = Column(String(512), nullable=False)

    score = Column(Integer, nullable=False)             # 0..total_points
    level = Column(String(16), nullable=False)          # Senior | Middle | Junior | Failed
    correct_answers = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    total_points = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False, default=False)
    sol_reward_lamports = Column(BigInteger, nullable=False, default=0)

    completed_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class CertificateRecord(Base):
    __tablename__ = "certificates"

    id = Column(String(36), primary_key=True)
    wallet_address = Column(String(64), nullable=False, index=True)
    test_id = Column(String(128), nullable=True)
    topic = Column(String(512), nullable=False)
    level = Column(String(16), nullable=False)
    score = Column(Integer, nullable=False)

    nft_mint = Column(String(64), nullable=True)
    nft_metadata_uri = Column(String(256), nullable=True)

    earned_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
