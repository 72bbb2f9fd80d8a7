"""
User Stats Model — Aggregate counters per wallet address.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, BigInteger, DateTime

from skillchain.database import Base


class UserStatsRecord(Base):
    __tablename__ = "user_stats"

    wallet_address = Column(String(64), primary_key=True)

    total_tests = Column(Integer, nullable=False, default=0)
    total_certificates = Column(Integer, nullable=False, default=0)
    success_rate = Column(Integer, nullable=False, default=0)        # Rounded percentage
    total_sol_earned_lamports = Column(BigInteger, nullable=False, default=0)

    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
