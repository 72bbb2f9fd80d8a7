"""
Payment Signature Model — Permanent anti-replay record of consumed payments.
Rows are only ever inserted; the unique signature column is the idempotency key.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, BigInteger, DateTime

from skillchain.database import Base


class PaymentSignature(Base):
    __tablename__ = "payment_signatures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    signature = Column(String(128), nullable=False, unique=True, index=True)
    wallet_address = Column(String(64), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)   # Lamports received by the treasury

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
