from skillchain.models.payment import PaymentSignature
from skillchain.models.assessment import TestRecord, TestResultRecord, CertificateRecord
from skillchain.models.stats import UserStatsRecord

__all__ = ["PaymentSignature", "TestRecord", "TestResultRecord", "CertificateRecord", "UserStatsRecord"]
