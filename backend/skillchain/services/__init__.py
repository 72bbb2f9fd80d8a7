from skillchain.services.ledger_client import SolanaLedgerClient
from skillchain.services.payment_verifier import PaymentVerifier, PaymentFailure
from skillchain.services.question_generator import GeminiQuestionGenerator
from skillchain.services.minter import DemoMinter, MintingServiceClient
from skillchain.services.generation_service import GenerationService
from skillchain.services.scoring_service import ScoringService

__all__ = [
    "SolanaLedgerClient", "PaymentVerifier", "PaymentFailure", "GeminiQuestionGenerator",
    "DemoMinter", "MintingServiceClient", "GenerationService", "ScoringService",
]
