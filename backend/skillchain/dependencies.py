"""
FastAPI dependencies: one shared instance of each collaborator per process,
composed into request-scoped services. Tests swap collaborators through
app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends

from skillchain.config import Settings, get_settings
from skillchain.services.generation_service import GenerationService
from skillchain.services.ledger_client import SolanaLedgerClient
from skillchain.services.minter import create_minter
from skillchain.services.payment_verifier import PaymentVerifier
from skillchain.services.question_generator import GeminiQuestionGenerator
from skillchain.services.scoring_service import ScoringService
from skillchain.storage import Storage, create_storage


@lru_cache()
def get_storage() -> Storage:
    return create_storage(get_settings())


@lru_cache()
def get_ledger_client() -> SolanaLedgerClient:
    return SolanaLedgerClient(get_settings())


@lru_cache()
def get_question_generator() -> GeminiQuestionGenerator:
    return GeminiQuestionGenerator(get_settings())


@lru_cache()
def get_minter():
    return create_minter(get_settings())


def get_generation_service(
    storage: Storage = Depends(get_storage),
    ledger=Depends(get_ledger_client),
    generator=Depends(get_question_generator),
    settings: Settings = Depends(get_settings),
) -> GenerationService:
    verifier = PaymentVerifier(storage, ledger, settings)
    return GenerationService(storage, verifier, generator, settings)


def get_scoring_service(
    storage: Storage = Depends(get_storage),
    minter=Depends(get_minter),
    settings: Settings = Depends(get_settings),
) -> ScoringService:
    return ScoringService(storage, minter, settings)
