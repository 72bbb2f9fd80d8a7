"""
Test Routes — Paid test generation, test retrieval and answer submission.
"""
from fastapi import APIRouter, Depends

from skillchain.config import Settings, get_settings
from skillchain.dependencies import get_generation_service, get_scoring_service, get_storage
from skillchain.exceptions import TestNotFoundError
from skillchain.schemas.schemas import (
    GenerateTestRequest, GenerateTestResponse, PublicTest,
    TestSubmissionRequest, TestResult, ErrorResponse,
)
from skillchain.services.generation_service import GenerationService, sanitize_test
from skillchain.services.scoring_service import ScoringService
from skillchain.storage import Storage
from skillchain.utils.rate_limiter import rate_limit

settings = get_settings()
router = APIRouter(prefix="/api/tests", tags=["Tests"])


@router.post(
    "/generate",
    response_model=GenerateTestResponse,
    status_code=201,
    responses={402: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def generate_test(
    payload: GenerateTestRequest,
    service: GenerationService = Depends(get_generation_service),
    app_settings: Settings = Depends(get_settings),
    _throttle: bool = Depends(rate_limit(
        requests=settings.GENERATE_RATE_LIMIT, window=settings.GENERATE_RATE_WINDOW, scope="generate",
    )),
):
    """Verify the on-chain payment, then generate and store a new test."""
    test = await service.generate(
        payload.wallet_address,
        (payload.main_category, payload.narrow_category, payload.specific_category),
        payload.payment_signature,
    )
    return GenerateTestResponse(test=test, payment_required=True, amount=app_settings.test_price_sol)


@router.get("/{test_id}", response_model=PublicTest, responses={404: {"model": ErrorResponse}})
def get_test(test_id: str, storage: Storage = Depends(get_storage)):
    """Get a test without its correct answers."""
    test = storage.get_test(test_id)
    if not test:
        raise TestNotFoundError(test_id)
    return sanitize_test(test)


@router.post(
    "/submit",
    response_model=TestResult,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def submit_test(
    payload: TestSubmissionRequest,
    service: ScoringService = Depends(get_scoring_service),
):
    """Grade answers, issue reward and certificate, update stats."""
    return await service.submit(payload.test_id, payload.wallet_address, payload.answers)
