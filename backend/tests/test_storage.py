"""
Storage backends: insert-if-absent semantics and atomic stats under concurrency.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from factories import OTHER_WALLET, PAYER, make_questions, make_signature
from skillchain.config import Settings
from skillchain.schemas import schemas
from skillchain.storage import MemoryStorage, SQLStorage, Storage, create_storage
from skillchain.storage.base import success_rate


def _payment(signature, payer=PAYER, amount=1_000_000_000):
    return schemas.PaymentRecord(signature=signature, payer_address=payer, amount=amount, recorded_at=datetime.now(timezone.utc))


def _result(test_id, wallet=PAYER, passed=True):
    return schemas.TestResult(
        test_id=test_id,
        wallet_address=wallet,
        topic="Design > UX > Research",
        score=90 if passed else 40,
        level=schemas.Level.SENIOR if passed else schemas.Level.FAILED,
        correct_answers=9 if passed else 4,
        total_questions=10,
        total_points=100,
        passed=passed,
        sol_reward=0.15 if passed else 0.0,
        completed_at=datetime.now(timezone.utc),
    )


def test_backends_satisfy_protocol(memory_storage, sql_storage):
    assert isinstance(memory_storage, Storage)
    assert isinstance(sql_storage, Storage)


def test_record_payment_is_insert_if_absent(storage):
    sig = make_signature(1)

    assert storage.is_payment_signature_used(sig) is False
    assert storage.record_payment(_payment(sig)) is True
    assert storage.record_payment(_payment(sig, payer=OTHER_WALLET, amount=5)) is False

    stored = storage.get_payment(sig)
    assert storage.is_payment_signature_used(sig) is True
    assert stored.payer_address == PAYER
    assert stored.amount == 1_000_000_000


def test_concurrent_record_payment_has_one_winner(storage):
    sig = make_signature(2)

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: storage.record_payment(_payment(sig)), range(16)))

    assert outcomes.count(True) == 1
    assert outcomes.count(False) == 15


def test_test_round_trip_keeps_answers_server_side(storage):
    test = schemas.Test(
        id=f"{PAYER}-abc",
        topic="A > B > C",
        main_category="A",
        narrow_category="B",
        specific_category="C",
        questions=make_questions(),
        created_at=datetime.now(timezone.utc),
    )
    storage.create_test(test)

    loaded = storage.get_test(test.id)
    assert loaded.category_path == ("A", "B", "C")
    assert [q.correct_answer for q in loaded.questions] == [q.correct_answer for q in test.questions]
    assert storage.get_test("nope") is None


def _certificate(test_id, wallet=PAYER, cert_id="c-1"):
    return schemas.Certificate(
        id=cert_id,
        wallet_address=wallet,
        test_id=test_id,
        topic="Design > UX > Research",
        level=schemas.Level.SENIOR,
        score=90,
        nft_mint="MOCK-1234abcd",
        nft_metadata_uri="https://arweave.net/x",
        earned_at=datetime.now(timezone.utc),
    )


def _submit(storage, test_id, wallet=PAYER, passed=True, reward=150_000_000):
    certificate = _certificate(test_id, wallet, cert_id=f"c-{test_id}") if passed else None
    return storage.record_graded_submission(_result(test_id, wallet, passed), certificate, reward if passed else 0)


def test_duplicate_result_is_rejected_without_writes(storage):
    first = _submit(storage, "t-1")
    second = _submit(storage, "t-1", passed=False)

    assert first.total_tests == 1
    assert second is None
    assert storage.is_test_submitted("t-1") is True
    assert storage.is_test_submitted("t-2") is False
    stats = storage.get_user_stats(PAYER)
    assert stats.total_tests == 1
    assert len(stats.certificates) == 1


def test_stats_row_is_created_lazily(storage):
    stats = storage.get_user_stats(OTHER_WALLET)

    assert stats.wallet_address == OTHER_WALLET
    assert stats.total_tests == 0
    assert stats.total_certificates == 0
    assert stats.success_rate == 0
    assert stats.total_sol_earned == 0
    assert stats.certificates == []


@pytest.mark.parametrize("outcomes,rate", [
    ([True, False, False], 33),
    ([True, True, False], 67),
    ([True, False], 50),
    ([False, False], 0),
])
def test_success_rate_rounding(storage, outcomes, rate):
    for i, passed in enumerate(outcomes):
        stats = _submit(storage, f"t-{i}", passed=passed)

    assert stats.total_tests == len(outcomes)
    assert stats.success_rate == rate
    assert stats.success_rate == success_rate(outcomes.count(True), len(outcomes))


def test_concurrent_submissions_never_lose_updates(storage):
    n = 20

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: _submit(storage, f"t-{i}"), range(n)))

    stats = storage.get_user_stats(PAYER)
    assert stats.total_tests == n
    assert stats.total_certificates == n
    assert stats.success_rate == 100
    assert stats.total_sol_earned == pytest.approx(n * 0.15)
    assert len(stats.certificates) == n


def test_concurrent_duplicate_submissions_count_once(storage):
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: _submit(storage, "t-same"), range(10)))

    assert sum(1 for o in outcomes if o is not None) == 1
    stats = storage.get_user_stats(PAYER)
    assert stats.total_tests == 1
    assert len(stats.certificates) == 1


def test_stats_include_wallet_certificates(storage):
    _submit(storage, "t-1")

    assert [c.id for c in storage.get_user_stats(PAYER).certificates] == ["c-t-1"]
    assert storage.get_user_stats(OTHER_WALLET).certificates == []


def test_ping(storage):
    assert storage.ping() is True


def test_create_storage_selects_backend():
    assert isinstance(create_storage(Settings(STORAGE_BACKEND="memory")), MemoryStorage)
    assert isinstance(create_storage(Settings(STORAGE_BACKEND="sql")), SQLStorage)
    with pytest.raises(ValueError):
        create_storage(Settings(STORAGE_BACKEND="redis"))
