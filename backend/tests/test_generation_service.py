"""
Test generation gated on payment verification.
"""

from datetime import timedelta

import pytest

from factories import PAYER, FakeGenerator, make_payment_tx, make_signature
from skillchain import exceptions
from skillchain.services.generation_service import GenerationService, format_topic, sanitize_test
from skillchain.services.payment_verifier import PaymentFailure, PaymentVerifier

PATH = ("Programming", "Python", "Asyncio")


def _service(storage, ledger, generator, settings):
    return GenerationService(storage, PaymentVerifier(storage, ledger, settings), generator, settings)


@pytest.mark.asyncio
async def test_verified_payment_generates_and_stores_test(storage, ledger, generator, settings):
    sig = make_signature(1)
    ledger.add(make_payment_tx(sig))

    test = await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert test.id.startswith(f"{PAYER}-")
    assert test.topic == "Programming > Python > Asyncio"
    assert test.category_path == PATH
    assert len(test.questions) == 10
    assert storage.get_test(test.id) is not None
    assert generator.calls == [PATH]


@pytest.mark.asyncio
async def test_declined_payment_never_reaches_generator(storage, ledger, generator, settings):
    sig = make_signature(2)

    with pytest.raises(exceptions.PaymentRequiredError) as info:
        await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert info.value.reason is PaymentFailure.NOT_FOUND
    assert info.value.status_code == 402
    assert generator.calls == []


@pytest.mark.asyncio
async def test_replayed_signature_is_declined(storage, ledger, generator, settings):
    sig = make_signature(3)
    ledger.add(make_payment_tx(sig))
    service = _service(storage, ledger, generator, settings)
    await service.generate(PAYER, PATH, sig)

    with pytest.raises(exceptions.PaymentRequiredError) as info:
        await service.generate(PAYER, PATH, sig)

    assert info.value.reason is PaymentFailure.ALREADY_USED
    assert len(generator.calls) == 1


@pytest.mark.asyncio
async def test_wrong_question_count_fails_and_keeps_signature_consumed(storage, ledger, settings):
    sig = make_signature(4)
    ledger.add(make_payment_tx(sig))
    generator = FakeGenerator(count=9)

    with pytest.raises(exceptions.GenerationError):
        await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert storage.is_payment_signature_used(sig) is True


@pytest.mark.asyncio
async def test_generator_failure_propagates(storage, ledger, generator, settings):
    sig = make_signature(5)
    ledger.add(make_payment_tx(sig))
    generator.fail = True

    with pytest.raises(exceptions.GenerationError):
        await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert storage.get_payment(sig) is not None


@pytest.mark.asyncio
async def test_ledger_outage_surfaces_as_unavailable(storage, ledger, generator, settings):
    ledger.unavailable = True

    with pytest.raises(exceptions.LedgerUnavailableError):
        await _service(storage, ledger, generator, settings).generate(PAYER, PATH, make_signature(6))

    assert generator.calls == []


@pytest.mark.asyncio
async def test_sanitize_test_drops_correct_answers(storage, ledger, generator, settings):
    sig = make_signature(7)
    ledger.add(make_payment_tx(sig))
    test = await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    public = sanitize_test(test).model_dump(by_alias=True)

    assert public["id"] == test.id
    assert len(public["questions"]) == 10
    assert all("correctAnswer" not in q for q in public["questions"])


def test_format_topic_joins_path():
    assert format_topic((" Design", "UX ", "Research")) == "Design > UX > Research"


class _RecordingLogger:
    def __init__(self):
        self.errors = []

    def error(self, event, **context):
        self.errors.append((event, context))

    def info(self, event, **context):
        pass


class _UnreadableTests:
    """Storage wrapper whose test writes fail or vanish."""

    def __init__(self, inner, mode):
        self.inner = inner
        self.mode = mode

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def create_test(self, test):
        if self.mode == "raise":
            raise RuntimeError("database is locked")
        return self.inner.create_test(test)

    def get_test(self, test_id):
        return None


@pytest.mark.asyncio
@pytest.mark.parametrize("mode,error", [("raise", RuntimeError), ("vanish", exceptions.StorageError)])
async def test_storage_failure_after_payment_is_logged_as_orphaned(
    memory_storage, ledger, generator, settings, monkeypatch, mode, error
):
    from skillchain.services import generation_service

    recorder = _RecordingLogger()
    monkeypatch.setattr(generation_service, "logger", recorder)
    storage = _UnreadableTests(memory_storage, mode)
    sig = make_signature(8)
    ledger.add(make_payment_tx(sig))

    with pytest.raises(error):
        await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert memory_storage.is_payment_signature_used(sig) is True
    [(event, context)] = recorder.errors
    assert event == "payment_orphaned"
    assert context["signature"] == sig
    assert context["payer"] == PAYER
    assert context["amount_lamports"] == 1_000_000_000
    assert context["test_id"].startswith(f"{PAYER}-")


@pytest.mark.asyncio
async def test_generation_failure_is_logged_as_orphaned(storage, ledger, generator, settings, monkeypatch):
    from skillchain.services import generation_service

    recorder = _RecordingLogger()
    monkeypatch.setattr(generation_service, "logger", recorder)
    sig = make_signature(9)
    ledger.add(make_payment_tx(sig))
    generator.fail = True

    with pytest.raises(exceptions.GenerationError):
        await _service(storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert [event for event, _ in recorder.errors] == ["payment_orphaned"]


@pytest.mark.asyncio
async def test_created_at_is_timezone_aware_utc(memory_storage, ledger, generator, settings):
    sig = make_signature(10)
    ledger.add(make_payment_tx(sig))

    test = await _service(memory_storage, ledger, generator, settings).generate(PAYER, PATH, sig)

    assert test.created_at.utcoffset() == timedelta(0)
    assert memory_storage.get_payment(sig).recorded_at.utcoffset() == timedelta(0)
