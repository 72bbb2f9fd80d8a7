"""
Domain exceptions raised by services and mapped to HTTP responses in main.py.
"""


class SkillChainError(Exception):
    """Base class for application errors."""

    status_code = 500
    public_message = "Internal server error"


class PaymentRequiredError(SkillChainError):
    """The payment verifier declined the claimed payment."""

    status_code = 402

    def __init__(self, reason, message: str | None = None):
        self.reason = reason
        self.public_message = message or reason.message
        super().__init__(self.public_message)


class LedgerUnavailableError(SkillChainError):
    """The ledger could not be queried (transport error, RPC fault)."""

    status_code = 503
    public_message = "Payment network is unavailable. Please retry shortly."


class GenerationError(SkillChainError):
    """The AI collaborator failed or returned an unusable test."""

    status_code = 502
    public_message = "Failed to generate test"


class MintingError(SkillChainError):
    """Credential minting failed. Recovered locally by the scoring engine."""


class StorageError(SkillChainError):
    """A write could not be confirmed by reading it back."""


class TestNotFoundError(SkillChainError):
    status_code = 404
    public_message = "Test not found"


class DuplicateSubmissionError(SkillChainError):
    """Answers for this test were already submitted."""

    status_code = 409
    public_message = "Test has already been submitted"
