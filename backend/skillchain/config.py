"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.

Payment and scoring constants live here so the verifier and the scoring
engine always agree on price, thresholds and reward rates.
"""
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent

LAMPORTS_PER_SOL = 1_000_000_000


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "SkillChain API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'skillchain.db'}"
    STORAGE_BACKEND: str = "sql"  # sql | memory (memory is non-production)
    DB_TIMEOUT_SECONDS: float = 10.0

    # --- Solana ---
    SOLANA_RPC_URL: str = "https://api.devnet.solana.com"
    SOLANA_COMMITMENT: str = "confirmed"
    LEDGER_TIMEOUT_SECONDS: float = 15.0
    TREASURY_WALLET: str = "9B5XszUGdMaxCZ7uSQhPzdks5ZQSmWxrmzCSvtJ6Ns6g"

    # --- Payment ---
    TEST_PRICE_LAMPORTS: int = 1 * LAMPORTS_PER_SOL
    PAYMENT_TOLERANCE: float = 0.95

    # --- Test layout ---
    QUESTIONS_PER_TEST: int = 10
    POINTS_PER_QUESTION: int = 10

    # --- Tiers (minimum score, inclusive) ---
    SENIOR_MIN_SCORE: int = 90
    MIDDLE_MIN_SCORE: int = 80
    JUNIOR_MIN_SCORE: int = 70

    # --- Rewards (fraction of the test price) ---
    SENIOR_REWARD_RATE: float = 0.15
    MIDDLE_REWARD_RATE: float = 0.12
    JUNIOR_REWARD_RATE: float = 0.10

    # --- AI ---
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT_SECONDS: float = 60.0

    # --- Certificates ---
    MINTER_URL: str = ""  # empty -> demo minter
    MINT_TIMEOUT_SECONDS: float = 30.0
    PLATFORM_NAME: str = "SkillChain"
    CERTIFICATE_SYMBOL: str = "SKILL"
    CERTIFICATE_IMAGE_BASE_URL: str = "https://skillchain.app/certificates"
    SOLANA_NETWORK_LABEL: str = "Solana Devnet"

    # --- Security ---
    CORS_ORIGINS: list[str] = ["*"]
    GENERATE_RATE_LIMIT: int = 5
    GENERATE_RATE_WINDOW: int = 60

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json | console

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def pass_threshold(self) -> int:
        return self.JUNIOR_MIN_SCORE

    @property
    def total_points(self) -> int:
        return self.QUESTIONS_PER_TEST * self.POINTS_PER_QUESTION

    @property
    def test_price_sol(self) -> float:
        return self.TEST_PRICE_LAMPORTS / LAMPORTS_PER_SOL


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
