from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    """
    Application configuration.

    - Secrets are NEVER stored in code.
    - Values are injected via environment variables (.env).
    - Validation happens at startup (fail fast).
    """

    # --------------------------------------------------
    # Database (Audit Store)
    # --------------------------------------------------
    DATABASE_URL: str = "sqlite:///./app.db"

    # --------------------------------------------------
    # HTTP surface
    # --------------------------------------------------
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3001",
    ]
    LOG_LEVEL: str = "INFO"

    # Rate limit for POST /verification/verify-documents (per client)
    RATE_LIMIT_PER_MINUTE: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # --------------------------------------------------
    # Internal Cache (seconds)
    # --------------------------------------------------
    STATUS_CACHE_TTL_SECONDS: int = 300   # verdicts are immutable
    HISTORY_CACHE_TTL_SECONDS: int = 15   # cleared on every new verdict

    # --------------------------------------------------
    # Verification pipeline
    # --------------------------------------------------
    CHECK_TIMEOUT_SECONDS: float = 5.0
    CHECK_ERROR_PENALTY: int = 20
    STRICT_CHECK_ERRORS: bool = True   # a raising check fails the whole run
    POLICY_FILE: str | None = None     # JSON override of the built-in policy

    # Metadata bag bounds
    METADATA_MAX_KEYS: int = 20
    METADATA_MAX_BYTES: int = 2048

    # --------------------------------------------------
    # Oracle payload
    # --------------------------------------------------
    ORACLE_PAYLOAD_MAX_BYTES: int = 256
    ORACLE_MAX_RISK_SCORE: int = 255

    class Config:
        env_file = ".env"
        extra = "ignore"   # Ignore unrelated env vars (Docker / CI friendly)

    def model_post_init(self, __context) -> None:
        """
        Fail fast on values that would make the pipeline unbounded or the
        oracle payload unencodable.
        """
        if self.CHECK_TIMEOUT_SECONDS <= 0:
            raise ValueError("CHECK_TIMEOUT_SECONDS must be > 0")
        if self.CHECK_ERROR_PENALTY < 0:
            raise ValueError("CHECK_ERROR_PENALTY must be >= 0")
        if self.RATE_LIMIT_PER_MINUTE < 1 or self.RATE_LIMIT_WINDOW_SECONDS < 1:
            raise ValueError("RATE_LIMIT_PER_MINUTE and RATE_LIMIT_WINDOW_SECONDS must be >= 1")
        if self.METADATA_MAX_KEYS < 0 or self.METADATA_MAX_BYTES < 2:
            raise ValueError("METADATA_MAX_KEYS must be >= 0 and METADATA_MAX_BYTES >= 2")
        # "1|<score>|ERROR|<ts>|" needs roughly 40 bytes before any detail text
        if self.ORACLE_PAYLOAD_MAX_BYTES < 64:
            raise ValueError("ORACLE_PAYLOAD_MAX_BYTES must be >= 64")
        if self.ORACLE_MAX_RISK_SCORE < 99:
            raise ValueError("ORACLE_MAX_RISK_SCORE must be >= 99 (error verdict score)")


settings = Settings()
