from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase settings (only needed by the HTTP auth dependency)
    SUPABASE_URL: str | None = None
    SUPABASE_JWKS_URL: str | None = None

    # Redis settings (only needed when the limiter backend is "redis")
    REDIS_URL: str | None = None

    # =================================================================
    # AUTO-SEND POLICY SETTINGS
    # =================================================================
    AUTOSEND_RATE_LIMIT_MAX: int = 10
    AUTOSEND_RATE_LIMIT_WINDOW_SECONDS: int = 3600  # 1 hour
    AUTOSEND_RATE_LIMIT_BACKEND: str = "memory"  # "memory" or "redis"
    AUTOSEND_QUOTA_POLICY: str = "on_attempt"  # "on_attempt" or "on_send"
    AUTOSEND_SENTIMENT_FLOOR: float = 0.30

    # None = use the built-in forbidden topic matchers
    AUTOSEND_FORBIDDEN_PATTERNS: list[str] | None = None

    # =================================================================
    # DELTA FEEDBACK SETTINGS
    # =================================================================
    DELTA_NEGLIGIBLE_BELOW: float = 0.05
    DELTA_FULL_REWRITE_ABOVE: float = 0.80

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def jwks_url(self) -> str | None:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        if not self.SUPABASE_URL:
            return None
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def get_rate_limit_config(self) -> dict:
        """
        Get auto-send rate limit configuration.
        Development keeps the production limits so behaviour matches staging.
        """
        return {
            "max_sends": self.AUTOSEND_RATE_LIMIT_MAX,
            "window_seconds": self.AUTOSEND_RATE_LIMIT_WINDOW_SECONDS,
            "backend": self.AUTOSEND_RATE_LIMIT_BACKEND.lower(),
        }

    def get_delta_thresholds(self) -> dict:
        return {
            "negligible_below": self.DELTA_NEGLIGIBLE_BELOW,
            "full_rewrite_above": self.DELTA_FULL_REWRITE_ABOVE,
        }


settings = Settings()
