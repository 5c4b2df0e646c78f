import logging
from decimal import Decimal
from typing import Any, ClassVar, FrozenSet

from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_edge.utils.exceptions import ConfigurationError

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Provider (database/auth backend)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    # Empty means unset; the startup guardrail refuses to run without it.
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # Provider HTTP client
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    # Application
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Environment
    # Used for guardrails. Suggested values: dev|staging|prod.
    ENV: str = "dev"

    # CORS: comma-separated origins echoed back as development origins,
    # in addition to any origin containing localhost / 127.0.0.1.
    CORS_DEV_ORIGINS: str = (
        "http://localhost:8080,http://localhost:3000,https://localhost:8080,https://localhost:3000"
    )

    # Observability
    METRICS_ENABLED: bool = True

    # Withdrawals: used when app_settings carries no per-currency cap.
    WITHDRAWAL_DEFAULT_DAILY_CAP: Decimal = Decimal("10000")

    # --- Guardrails ---
    _SAFE_ENVS: ClassVar[FrozenSet[str]] = frozenset({"dev", "development", "test", "testing"})

    def model_post_init(self, __context: Any) -> None:
        # Runs on every Settings() instantiation.
        self._guardrail_provider_config()

    def _guardrail_provider_config(self) -> None:
        problems: list[str] = []
        if not (self.SUPABASE_URL or "").strip():
            problems.append("SUPABASE_URL")
        if not (self.SUPABASE_SERVICE_ROLE_KEY or "").strip():
            problems.append("SUPABASE_SERVICE_ROLE_KEY")

        env = (self.ENV or "").strip().lower()
        if env not in self._SAFE_ENVS and not (self.SUPABASE_ANON_KEY or "").strip():
            problems.append("SUPABASE_ANON_KEY")

        if problems:
            fields = ", ".join(problems)
            raise ConfigurationError(
                f"Refusing to start with missing provider configuration: {fields}. "
                f"Got ENV={self.ENV!r}. "
                "Set them via environment variables or a .env file."
            )

    @property
    def cors_dev_origins(self) -> frozenset[str]:
        return frozenset(o.strip() for o in (self.CORS_DEV_ORIGINS or "").split(",") if o.strip())

    @property
    def provider_url(self) -> str:
        return self.SUPABASE_URL.strip().rstrip("/")


def load_settings(**overrides: Any) -> Settings:
    """Build the process-wide settings object.

    Called once by ``create_app``; the result is passed by reference to every
    component that needs configuration.
    """
    settings = Settings(**overrides)
    _logger.debug("config.loaded env=%s provider_url=%s", settings.ENV, settings.provider_url)
    return settings
