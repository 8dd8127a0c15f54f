# Centralised application configuration
# (environment variables, constants, timeouts).

import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    APP_NAME = os.getenv("APP_NAME", "QR Login Service")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET = os.getenv("JWT_SECRET", "dev-change-me-to-a-32-byte-or-longer-secret")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "qr-login-local")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "qr-login-browser")
    SESSION_DURATION_MINUTES = int(os.getenv("SESSION_DURATION_MINUTES", "60"))
    ACCESS_TOKEN_COOKIE = os.getenv("ACCESS_TOKEN_COOKIE", "access_token")

    QR_LOGIN_TTL_SECONDS = int(os.getenv("QR_LOGIN_TTL_SECONDS", "120"))  # 2 Minutes
    QR_LOGIN_TOKEN_BYTES = int(os.getenv("QR_LOGIN_TOKEN_BYTES", "24"))
    MAX_OUTSTANDING_TOKENS = int(os.getenv("MAX_OUTSTANDING_TOKENS", "10000"))

    SWEEPER_ENABLED = _env_bool("SWEEPER_ENABLED", "true")
    SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", "30"))
    PURGE_GRACE_SECONDS = int(os.getenv("PURGE_GRACE_SECONDS", "60"))

    RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", "true")
    RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5"))
    RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "10"))

    # Unset disables the CSV audit trail
    AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE") or None

    @property
    def session_duration_seconds(self) -> int:
        return self.SESSION_DURATION_MINUTES * 60


settings = Settings()
