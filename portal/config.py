"""
Application Configuration.

Pydantic Settings model for the project file portal engine.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_STORAGE_BUCKET: str = "project-files"

    # --- Local store ---
    SQLITE_PATH: str = "portal_local.db"

    # --- Email / SMTP ---
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: SecretStr = SecretStr("")
    MAIL_SENDER_NAME: str = "Green Power"

    # --- Links and branding used in notification bodies ---
    PORTAL_URL: str = "https://your-portal-url.com"
    ADMIN_PANEL_URL: str = "http://localhost:3000"
    COMPANY_NAME: str = "Green Power"

    # --- Project folder zones ---
    REPORTS_FOLDER: str = "03_Reports"
    CUSTOMER_UPLOADS_FOLDER: str = "01_Customer_Uploads"

    # --- Approval lifecycle ---
    AUTO_APPROVE_BUSINESS_DAYS: int = Field(default=5, ge=0)

    # --- Logging ---
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a hint that the engine runs with placeholder values.
        """
        _log = logging.getLogger("portal.config")

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty; Supabase connectivity is disabled. "
                "The engine will operate on the local SQLite store only."
            )

        if not self.MAIL_USERNAME:
            _log.warning(
                "MAIL_USERNAME is empty; email notifications are disabled."
            )

        return self

    # --- Email Validation ---
    def validate_email_config(self) -> None:
        """Validate that email configuration is complete.

        Raises:
            ValueError: If required email settings are missing.
        """
        if not self.MAIL_USERNAME or not self.MAIL_PASSWORD.get_secret_value():
            raise ValueError("MAIL_USERNAME and MAIL_PASSWORD must be set")
        if not self.MAIL_SERVER:
            raise ValueError("MAIL_SERVER must be set")

    @property
    def sqlite_path(self) -> Path:
        return Path(self.SQLITE_PATH)


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern to avoid the lock overhead on the fast path while remaining
    thread-safe during first initialisation.

    Prefer constructor injection of ``AppConfig`` into services; this
    factory exists for the composition root and the logger.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
