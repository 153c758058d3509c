from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class Settings:
    """Centralized application settings.

    This keeps environment-variable handling in one place so other modules can
    depend on strongly-typed attributes instead of calling os.getenv
    directly.
    """

    # Optional database configuration for SQL-backed repositories. When
    # USE_SQL_REPOS is false (default for development/tests) everything lives
    # in the process-local in-memory store.
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    use_sql_repos: bool = os.getenv("USE_SQL_REPOS", "false").lower() == "true"

    # Bearer token configuration. The default secret is only suitable for
    # local development and must be overridden in any shared environment.
    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "dev-only-change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Optional JSON file replacing the built-in role -> permissions table.
    # Loaded once when the service container is built.
    role_profile_path: Optional[Path] = (
        Path(os.getenv("ROLE_PROFILE_PATH")) if os.getenv("ROLE_PROFILE_PATH") else None
    )

    # Length of the free trial granted to newly registered practices.
    trial_period_days: int = int(os.getenv("TRIAL_PERIOD_DAYS", "14"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS configuration: comma-separated origins (e.g. "https://app.example.com,https://admin.example.com").
    # Default is "*" (allow all) which is acceptable for local development but
    # should be tightened in production.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")


settings = Settings()
