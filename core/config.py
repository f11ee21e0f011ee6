"""
core/config.py -- News API settings, read once from the environment.

Every switch the service honours lives on Settings. Field names map to
upper-case environment variables (jwt_secret -> JWT_SECRET), and a .env file
in the working directory is read as well. Nothing else in the tree reads
os.environ; call get_settings().

Startup refuses to continue without JWT_SECRET. There is no generated
fallback, because tokens signed with a per-process key would stop verifying
after every restart.

core/ depends on nothing else in the project.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("newsapi.config")

# 72 hours
DEFAULT_TOKEN_EXPIRE_SECONDS = 72 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Everything except jwt_secret has a default. Tests construct Settings()
    directly with keyword overrides; keyword arguments win over the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured"; the validator rejects it.
    jwt_secret: str = ""
    token_expire_seconds: int = DEFAULT_TOKEN_EXPIRE_SECONDS
    auth_required: bool = True
    accept_raw_token: bool = True
    enforce_author_ownership: bool = False
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    storage_backend: Literal["memory", "database"] = "database"
    # Empty string means "use the SQLite file next to store/sql.py".
    database_url: str = ""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000"]
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth(self) -> "Settings":
        """Refuse to start without a signing secret or with a non-positive lifetime.

        Short secrets are accepted but logged: HS256 keys below 32 characters
        have little entropy, which weakens every issued token.
        """
        if not self.jwt_secret:
            raise ValueError("JWT_SECRET is required. Set JWT_SECRET in your environment or .env file.")
        if len(self.jwt_secret) < 32:
            logger.warning("JWT_SECRET is shorter than 32 characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be a positive number of seconds.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
