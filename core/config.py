"""
core/config.py -- TenantNotes settings (pydantic-settings).

Every environment variable the service understands is a field on Settings.
Other modules take their configuration from get_settings(); none of them read
os.environ.

How it is wired:
  get_settings() is wrapped in lru_cache, so the environment and .env file
      are parsed once per process. The API lifespan builds the TokenCodec and
      both stores from that one instance; request handlers never look at
      configuration except for the login rate-limit string.

  Env var names are the upper-cased field names (SECRET_KEY,
      TOKEN_EXPIRE_SECONDS, AUTH_DATABASE_URL, ...). List fields such as
      ALLOWED_HOSTS are given as JSON arrays.

  A model_validator(mode="after") applies the SECRET_KEY policy once every
      field is known: DEBUG picks the published DEV_SECRET_KEY and warns on
      each startup; without DEBUG a missing key stops the process.

Security notes:
  Session tokens are HS256-signed with SECRET_KEY, so a key under 32
  characters is refused in every mode.

  DEV_SECRET_KEY is public (it is in this file). Anyone can mint tokens for
  an instance running on it, which is why only DEBUG can select it.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or notes/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("tenantnotes.config")

DEV_SECRET_KEY = "dev-secret-change-in-production-not-for-deployment"

SEVEN_DAYS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """TenantNotes settings, read from the environment and an optional .env file.

    Every field has a default, so tests can construct Settings() directly
    as long as DEBUG=true or a SECRET_KEY is given. The
    model_validator rejects unsafe key and lifetime values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either substitutes the dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = SEVEN_DAYS
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    # Empty string selects the package-local SQLite file of each store.
    auth_database_url: str = ""
    notes_database_url: str = ""
    # Upper bound on waiting for a database lock or pooled connection.
    db_timeout_seconds: float = 5.0

    # Create the acme/globex demo tenants on startup (local development only).
    seed_demo_data: bool = False

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:5173", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): fall back to DEV_SECRET_KEY and say so loudly
            on every startup.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = DEV_SECRET_KEY
                logger.warning(
                    "WARNING: SECRET_KEY is not set -- signing tokens with the public development "
                    "default. Anyone can forge sessions. Never run this configuration in production."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        return self

    @property
    def using_dev_secret(self) -> bool:
        return self.secret_key == DEV_SECRET_KEY


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
