"""Application settings loaded from environment variables.

Environment Configuration:
    CHATSYNC_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    LOG_JSON: Emit JSON logs (default true); false switches to console output

Auth Configuration (required outside the test environment):
    AUTH_JWKS_URL: Full URL to the identity provider's JWKS endpoint
    AUTH_ISSUER: Expected JWT issuer (trailing slash stripped)
    AUTH_AUDIENCES: Comma-separated list of allowed audiences

Sync Engine Configuration:
    MAX_CHATS_PER_OWNER: Ceiling on live chats for the direct-create path (default 100)
    ID_ALLOCATION_STRATEGY: max_plus_one | counter (default max_plus_one)
    ID_ALLOCATION_MAX_ATTEMPTS: Insert attempts before an id collision is a conflict (default 2)
    PUSH_MAX_BATCH_ITEMS: Largest accepted batch per entity kind on push (default 500)
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class IdAllocationStrategy(str, Enum):
    """How new entity ids are picked.

    max_plus_one: read the highest id in scope and add one.
    counter: advance a locked per-scope counter row.
    """

    MAX_PLUS_ONE = "max_plus_one"
    COUNTER = "counter"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - AUTH_JWKS_URL, AUTH_ISSUER, AUTH_AUDIENCES are required unless CHATSYNC_ENV=test
    - numeric limits must be >= 1
    """

    chatsync_env: Environment = Field(default=Environment.LOCAL, alias="CHATSYNC_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Identity provider settings
    auth_jwks_url: str | None = Field(default=None, alias="AUTH_JWKS_URL")
    auth_issuer: str | None = Field(default=None, alias="AUTH_ISSUER")
    auth_audiences: str | None = Field(default=None, alias="AUTH_AUDIENCES")

    # Sync engine settings
    max_chats_per_owner: int = Field(default=100, alias="MAX_CHATS_PER_OWNER")
    id_allocation_strategy: IdAllocationStrategy = Field(
        default=IdAllocationStrategy.MAX_PLUS_ONE, alias="ID_ALLOCATION_STRATEGY"
    )
    id_allocation_max_attempts: int = Field(default=2, alias="ID_ALLOCATION_MAX_ATTEMPTS")
    push_max_batch_items: int = Field(default=500, alias="PUSH_MAX_BATCH_ITEMS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the environment."""
        if self.chatsync_env != Environment.TEST:
            missing_auth = []
            if not self.auth_jwks_url:
                missing_auth.append("AUTH_JWKS_URL")
            if not self.auth_issuer:
                missing_auth.append("AUTH_ISSUER")
            if not self.auth_audiences:
                missing_auth.append("AUTH_AUDIENCES")

            if missing_auth:
                raise ValueError(
                    f"Missing required auth settings: {', '.join(missing_auth)}. "
                    "Point them at your identity provider's JWKS endpoint."
                )

        for name, value in (
            ("MAX_CHATS_PER_OWNER", self.max_chats_per_owner),
            ("ID_ALLOCATION_MAX_ATTEMPTS", self.id_allocation_max_attempts),
            ("PUSH_MAX_BATCH_ITEMS", self.push_max_batch_items),
        ):
            if value < 1:
                raise ValueError(f"{name} must be >= 1 (got {value})")

        return self

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.auth_audiences:
            return [a.strip() for a in self.auth_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.auth_issuer:
            return self.auth_issuer.rstrip("/")
        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
