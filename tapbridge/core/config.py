"""Configuration settings for the Tapbridge backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        ENVIRONMENT (str): The deployment environment (local, dev, prd).
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        DEBUG (bool): Whether debug mode is enabled. Adds tracebacks to error responses.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[PostgresDsn]): The SQLAlchemy async database URI.
        RUN_DB_CREATE_ALL (bool): Whether to create missing tables on startup.
        STRIPE_SECRET_KEY (str): The platform's Stripe secret key.
        STRIPE_CLIENT_ID (Optional[str]): The Stripe Connect OAuth client id.
        STRIPE_API_VERSION (str): Pinned Stripe API version.
        APPLICATION_FEE_AMOUNT (int): Platform fee per payment intent, in minor units.
        DEFAULT_CURRENCY (str): Currency used when the caller does not send one.
        CHARGE_PAGE_SIZE (int): Page size used when listing charges.
        JWT_SECRET (str): Secret used to sign access tokens.
        JWT_ALGORITHM (str): Signing algorithm for access tokens.
        JWT_EXPIRES_IN_SECONDS (int): Lifetime of an access token.
        OAUTH_DEFAULT_REDIRECT_URI (str): Redirect URI used when the client sends none.
        CORS_ORIGINS (str): Allowed CORS origins, comma or semicolon separated.
        TIPPING_PERCENTAGES (list[int]): Tip percentages offered on the reader.
        TIPPING_SMART_THRESHOLD (int): Below this amount the reader offers fixed tips.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Tapbridge"
    ENVIRONMENT: str = "local"
    LOCAL_DEVELOPMENT: bool = False

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "tapbridge"
    POSTGRES_USER: str = "tapbridge"
    POSTGRES_PASSWORD: str = ""
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[PostgresDsn] = None

    RUN_DB_CREATE_ALL: bool = False

    # Stripe configuration
    STRIPE_SECRET_KEY: str
    STRIPE_CLIENT_ID: Optional[str] = None
    STRIPE_API_VERSION: str = "2025-03-31.basil"
    APPLICATION_FEE_AMOUNT: int = 5
    DEFAULT_CURRENCY: str = "usd"
    CHARGE_PAGE_SIZE: int = 100

    # Access tokens
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN_SECONDS: int = 86400

    OAUTH_DEFAULT_REDIRECT_URI: str = "stripeconnect://stripe/return"

    CORS_ORIGINS: str = "http://localhost:8081"  # Separated by commas or semicolons

    # Reader tipping
    TIPPING_PERCENTAGES: list[int] = [15, 18, 20]
    TIPPING_SMART_THRESHOLD: int = 1000

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> PostgresDsn:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            PostgresDsn: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=info.data.get("POSTGRES_USER"),
            password=info.data.get("POSTGRES_PASSWORD"),
            host=info.data.get("POSTGRES_HOST"),
            port=info.data.get("POSTGRES_PORT"),
            path=f"{info.data.get('POSTGRES_DB') or ''}",
        )

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins, supporting both comma and semicolon separators."""
        separator = ";" if ";" in self.CORS_ORIGINS else ","
        return [origin.strip() for origin in self.CORS_ORIGINS.split(separator) if origin.strip()]

    @property
    def oauth_enabled(self) -> bool:
        """Whether Stripe Connect OAuth onboarding is configured."""
        return bool(self.STRIPE_CLIENT_ID)

    @property
    def has_weak_jwt_secret(self) -> bool:
        """Whether the signing secret is too short to be trusted in production."""
        return len(self.JWT_SECRET) < 32


settings = Settings()
