"""Environment variable resolution utilities.

Canonical env names with fail-fast validation for production deployments.
"""

import os
from typing import Optional

_DEV_JWT_SECRET = "dev-only-jwt-secret-change-me"


def get_app_env() -> str:
    """Get the deployment environment name (lower-cased).

    Returns:
        APP_ENV value, "development" when unset
    """
    return os.getenv("APP_ENV", "development").lower()


def is_production() -> bool:
    """Check whether APP_ENV names a production deployment."""
    return get_app_env() in {"prod", "production"}


def get_database_url() -> str:
    """Get DATABASE_URL from environment.

    Production fail-fast: DATABASE_URL is mandatory in prod/production.
    Development falls back to a local SQLite file.

    Raises:
        ValueError: If DATABASE_URL is missing in production
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if is_production():
        raise ValueError(
            "DATABASE_URL environment variable is required in production (APP_ENV=prod/production). "
            "Check deployment configuration and secrets injection."
        )
    return "sqlite:///./agency.db"


def get_db_pool_size() -> int:
    """Get the bounded connection pool size (DB_POOL_SIZE, default 10)."""
    raw = os.getenv("DB_POOL_SIZE", "10")
    try:
        size = int(raw)
    except ValueError as e:
        raise ValueError(f"DB_POOL_SIZE must be an integer, got '{raw}'") from e
    if size < 1:
        raise ValueError(f"DB_POOL_SIZE must be >= 1, got {size}")
    return size


def get_jwt_secret() -> str:
    """Get the credential signing secret.

    Raises:
        ValueError: If JWT_SECRET is missing in production
    """
    secret = os.getenv("JWT_SECRET")
    if secret:
        return secret
    if is_production():
        raise ValueError(
            "JWT_SECRET is required in production. "
            "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(48))'"
        )
    return _DEV_JWT_SECRET


def get_frontend_url() -> str:
    """Get the SPA base URL used in invite/reset links (no trailing slash)."""
    return os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")


def get_bcrypt_rounds() -> int:
    """Get bcrypt cost factor (BCRYPT_ROUNDS, default 12)."""
    raw = os.getenv("BCRYPT_ROUNDS", "12")
    try:
        rounds = int(raw)
    except ValueError as e:
        raise ValueError(f"BCRYPT_ROUNDS must be an integer, got '{raw}'") from e
    if not 4 <= rounds <= 31:
        raise ValueError(f"BCRYPT_ROUNDS must be between 4 and 31, got {rounds}")
    return rounds


def get_google_oauth_config() -> Optional[dict[str, str]]:
    """Get Google OAuth client settings.

    Returns:
        Dict with client_id, client_secret, callback_url, or None when
        Google sign-in is not configured
    """
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
    if not client_id or not client_secret:
        return None
    return {
        "client_id": client_id,
        "client_secret": client_secret,
        "callback_url": os.getenv(
            "GOOGLE_CALLBACK_URL", "http://localhost:8000/api/v1/auth/google/callback"
        ),
    }


def get_mail_from() -> Optional[str]:
    """Get the sender address for outbound mail (None disables mail)."""
    return os.getenv("MAIL_FROM") or None


def get_aws_region() -> str:
    """Get AWS region for SES (AWS_REGION, default us-east-1)."""
    return os.getenv("AWS_REGION", "us-east-1")


def get_ses_endpoint_url() -> Optional[str]:
    """Get a custom SES endpoint (LocalStack), None for the AWS default."""
    return os.getenv("SES_ENDPOINT_URL") or None


def get_cors_origins() -> list[str]:
    """Get the CORS allowlist.

    Production uses the explicit CORS_ALLOWED_ORIGINS list (comma-separated);
    otherwise localhost variants are allowed.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]


def json_logs_enabled() -> bool:
    """Structured JSON logs are on unless JSON_LOGS=false."""
    return os.getenv("JSON_LOGS", "true").lower() != "false"


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_owner_bootstrap() -> dict[str, str]:
    """Get the first-owner seed credentials."""
    return {
        "email": os.getenv("OWNER_EMAIL", "admin@agency.com"),
        "password": os.getenv("OWNER_PASSWORD", "Admin@123456"),
        "name": os.getenv("OWNER_NAME", "Agency Owner"),
    }
