"""
Settings shared by every ProjectHub Lambda.

All values come from the function's environment. ``get_config`` reads and
checks them once per container; a bad value fails the cold start instead of
the first request that needs it.
"""
import os
from dataclasses import dataclass
from typing import Optional


def _positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got: {value}")
    return value


@dataclass
class Config:
    """Validated environment settings. Only ``dynamodb_table`` is mandatory."""

    dynamodb_table: str
    idempotency_table: str = ""
    attachments_bucket: str = ""
    export_bucket: str = ""
    ses_from_email: str = "noreply@projecthub.com"
    app_url: str = "http://localhost:3000"
    slack_webhook_url: Optional[str] = None
    invitation_ttl_days: int = 7
    trial_days: int = 14
    webhook_timeout_seconds: int = 10
    aws_region: str = "us-east-1"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """
        Read and check the environment.

        Raises:
            ValueError: Naming the offending variable
        """
        dynamodb_table = os.environ.get("DYNAMODB_TABLE")
        if not dynamodb_table:
            raise ValueError(
                "DYNAMODB_TABLE environment variable is required"
            )

        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

        allowed = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if log_level not in allowed:
            raise ValueError(
                f"LOG_LEVEL {log_level!r} is not one of {', '.join(allowed)}"
            )

        return cls(
            dynamodb_table=dynamodb_table,
            idempotency_table=os.environ.get("IDEMPOTENCY_TABLE", ""),
            attachments_bucket=os.environ.get("ATTACHMENTS_BUCKET", ""),
            export_bucket=os.environ.get("EXPORT_BUCKET", ""),
            ses_from_email=os.environ.get(
                "SES_FROM_EMAIL", "noreply@projecthub.com"
            ),
            app_url=os.environ.get(
                "APP_URL", "http://localhost:3000"
            ).rstrip("/"),
            slack_webhook_url=os.environ.get("SLACK_WEBHOOK_URL") or None,
            invitation_ttl_days=_positive_int("INVITATION_TTL_DAYS", 7),
            trial_days=_positive_int("TRIAL_DAYS", 14),
            webhook_timeout_seconds=_positive_int("WEBHOOK_TIMEOUT_SECONDS", 10),
            aws_region=os.environ.get("AWS_REGION", "us-east-1"),
            log_level=log_level,
        )


# Per-container cache; tests reset it to None
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Settings for this container, read on first call.

    Returns:
        The cached Config

    Raises:
        ValueError: If required environment variables are missing or invalid.
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config
