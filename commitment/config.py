"""
Runtime configuration read from environment variables.
"""
import os

from commitment.constants import (
    CORS_ALLOWED_ORIGINS,
    DEFAULT_DAILY_RECAP_TIME,
    DEFAULT_LOG_DIRECTORY_PROD,
)

DATABASE_URL = os.getenv("COMMITMENT_DATABASE_URL", "sqlite:///./commitment.db")

# Shared secret the external scheduler sends as "Authorization: Bearer <secret>"
CRON_SECRET = os.getenv("CRON_SECRET", "")

LOG_DIR = os.getenv("COMMITMENT_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("COMMITMENT_LOG_FILE", "app.log")

# Push gateway that fans out web-push payloads to subscriptions
PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL", "")
PUSH_GATEWAY_TIMEOUT = float(os.getenv("PUSH_GATEWAY_TIMEOUT", "10"))

SCHEDULER_ENABLED = os.getenv("COMMITMENT_SCHEDULER_ENABLED", "false").lower() in ("1", "true", "yes")
DAILY_RECAP_TIME = os.getenv("DAILY_RECAP_TIME", DEFAULT_DAILY_RECAP_TIME)

_origins = os.getenv("CORS_ALLOWED_ORIGINS")
ALLOWED_ORIGINS = [o.strip() for o in _origins.split(",") if o.strip()] if _origins else CORS_ALLOWED_ORIGINS
