"""
Sentry error tracking for the inspection API.

Sentry is only initialised when ``SENTRY_DSN`` is configured; every helper here
is a no-op otherwise so callers never need to check.
"""

import logging
from typing import Optional, Dict, Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

_sentry_initialized = False

SENSITIVE_HEADERS = ["authorization", "cookie", "x-api-key"]
SENSITIVE_FIELDS = ["password", "token", "access_token", "secret", "selfie", "photo"]


def init_sentry() -> None:
    """Initialize Sentry SDK with FastAPI integration. Called from the app lifespan."""
    global _sentry_initialized

    from app.config import settings

    if not settings.SENTRY_DSN:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=settings.VERSION,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.WARNING, event_level=logging.ERROR),
        ],
        before_send=filter_sensitive_data,
        send_default_pii=False,
        attach_stacktrace=True,
    )

    _sentry_initialized = True
    logger.info(f"Sentry initialized for {settings.ENVIRONMENT} environment")


def filter_sensitive_data(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Filter sensitive data before sending to Sentry.

    Removes authorization headers, cookies, passwords, tokens and the
    inspection photo/selfie payloads.
    """
    request = event.get("request") or {}

    headers = request.get("headers")
    if isinstance(headers, dict):
        for header in SENSITIVE_HEADERS:
            if header in headers:
                headers[header] = "[Filtered]"

    data = request.get("data")
    if isinstance(data, dict):
        for field in SENSITIVE_FIELDS:
            if field in data:
                data[field] = "[Filtered]"

    return event


def capture_exception(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    user: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Capture an exception to Sentry with additional context.

    Returns:
        Sentry event ID if captured, None otherwise
    """
    if not _sentry_initialized:
        return None

    with sentry_sdk.new_scope() as scope:
        if context:
            for key, value in context.items():
                scope.set_extra(key, value)
        if user:
            scope.set_user(user)
        return sentry_sdk.capture_exception(exception)


def set_user_context(user_id: str, email: Optional[str] = None, role: Optional[str] = None) -> None:
    """Set user context for all subsequent events in this request."""
    if not _sentry_initialized:
        return

    sentry_sdk.set_user({"id": user_id, "email": email, "role": role})
