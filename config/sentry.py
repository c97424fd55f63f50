# coding: utf-8
"""
Sentry configuration for error monitoring
"""
import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.aiohttp import AioHttpIntegration
from loguru import logger

from config.config import SENTRY_DSN, ENVIRONMENT


# Keys whose values never leave the process
SENSITIVE_KEYS = {"private_key", "secret_key", "keypair", "seed", "bot_token", "authorization"}


def init_sentry() -> None:
    """
    Initialize Sentry SDK for error monitoring

    Does nothing when SENTRY_DSN is not configured.
    """
    if not SENTRY_DSN:
        logger.warning("SENTRY_DSN not configured - error monitoring disabled")
        return

    try:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=ENVIRONMENT,
            integrations=[
                AsyncioIntegration(),
                SqlalchemyIntegration(),
                AioHttpIntegration(),
            ],
            traces_sample_rate=0.1 if ENVIRONMENT == "production" else 1.0,
            sample_rate=1.0,
            attach_stacktrace=True,
            send_default_pii=False,
            max_breadcrumbs=50,
            before_send=before_send_hook,
        )

        logger.info(f"Sentry initialized successfully (Environment: {ENVIRONMENT})")

    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


def _redact(data: dict) -> dict:
    return {
        key: "[Filtered]" if key.lower() in SENSITIVE_KEYS else value
        for key, value in data.items()
    }


def before_send_hook(event, hint):
    """
    Drop KeyboardInterrupt and strip key material from event extras
    """
    if 'exc_info' in hint:
        exc_type, exc_value, tb = hint['exc_info']
        if isinstance(exc_value, KeyboardInterrupt):
            return None

    if event.get('extra'):
        event['extra'] = _redact(event['extra'])

    if event.get('request'):
        headers = event['request'].get('headers', {})
        if 'Authorization' in headers:
            headers['Authorization'] = '[Filtered]'

    return event
