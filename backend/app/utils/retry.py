"""Retry policies for store calls made outside the request path."""

import logging

import structlog
from sqlalchemy.exc import OperationalError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.core.exceptions import StorageError

logger = structlog.get_logger(__name__)


# Transient database failures (lock timeouts, dropped connections) while
# applying background side effects such as rating stats or moderation flags.
side_effect_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception_type((OperationalError, StorageError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
