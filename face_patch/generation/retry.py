"""
Retry Policy

Wraps a generation client with exponential backoff for transient
failures (rate limiting, service unavailable, timeouts).
"""

import logging
import time
from typing import Callable, List

import numpy as np

from ..errors import GenerationError, GenerationFailure
from .client import GenerationClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 2.0


def backoff_delays(max_retries: int = DEFAULT_MAX_RETRIES,
                   base_delay: float = DEFAULT_BASE_DELAY) -> List[float]:
    """Delays before each retry, doubling from ``base_delay``."""
    return [base_delay * (2 ** i) for i in range(max_retries)]


class RetryingGenerationClient(GenerationClient):
    """
    Generation client that retries retryable errors with backoff.

    The first call is followed by up to ``max_retries`` retries, waiting
    ``base_delay``, then twice that, and so on. Non-retryable errors and
    the last retryable error are raised as ``GenerationFailure``.
    """

    def __init__(self, client: GenerationClient,
                 max_retries: int = DEFAULT_MAX_RETRIES,
                 base_delay: float = DEFAULT_BASE_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay < 0:
            raise ValueError("base_delay must be non-negative")

        self.client = client
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def generate(self, source_face: np.ndarray, target_crop: np.ndarray) -> np.ndarray:
        delays = backoff_delays(self.max_retries, self.base_delay)
        attempts = 0

        while True:
            attempts += 1
            try:
                return self.client.generate(source_face, target_crop)
            except GenerationError as e:
                logger.warning(f"Generation attempt {attempts} failed ({e.kind.value}): {e}")

                if not e.retryable:
                    raise GenerationFailure(e, attempts) from e
                if attempts > len(delays):
                    logger.error(f"Giving up after {attempts} attempts")
                    raise GenerationFailure(e, attempts) from e

                delay = delays[attempts - 1]
                logger.info(
                    f"Retrying generation... Attempts left: {len(delays) - attempts + 1}. "
                    f"Waiting {delay:.1f}s."
                )
                self.sleep(delay)
