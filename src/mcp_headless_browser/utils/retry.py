"""Retry helper for transient WebDriver failures."""

import time
import random
from typing import Callable

from selenium.common.exceptions import (
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)

from ..browser.session import DEAD_BROWSER_ERRORS

import logging
logger = logging.getLogger(__name__)


def retry_op(fn: Callable, retries: int = 2, base_delay: float = 0.15):
    """
    Retry a function call that may fail due to transient Selenium exceptions.

    A browser that has gone away is not transient; those errors propagate at
    once.

    Args:
        fn: The function to call
        retries: Number of retry attempts (default: 2)
        base_delay: Base delay between retries in seconds (default: 0.15)

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries fail
    """
    for attempt in range(retries + 1):
        try:
            return fn()
        except DEAD_BROWSER_ERRORS:
            raise
        except (StaleElementReferenceException, TimeoutException, WebDriverException) as e:
            if attempt == retries:
                raise
            logger.debug(f"Retrying after {type(e).__name__} (attempt {attempt + 1}/{retries + 1})")
            time.sleep(base_delay * (1.0 + random.random()))


__all__ = ["retry_op"]
