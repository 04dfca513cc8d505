"""
Retry utility with exponential backoff for Google API calls.
Handles transient errors (429, 5xx, connection failures) with retry,
and fails immediately on permanent errors (other 4xx).
"""

import time
import logging
from typing import Callable, TypeVar, Optional, Type, Tuple
from functools import wraps

from utils.structured_logging import mask_secrets_in_text

logger = logging.getLogger("curb.retry")

T = TypeVar('T')


class RetryExhausted(Exception):
    """Raised when all retry attempts have been exhausted."""
    pass


def extract_status_code(error: Exception) -> Optional[int]:
    """
    Status code of a Google API error.

    ``googleapiclient.errors.HttpError`` carries it on ``resp.status``; anything
    else is parsed from the "HttpError 503 when requesting..." message format.
    """
    resp = getattr(error, "resp", None)
    status = getattr(resp, "status", None)
    if status is not None:
        try:
            return int(status)
        except (TypeError, ValueError):
            return None

    parts = str(error).split()
    for i, part in enumerate(parts):
        if part.strip("<") == "HttpError" and i + 1 < len(parts):
            try:
                return int(parts[i + 1])
            except ValueError:
                return None
    return None


def exponential_backoff_retry(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 32.0,
    exponential_base: float = 2.0,
    transient_error_codes: Tuple[int, ...] = (429, 500, 502, 503, 504),
    retriable_exceptions: Tuple[Type[Exception], ...] = (ConnectionError, TimeoutError),
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 32.0)
        exponential_base: Base for exponential calculation (default: 2.0)
        transient_error_codes: HTTP status codes to retry (default: 429, 5xx)
        retriable_exceptions: Exception types to retry (default: ConnectionError, TimeoutError)

    Raises:
        RetryExhausted: When all retry attempts are exhausted
        Original exception: For permanent errors (4xx except 429)

    Example:
        @exponential_backoff_retry(max_retries=3, initial_delay=1.0)
        def list_children():
            return service.files().list(...).execute()
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            func_name = getattr(func, '__name__', '<function>')

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except retriable_exceptions as e:
                    if attempt < max_retries:
                        logger.warning(
                            f"Retriable exception in {func_name} (attempt {attempt + 1}/{max_retries + 1}): "
                            f"{mask_secrets_in_text(str(e))}. Retrying in {delay}s..."
                        )
                        time.sleep(delay)
                        delay = min(delay * exponential_base, max_delay)
                        continue
                    logger.error(
                        f"Max retries exhausted for {func_name} after {max_retries + 1} attempts. "
                        f"Last error: {mask_secrets_in_text(str(e))}"
                    )
                    raise RetryExhausted(
                        f"Failed after {max_retries + 1} attempts. Last error: {mask_secrets_in_text(str(e))}"
                    ) from e

                except Exception as e:
                    status_code = extract_status_code(e)

                    if status_code in transient_error_codes:
                        if attempt < max_retries:
                            logger.warning(
                                f"Transient error {status_code} in {func_name} "
                                f"(attempt {attempt + 1}/{max_retries + 1}). Retrying in {delay}s..."
                            )
                            time.sleep(delay)
                            delay = min(delay * exponential_base, max_delay)
                            continue
                        logger.error(
                            f"Max retries exhausted for {func_name} after {max_retries + 1} attempts. "
                            f"Last error: {mask_secrets_in_text(str(e))}"
                        )
                        raise RetryExhausted(
                            f"Failed after {max_retries + 1} attempts. Last error: {mask_secrets_in_text(str(e))}"
                        ) from e

                    if status_code and 400 <= status_code < 500:
                        logger.error(f"Permanent client error {status_code} in {func_name}. Not retrying.")
                    else:
                        logger.error(f"Unexpected error in {func_name}: {mask_secrets_in_text(str(e))}")
                    raise

            raise RetryExhausted(f"Failed after {max_retries + 1} attempts.")

        return wrapper
    return decorator
