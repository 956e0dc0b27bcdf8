"""
Standardized Error Handling for Pourtrait

Provides consistent error handling patterns across all modules.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, TypeVar
from functools import wraps

import httpx
from pydantic import ValidationError

logger = logging.getLogger(__name__)

# Type variable for generic functions
T = TypeVar('T')


class PourtraitError(Exception):
    """Base exception for the Pourtrait engine."""
    pass


class DataValidationError(PourtraitError):
    """Data validation errors."""
    pass


class QuizValidationError(DataValidationError):
    """Questionnaire answers failed validation."""

    def __init__(self, result: Any):
        self.result = result
        details = list(result.errors)
        if result.missing_required:
            details.append(f"Missing required: {', '.join(result.missing_required)}")
        super().__init__("; ".join(details) or "Invalid questionnaire responses")


class MissingContextError(DataValidationError):
    """A request type that needs context was issued without one."""
    pass


class ExternalSourceError(PourtraitError):
    """External wine-data source failures."""
    pass


class LLMError(PourtraitError):
    """LLM-related errors (API failures, validation failures)."""
    pass


def handle_llm_error(error: Exception, operation: str, fallback_value: Any = None) -> Any:
    """
    Standardized LLM error handling.

    Args:
        error: Exception that occurred
        operation: Description of operation
        fallback_value: Value to return on error

    Returns:
        fallback_value if error is recoverable, otherwise raises
    """
    error_type = type(error).__name__

    # Validation errors - log and return fallback
    if isinstance(error, ValidationError):
        logger.error(f"LLM response validation failed during {operation}: {error}")
        return fallback_value

    if error_type == "JSONDecodeError":
        logger.error(f"Invalid JSON from LLM during {operation}: {error}")
        return fallback_value

    if "rate limit" in str(error).lower() or error_type == "RateLimitError":
        logger.warning(f"Rate limit hit during {operation}: {error}")
        raise LLMError(f"Rate limit during {operation}") from error

    if "api" in error_type.lower():
        logger.error(f"API error during {operation}: {error}")
        raise LLMError(f"API error during {operation}") from error

    logger.error(f"Unexpected error during {operation}: {error_type} - {error}")
    raise LLMError(f"Unexpected error during {operation}") from error


def handle_source_error(error: BaseException, source_name: str) -> str:
    """
    Turn an external source failure into a non-fatal error string.

    Args:
        error: Exception raised while querying the source
        source_name: Display name of the source

    Returns:
        Error string for the enrichment result
    """
    if isinstance(error, asyncio.TimeoutError):
        message = f"{source_name}: request timed out"
    elif isinstance(error, httpx.HTTPStatusError):
        message = f"{source_name}: HTTP {error.response.status_code}"
    elif isinstance(error, httpx.HTTPError):
        message = f"{source_name}: network error ({type(error).__name__})"
    elif isinstance(error, ValidationError):
        message = f"{source_name}: invalid response payload"
    else:
        message = f"{source_name}: {error}"

    logger.warning(f"External source failure - {message}")
    return message


def safe_execute(
    func: Callable[..., T],
    fallback_value: T,
    error_message: str = "Operation failed"
) -> Callable[..., T]:
    """
    Decorator for safe function execution with fallback.

    Args:
        func: Function to execute
        fallback_value: Value to return on error
        error_message: Error message to log

    Returns:
        Wrapped function that returns fallback on error
    """
    @wraps(func)
    def wrapper(*args, **kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{error_message}: {type(e).__name__} - {e}")
            return fallback_value

    return wrapper


def validate_payload(
    response: Dict,
    expected_keys: list,
    operation: str
) -> bool:
    """
    Validate a decoded JSON payload has the expected structure.

    Args:
        response: Decoded response dict
        expected_keys: List of required keys
        operation: Operation name for logging

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(response, dict):
        logger.error(f"Response is not a dict during {operation}: {type(response)}")
        return False

    missing_keys = [key for key in expected_keys if key not in response]
    if missing_keys:
        logger.error(f"Response missing keys during {operation}: {missing_keys}")
        return False

    return True


# Export key functions and classes
__all__ = [
    'PourtraitError',
    'DataValidationError',
    'QuizValidationError',
    'MissingContextError',
    'ExternalSourceError',
    'LLMError',
    'handle_llm_error',
    'handle_source_error',
    'safe_execute',
    'validate_payload',
]
