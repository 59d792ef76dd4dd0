"""
Result type for explicit error handling.

Store and assembler operations return either a Success carrying the value
or a Failure carrying an error message, a category and an HTTP status hint.
Routes turn a Failure straight into a JSON error response.

Example:
    >>> result = Success({"id": "abc", "title": "New chat"})
    >>> result.unwrap()["title"]
    'New chat'

    >>> result = not_found_error("Session 'abc' not found")
    >>> result.to_dict()
    {'success': False, 'error': "Session 'abc' not found", 'error_type': 'NotFoundError'}
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass
class Success(Generic[T]):
    """
    Represents a successful operation with a value.

    Attributes:
        value: The successful result value
    """

    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def __bool__(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Success({self.value})"


@dataclass
class Failure(Generic[E]):
    """
    Represents a failed operation with an error.

    Attributes:
        error: The error message
        error_type: Category of error (e.g., "ValidationError")
        context: Additional context about the error
        recoverable: Whether the caller may retry the operation
        status_code: HTTP status code hint for API responses
    """

    error: E
    error_type: str = "UnknownError"
    context: Optional[Dict[str, Any]] = None
    recoverable: bool = False
    status_code: int = 500

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """
        Attempt to get the value.

        Raises:
            RuntimeError: Always, since this is a Failure
        """
        raise RuntimeError(f"Called unwrap on Failure: {self.error}")

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": str(self.error),
            "error_type": self.error_type,
        }
        if self.context:
            result["context"] = self.context
        if self.recoverable:
            result["recoverable"] = True
        return result

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Failure({self.error_type}: {self.error})"


Result = Union[Success[T], Failure[E]]


class ErrorType:
    """Error categories as (name, status code, recoverable)."""

    VALIDATION_ERROR = ("ValidationError", 400, False)
    NOT_FOUND_ERROR = ("NotFoundError", 404, False)
    STORAGE_ERROR = ("StorageError", 500, True)


def _failure(
    kind: Tuple[str, int, bool],
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> Failure:
    error_type, status_code, recoverable = kind
    return Failure(
        error=message,
        error_type=error_type,
        context=context,
        recoverable=recoverable,
        status_code=status_code,
    )


def validation_error(message: str, context: Optional[Dict[str, Any]] = None) -> Failure:
    """Create a validation error result."""
    return _failure(ErrorType.VALIDATION_ERROR, message, context)


def not_found_error(message: str, context: Optional[Dict[str, Any]] = None) -> Failure:
    """Create a not found error result."""
    return _failure(ErrorType.NOT_FOUND_ERROR, message, context)


def storage_error(message: str, context: Optional[Dict[str, Any]] = None) -> Failure:
    """Create a storage error result."""
    return _failure(ErrorType.STORAGE_ERROR, message, context)
