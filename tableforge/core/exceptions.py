"""
Application errors and the tagged result type returned by use cases.

Every expected failure carries an HTTP status (``code``) and a stable
machine-readable ``cause`` so callers can branch without parsing messages.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ApplicationError(Exception):
    def __init__(self, message: str, code: int, cause: str):
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code, "cause": self.cause}

    def __repr__(self) -> str:
        return f"ApplicationError(code={self.code}, cause={self.cause!r}, message={self.message!r})"

    @classmethod
    def bad_request(cls, message: str = "Bad Request", cause: str = "INVALID_PARAMETERS") -> "ApplicationError":
        return cls(message, 400, cause)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized", cause: str = "AUTHENTICATION_REQUIRED") -> "ApplicationError":
        return cls(message, 401, cause)

    @classmethod
    def forbidden(cls, message: str = "Forbidden", cause: str = "ACCESS_DENIED") -> "ApplicationError":
        return cls(message, 403, cause)

    @classmethod
    def not_found(cls, message: str = "Not Found", cause: str = "RESOURCE_NOT_FOUND") -> "ApplicationError":
        return cls(message, 404, cause)

    @classmethod
    def conflict(cls, message: str = "Conflict", cause: str = "CONFLICT_IN_REQUEST") -> "ApplicationError":
        return cls(message, 409, cause)

    @classmethod
    def internal(cls, message: str = "Internal server error", cause: str = "SERVER_ERROR") -> "ApplicationError":
        return cls(message, 500, cause)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ApplicationError


Result = Union[Ok[T], Err]


def unwrap(result: "Result[Any]") -> Any:
    """Return the success value or raise the carried ApplicationError."""
    if isinstance(result, Err):
        raise result.error
    return result.value


def error_of(result: "Result[Any]") -> Optional[ApplicationError]:
    return result.error if isinstance(result, Err) else None
