"""
Response envelope shared by every data source.

Data sources never raise for backend failures. Each operation returns an
``ApiResponse`` holding either ``data`` or an ``ApiError`` so that callers can
branch on the result without exception control flow.

Example:
    >>> response = ApiResponse[int].success(3)
    >>> response.ok
    True
    >>> failed = ApiResponse[int].failure("Card not found", ErrorCode.NOT_FOUND, 404)
    >>> failed.error.message
    'Card not found'
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Machine-readable error codes carried in ``ApiError.code``."""

    NOT_FOUND = "NOT_FOUND"
    AUTH_ERROR = "AUTH_ERROR"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    GRAPHQL_ERROR = "GRAPHQL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ApiError(BaseModel):
    """
    Structured backend error.

    ``code`` is kept as a plain string because remote backends may send codes
    outside of ``ErrorCode``; use ``ErrorCode`` values when producing errors.
    """

    message: str
    code: str = ErrorCode.UNKNOWN_ERROR.value
    status: int | None = None

    model_config = ConfigDict(use_enum_values=True)


class ApiResponse(BaseModel, Generic[T]):
    """Either ``data`` or ``error``; ``status`` mirrors the HTTP status when known."""

    data: T | None = None
    error: ApiError | None = None
    status: int | None = Field(default=None, description="HTTP-like status code")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T | None = None, status: int = 200) -> ApiResponse[T]:
        return cls(data=data, status=status)

    @classmethod
    def failure(
        cls,
        message: str,
        code: ErrorCode | str = ErrorCode.UNKNOWN_ERROR,
        status: int | None = None,
    ) -> ApiResponse[T]:
        code_value = code.value if isinstance(code, ErrorCode) else code
        return cls(error=ApiError(message=message, code=code_value, status=status), status=status)

    @classmethod
    def from_error(cls, error: ApiError) -> ApiResponse[T]:
        """Re-wrap an error from a response of a different payload type."""
        return cls(error=error, status=error.status)
