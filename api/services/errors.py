"""
Application error type shared by services and mapped to HTTP responses in main.py
"""
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Error carrying an HTTP status and a stable error code"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.code.value}: {self.message}"

    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body

    @classmethod
    def bad_request(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "AppError":
        return cls(message, status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_INPUT, details)

    @classmethod
    def unauthorized(cls, message: str = "Not authenticated") -> "AppError":
        return cls(message, status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED)

    @classmethod
    def forbidden(cls, message: str = "Access denied") -> "AppError":
        return cls(message, status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN)

    @classmethod
    def not_found(cls, message: str) -> "AppError":
        return cls(message, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND)

    @classmethod
    def conflict(cls, message: str) -> "AppError":
        return cls(message, status.HTTP_409_CONFLICT, ErrorCode.CONFLICT)

    @classmethod
    def internal(cls, message: str = "An unexpected error occurred") -> "AppError":
        return cls(message, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR)
