"""
Storage Errors

Raised by every storage backend with identical types and messages.
`status_code` is the HTTP status the web layer should answer with.
"""
from typing import Optional


class StorageError(Exception):
    """Base exception for storage contract violations"""
    status_code = 400

    def __init__(self, message: str, status_code: int = None, details: dict = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'message': self.message, **self.details}


class ValidationError(StorageError):
    """Invalid field values or references"""


class ConflictError(StorageError):
    """Unique constraint would be violated (username, email)"""
    status_code = 409


class WaveAssignmentError(StorageError):
    """A wave assignment was rejected"""
    status_code = 403


class QuotaExceededError(WaveAssignmentError):
    """Agent has no wave assignments left"""

    def __init__(self, message: str, wave_balance: int, remaining: Optional[int] = 0):
        super().__init__(
            message,
            details={'wave_balance': wave_balance, 'remaining': remaining}
        )
        self.wave_balance = wave_balance
        self.remaining = remaining
