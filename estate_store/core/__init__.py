"""Core modules: config, database, security, logging, exceptions"""
from .config import settings
from .database import Base, create_db_engine, create_session_factory, session_scope, init_db, utcnow
from .security import hash_password, verify_password
from .logging import setup_logging
from .exceptions import (
    StorageError, ValidationError, ConflictError,
    WaveAssignmentError, QuotaExceededError
)

__all__ = [
    'settings',
    'Base', 'create_db_engine', 'create_session_factory', 'session_scope', 'init_db', 'utcnow',
    'hash_password', 'verify_password',
    'setup_logging',
    'StorageError', 'ValidationError', 'ConflictError',
    'WaveAssignmentError', 'QuotaExceededError'
]
