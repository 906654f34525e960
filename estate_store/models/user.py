"""
User Model

Site accounts: customers, agents and administrators, each with a wave
balance (how many properties they may keep on a promotional wave).
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON

from estate_store.core.database import Base, utcnow
from estate_store.core.exceptions import ValidationError
from estate_store.core.security import hash_password, verify_password
from .fields import (
    new_id, isoformat, parse_datetime, check_fields, require, optional_int, string_list
)

DEFAULT_WAVE_BALANCE = 10
DEFAULT_LANGUAGES = ['en']


class User(Base):
    """Site user with a role and a wave balance"""
    __tablename__ = 'users'

    id = Column(String(64), primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(120), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)

    # Role: user, agent, admin, super_admin
    role = Column(String(20), nullable=False, default='user', index=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    phone = Column(String(50))
    avatar = Column(String(500))

    is_verified = Column(Boolean, default=False)
    wave_balance = Column(Integer, default=DEFAULT_WAVE_BALANCE)
    allowed_languages = Column(JSON)  # list of language codes
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    ROLES = {
        'user': 'Customer',
        'agent': 'Agent',
        'admin': 'Administrator',
        'super_admin': 'Super Administrator',
    }
    # Roles exempt from wave quota checks
    PRIVILEGED_ROLES = ('admin', 'super_admin')

    CREATE_FIELDS = (
        'id', 'username', 'email', 'password', 'password_hash', 'role',
        'first_name', 'last_name', 'phone', 'avatar', 'is_verified',
        'wave_balance', 'allowed_languages', 'expires_at', 'created_at',
    )
    UPDATE_FIELDS = (
        'username', 'email', 'password', 'role', 'first_name', 'last_name',
        'phone', 'avatar', 'is_verified', 'wave_balance', 'allowed_languages',
        'expires_at',
    )

    @classmethod
    def new(cls, data: dict) -> 'User':
        """Build a validated, fully defaulted user from creation data"""
        check_fields(data, cls.CREATE_FIELDS, 'user')
        require(data, ('username', 'email'), 'user')
        if not data.get('password') and not data.get('password_hash'):
            raise ValidationError("Missing required user field(s): password")

        user = cls(
            id=data.get('id') or new_id(),
            role='user',
            is_verified=False,
            wave_balance=DEFAULT_WAVE_BALANCE,
            allowed_languages=list(DEFAULT_LANGUAGES),
            created_at=parse_datetime(data.get('created_at'), 'created_at') or utcnow(),
        )
        if data.get('password_hash') and not data.get('password'):
            user.password_hash = data['password_hash']
        user.apply({k: v for k, v in data.items() if k in cls.UPDATE_FIELDS})
        return user

    def apply(self, data: dict):
        """Apply a partial update (already restricted to UPDATE_FIELDS)"""
        check_fields(data, self.UPDATE_FIELDS, 'user')
        for key, value in data.items():
            if key == 'password':
                if not value:
                    raise ValidationError("Password cannot be empty")
                self.set_password(value)
            elif key == 'role':
                if value not in self.ROLES:
                    raise ValidationError(f"Invalid role: {value}")
                self.role = value
            elif key == 'wave_balance':
                balance = optional_int(value, 'wave_balance')
                self.wave_balance = DEFAULT_WAVE_BALANCE if balance is None else balance
            elif key == 'allowed_languages':
                self.allowed_languages = string_list(value, key) or list(DEFAULT_LANGUAGES)
            elif key == 'expires_at':
                self.expires_at = parse_datetime(value, key)
            elif key == 'is_verified':
                self.is_verified = bool(value)
            elif key in ('username', 'email'):
                if not value:
                    raise ValidationError(f"'{key}' cannot be empty")
                setattr(self, key, str(value).strip())
            else:
                setattr(self, key, value)

    def set_password(self, password: str):
        """Hash and set the user's password"""
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        """Verify the user's password"""
        return verify_password(password, self.password_hash)

    @property
    def is_privileged(self) -> bool:
        return self.role in self.PRIVILEGED_ROLES

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Account is inactive once expires_at has passed"""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())

    def to_dict(self) -> dict:
        """Convert to dictionary (without password)"""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'role_name': self.ROLES.get(self.role, 'Unknown'),
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'avatar': self.avatar,
            'is_verified': bool(self.is_verified),
            'wave_balance': self.wave_balance or 0,
            'allowed_languages': list(self.allowed_languages or DEFAULT_LANGUAGES),
            'expires_at': isoformat(self.expires_at),
            'is_expired': self.is_expired(),
            'created_at': isoformat(self.created_at),
        }
