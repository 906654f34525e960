"""
Wave Models

Waves are promotional channels shown on the map; customer wave
permissions are per-wave allowances granted by an administrator.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint

from estate_store.core.database import Base, utcnow
from estate_store.core.exceptions import ValidationError
from .fields import new_id, isoformat, parse_datetime, check_fields, require, optional_int

DEFAULT_WAVE_COLOR = '#3B82F6'


class Wave(Base):
    """Promotional channel a property can be tagged with"""
    __tablename__ = 'waves'

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    color = Column(String(20), default=DEFAULT_WAVE_COLOR)  # hex color for map display
    is_active = Column(Boolean, default=True)  # False = soft deleted
    created_by = Column(String(64), ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    UPDATE_FIELDS = ('name', 'description', 'color', 'is_active', 'created_by')
    CREATE_FIELDS = UPDATE_FIELDS + ('id', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'Wave':
        check_fields(data, cls.CREATE_FIELDS, 'wave')
        require(data, ('name',), 'wave')
        created_at = parse_datetime(data.get('created_at'), 'created_at') or utcnow()
        wave = cls(
            id=data.get('id') or new_id(),
            color=DEFAULT_WAVE_COLOR,
            is_active=True,
            created_at=created_at,
            updated_at=created_at,
        )
        wave.apply({k: v for k, v in data.items() if k in cls.UPDATE_FIELDS})
        return wave

    def apply(self, data: dict):
        check_fields(data, self.UPDATE_FIELDS, 'wave')
        for key, value in data.items():
            if key == 'name' and not value:
                raise ValidationError("'name' cannot be empty")
            if key == 'is_active':
                value = bool(value)
            elif key == 'color':
                value = value or DEFAULT_WAVE_COLOR
            setattr(self, key, value)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'color': self.color,
            'is_active': bool(self.is_active),
            'created_by': self.created_by,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class CustomerWavePermission(Base):
    """How many properties a customer may place on a specific wave"""
    __tablename__ = 'customer_wave_permissions'
    __table_args__ = (
        UniqueConstraint('user_id', 'wave_id', name='uq_wave_permissions_user_wave'),
    )

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey('users.id'), nullable=False, index=True)
    wave_id = Column(String(64), ForeignKey('waves.id'), nullable=False)
    max_properties = Column(Integer, nullable=False, default=1)
    granted_by = Column(String(64), ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    UPDATE_FIELDS = ('max_properties', 'granted_by')
    CREATE_FIELDS = UPDATE_FIELDS + ('id', 'user_id', 'wave_id', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'CustomerWavePermission':
        check_fields(data, cls.CREATE_FIELDS, 'wave permission')
        require(data, ('user_id', 'wave_id'), 'wave permission')
        created_at = parse_datetime(data.get('created_at'), 'created_at') or utcnow()
        permission = cls(
            id=data.get('id') or new_id(),
            user_id=data['user_id'],
            wave_id=data['wave_id'],
            max_properties=1,
            created_at=created_at,
            updated_at=created_at,
        )
        permission.apply({k: v for k, v in data.items() if k in cls.UPDATE_FIELDS})
        return permission

    def apply(self, data: dict):
        check_fields(data, self.UPDATE_FIELDS, 'wave permission')
        if 'max_properties' in data:
            max_properties = optional_int(data['max_properties'], 'max_properties')
            self.max_properties = 1 if max_properties is None else max_properties
        if 'granted_by' in data:
            self.granted_by = data['granted_by'] or None

    def to_dict(self, used_properties: int = 0) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'wave_id': self.wave_id,
            'max_properties': self.max_properties,
            'used_properties': used_properties,
            'granted_by': self.granted_by,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
