"""
Customer Models

Customer-side records: favorites, search history, the activity log and
the points/level accumulator fed by it.
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, UniqueConstraint

from estate_store.core.database import Base, utcnow
from estate_store.core.exceptions import ValidationError
from .fields import new_id, isoformat, parse_datetime, check_fields, require, optional_int


class Favorite(Base):
    """A user's saved property (at most one per pair)"""
    __tablename__ = 'favorites'
    __table_args__ = (
        UniqueConstraint('user_id', 'property_id', name='uq_favorites_user_property'),
    )

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey('users.id'), nullable=False, index=True)
    property_id = Column(String(64), ForeignKey('properties.id'), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    CREATE_FIELDS = ('id', 'user_id', 'property_id', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'Favorite':
        check_fields(data, cls.CREATE_FIELDS, 'favorite')
        require(data, ('user_id', 'property_id'), 'favorite')
        return cls(
            id=data.get('id') or new_id(),
            user_id=data['user_id'],
            property_id=data['property_id'],
            created_at=parse_datetime(data.get('created_at'), 'created_at') or utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'property_id': self.property_id,
            'created_at': isoformat(self.created_at),
        }


class SearchHistory(Base):
    """Append-only log of searches"""
    __tablename__ = 'search_history'

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey('users.id'), nullable=True, index=True)
    query = Column(Text, nullable=False)
    filters = Column(JSON)  # snapshot of the filters used
    results = Column(Integer, default=0)  # number of results returned
    created_at = Column(DateTime, default=utcnow)

    CREATE_FIELDS = ('id', 'user_id', 'query', 'filters', 'results', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'SearchHistory':
        check_fields(data, cls.CREATE_FIELDS, 'search history')
        if data.get('query') is None:
            raise ValidationError("Missing required search history field(s): query")
        filters = data.get('filters') or {}
        if not isinstance(filters, dict):
            raise ValidationError("'filters' must be an object")
        return cls(
            id=data.get('id') or new_id(),
            user_id=data.get('user_id'),
            query=str(data['query']),
            filters=dict(filters),
            results=optional_int(data.get('results'), 'results') or 0,
            created_at=parse_datetime(data.get('created_at'), 'created_at') or utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'query': self.query,
            'filters': dict(self.filters or {}),
            'results': self.results or 0,
            'created_at': isoformat(self.created_at),
        }


class ActivityType(str, enum.Enum):
    """Common activity types (others are accepted as-is)"""
    PROPERTY_VIEW = "property_view"
    SEARCH = "search"
    FAVORITE_ADD = "favorite_add"
    FAVORITE_REMOVE = "favorite_remove"
    INQUIRY_SENT = "inquiry_sent"
    LOGIN = "login"
    PROFILE_UPDATE = "profile_update"


class CustomerActivity(Base):
    """Append-only customer activity log"""
    __tablename__ = 'customer_activity'

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey('users.id'), nullable=False, index=True)
    activity_type = Column(String(50), nullable=False)
    property_id = Column(String(64), ForeignKey('properties.id'), nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column('metadata', JSON)
    points = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow, index=True)

    CREATE_FIELDS = ('id', 'user_id', 'activity_type', 'property_id', 'metadata', 'points', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'CustomerActivity':
        check_fields(data, cls.CREATE_FIELDS, 'activity')
        require(data, ('user_id', 'activity_type'), 'activity')
        metadata = data.get('metadata') or {}
        if not isinstance(metadata, dict):
            raise ValidationError("'metadata' must be an object")
        points = optional_int(data.get('points'), 'points') or 0
        return cls(
            id=data.get('id') or new_id(),
            user_id=data['user_id'],
            activity_type=str(data['activity_type']),
            property_id=data.get('property_id') or None,
            details=dict(metadata),
            points=points,
            created_at=parse_datetime(data.get('created_at'), 'created_at') or utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'activity_type': self.activity_type,
            'property_id': self.property_id,
            'metadata': dict(self.details or {}),
            'points': self.points or 0,
            'created_at': isoformat(self.created_at),
        }


class CustomerPoints(Base):
    """Running points total and level, one row per user"""
    __tablename__ = 'customer_points'

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey('users.id'), nullable=False, unique=True)
    total_points = Column(Integer, default=0)
    current_level = Column(String(20), default='Bronze')
    points_this_month = Column(Integer, default=0)
    last_activity = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    @classmethod
    def new(cls, user_id: str) -> 'CustomerPoints':
        now = utcnow()
        return cls(
            id=new_id(),
            user_id=user_id,
            total_points=0,
            current_level='Bronze',
            points_this_month=0,
            last_activity=now,
            updated_at=now,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'total_points': self.total_points or 0,
            'current_level': self.current_level,
            'points_this_month': self.points_this_month or 0,
            'last_activity': isoformat(self.last_activity),
            'updated_at': isoformat(self.updated_at),
        }
