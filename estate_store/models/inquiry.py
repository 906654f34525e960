"""
Inquiry Model

Contact requests sent to a property's agent. The most recent inquiry
that left a phone number is shown as the property's "last contact".
"""
import enum
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index

from estate_store.core.database import Base, utcnow
from estate_store.core.exceptions import ValidationError
from .fields import new_id, isoformat, parse_datetime, check_fields, require


class InquiryStatus(str, enum.Enum):
    """Inquiry status"""
    PENDING = "pending"
    REPLIED = "replied"
    CLOSED = "closed"


class Inquiry(Base):
    """Inquiry about a property"""
    __tablename__ = 'inquiries'
    __table_args__ = (
        Index('idx_inquiries_property_created', 'property_id', 'created_at'),
    )

    id = Column(String(64), primary_key=True, index=True)
    property_id = Column(String(64), ForeignKey('properties.id'), nullable=True)
    user_id = Column(String(64), ForeignKey('users.id'), nullable=True)

    name = Column(String(200), nullable=False)
    email = Column(String(120), nullable=False)
    phone = Column(String(50))
    message = Column(Text, nullable=False)

    status = Column(String(20), default='pending')
    created_at = Column(DateTime, default=utcnow)

    CREATE_FIELDS = ('id', 'property_id', 'user_id', 'name', 'email', 'phone', 'message', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'Inquiry':
        check_fields(data, cls.CREATE_FIELDS, 'inquiry')
        require(data, ('name', 'email', 'message'), 'inquiry')
        return cls(
            id=data.get('id') or new_id(),
            property_id=data.get('property_id'),
            user_id=data.get('user_id'),
            name=data['name'],
            email=data['email'],
            phone=data.get('phone') or None,
            message=data['message'],
            status=InquiryStatus.PENDING.value,
            created_at=parse_datetime(data.get('created_at'), 'created_at') or utcnow(),
        )

    @staticmethod
    def check_status(status: str) -> str:
        if status not in [s.value for s in InquiryStatus]:
            raise ValidationError(f"Invalid inquiry status: {status}")
        return status

    @property
    def has_phone(self) -> bool:
        return self.phone is not None and self.phone != ''

    def contact_dict(self) -> dict:
        """Name/phone/email shown as a property's last contact"""
        return {
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'property_id': self.property_id,
            'user_id': self.user_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'message': self.message,
            'status': self.status,
            'created_at': isoformat(self.created_at),
        }
