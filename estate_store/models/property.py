"""
Property Model

Property listings, optionally tagged with a promotional wave.
"""
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, JSON

from estate_store.core.database import Base, utcnow
from estate_store.core.exceptions import ValidationError
from .fields import (
    new_id, isoformat, parse_datetime, check_fields, require,
    decimal_string, optional_int, string_list
)

# Wave id meaning "no wave"; stored as NULL
NO_WAVE = 'no-wave'


class PropertyStatus(str, enum.Enum):
    """Property status"""
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"
    RENTED = "rented"


class ListingType(str, enum.Enum):
    """Listing type"""
    SALE = "sale"
    RENT = "rent"


def normalize_wave_id(wave_id):
    """Map the "no-wave" sentinel and blanks to None"""
    if wave_id in (None, '', NO_WAVE):
        return None
    return wave_id


class Property(Base):
    """Property listing model"""
    __tablename__ = 'properties'

    id = Column(String(64), primary_key=True, index=True)
    slug = Column(String(120), unique=True, index=True)

    # ==================== DETAILS ====================
    title = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(30), nullable=False)  # house, apartment, villa, land
    listing_type = Column(String(10), nullable=False)  # sale, rent

    # ==================== PRICE ====================
    price = Column(String(32), nullable=False)  # decimal string, compared numerically
    currency = Column(String(10), default='USD')

    # ==================== SPECIFICATIONS ====================
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)
    area = Column(Integer)  # square feet

    # ==================== LOCATION ====================
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    country = Column(String(100), nullable=False)
    latitude = Column(String(32))
    longitude = Column(String(32))

    # ==================== MEDIA & FEATURES ====================
    images = Column(JSON)  # ordered list of URLs
    amenities = Column(JSON)
    features = Column(JSON)
    language = Column(String(10), default='en')

    # ==================== ASSIGNMENT ====================
    agent_id = Column(String(64), ForeignKey('users.id'), nullable=True, index=True)
    contact_phone = Column(String(50))
    wave_id = Column(String(64), ForeignKey('waves.id'), nullable=True, index=True)

    # ==================== STATUS & ANALYTICS ====================
    status = Column(String(20), default='active', index=True)
    is_featured = Column(Boolean, default=False)
    views = Column(Integer, default=0)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)

    REQUIRED_FIELDS = ('title', 'type', 'listing_type', 'price', 'address', 'city', 'country')
    UPDATE_FIELDS = (
        'slug', 'title', 'description', 'type', 'listing_type', 'price', 'currency',
        'bedrooms', 'bathrooms', 'area', 'address', 'city', 'country', 'latitude',
        'longitude', 'images', 'amenities', 'features', 'language', 'agent_id',
        'contact_phone', 'wave_id', 'status', 'is_featured',
    )
    CREATE_FIELDS = UPDATE_FIELDS + ('id', 'created_at')

    @classmethod
    def new(cls, data: dict) -> 'Property':
        """Build a validated, fully defaulted property from creation data"""
        check_fields(data, cls.CREATE_FIELDS, 'property')
        require(data, cls.REQUIRED_FIELDS, 'property')
        created_at = parse_datetime(data.get('created_at'), 'created_at') or utcnow()
        prop = cls(
            id=data.get('id') or new_id(),
            currency='USD',
            images=[],
            amenities=[],
            features=[],
            language='en',
            status=PropertyStatus.ACTIVE.value,
            is_featured=False,
            views=0,
            created_at=created_at,
            updated_at=created_at,
        )
        prop.apply({k: v for k, v in data.items() if k in cls.UPDATE_FIELDS})
        return prop

    def apply(self, data: dict):
        """Apply a partial update (validated and normalized)"""
        check_fields(data, self.UPDATE_FIELDS, 'property')
        for key, value in data.items():
            if key in self.REQUIRED_FIELDS and value in (None, ''):
                raise ValidationError(f"'{key}' cannot be empty")
            if key == 'price':
                price = decimal_string(value, 'price', places=2)
                if price.startswith('-'):
                    raise ValidationError("'price' must not be negative")
                self.price = price
            elif key in ('latitude', 'longitude'):
                setattr(self, key, decimal_string(value, key))
            elif key in ('bedrooms', 'bathrooms', 'area'):
                setattr(self, key, optional_int(value, key))
            elif key in ('images', 'amenities', 'features'):
                setattr(self, key, string_list(value, key))
            elif key == 'listing_type':
                if value not in [t.value for t in ListingType]:
                    raise ValidationError(f"Invalid listing type: {value}")
                self.listing_type = value
            elif key == 'status':
                if value not in [s.value for s in PropertyStatus]:
                    raise ValidationError(f"Invalid status: {value}")
                self.status = value
            elif key == 'wave_id':
                self.wave_id = normalize_wave_id(value)
            elif key == 'agent_id':
                self.agent_id = value or None
            elif key == 'is_featured':
                self.is_featured = bool(value)
            elif key == 'currency':
                self.currency = value or 'USD'
            elif key == 'language':
                self.language = value or 'en'
            else:
                setattr(self, key, value)

    def touch(self):
        self.updated_at = utcnow()

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'slug': self.slug,

            # Details
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'listing_type': self.listing_type,

            # Price
            'price': self.price,
            'currency': self.currency,

            # Specifications
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'area': self.area,

            # Location
            'address': self.address,
            'city': self.city,
            'country': self.country,
            'latitude': self.latitude,
            'longitude': self.longitude,

            # Media & features
            'images': list(self.images or []),
            'amenities': list(self.amenities or []),
            'features': list(self.features or []),
            'language': self.language,

            # Assignment
            'agent_id': self.agent_id,
            'contact_phone': self.contact_phone,
            'wave_id': self.wave_id,

            # Status
            'status': self.status,
            'is_featured': bool(self.is_featured),
            'views': self.views or 0,

            # Timestamps
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
