"""
Demo data.

Creates the default accounts, the premium wave and a handful of example
listings through the storage interface, so any backend can be seeded
and both start from the same state.
"""
import logging
from datetime import datetime, timedelta

from .base import Storage

LOGGER = logging.getLogger(__name__)

ADMIN_ID = 'admin-001'
CUSTOMER_ID = 'customer-001'
PREMIUM_WAVE_ID = 'wave-premium'

# Fixed timestamps keep seeded ordering identical across backends
SEED_TIME = datetime(2024, 1, 1, 9, 0, 0)

DEMO_USERS = [
    {
        'id': ADMIN_ID,
        'username': 'admin',
        'email': 'admin@estateai.com',
        'password': 'admin123',
        'role': 'super_admin',
        'first_name': 'System',
        'last_name': 'Admin',
        'phone': '+964 750 000 0000',
        'is_verified': True,
        'wave_balance': 999999,
    },
    {
        'id': CUSTOMER_ID,
        'username': 'Jutyar',
        'email': 'jutyar@estateai.com',
        'password': 'customer123',
        'role': 'user',
        'first_name': 'Jutyar',
        'last_name': 'Customer',
        'phone': '+964 750 111 2222',
        'is_verified': True,
        'wave_balance': 10,
    },
]

DEMO_WAVES = [
    {
        'id': PREMIUM_WAVE_ID,
        'name': 'Premium Wave',
        'description': 'Premium properties with special circle motion effect',
        'color': '#F59E0B',
        'created_by': ADMIN_ID,
    },
]


def _unsplash(photo: str) -> str:
    return f"https://images.unsplash.com/{photo}?ixlib=rb-4.0.3&auto=format&fit=crop&w=800&h=600"


DEMO_PROPERTIES = [
    {
        'id': 'property-001',
        'title': 'Modern Apartment in Erbil City Center',
        'description': (
            'Beautiful 2-bedroom apartment located in the heart of Erbil. Perfect for young '
            'professionals or small families, with easy access to shopping centers and restaurants.'
        ),
        'type': 'apartment',
        'listing_type': 'rent',
        'price': '800',
        'bedrooms': 2,
        'bathrooms': 1,
        'area': 85,
        'address': 'Gulan Street, Downtown',
        'city': 'Erbil',
        'country': 'Iraq',
        'latitude': '36.1911',
        'longitude': '44.0093',
        'amenities': ['Air Conditioning', 'Parking', 'Security System'],
        'features': ['Furnished', 'Modern Kitchen', 'High Ceilings'],
        'contact_phone': '+964 750 123 4567',
    },
    {
        'id': 'property-002',
        'title': 'Spacious Villa in Ainkawa',
        'description': (
            'Luxurious 4-bedroom villa in the prestigious Ainkawa area with a large garden, '
            'swimming pool and high-end finishes throughout.'
        ),
        'type': 'villa',
        'listing_type': 'sale',
        'price': '450000',
        'bedrooms': 4,
        'bathrooms': 3,
        'area': 350,
        'address': 'Ainkawa Main Road',
        'city': 'Erbil',
        'country': 'Iraq',
        'latitude': '36.2181',
        'longitude': '44.0089',
        'amenities': ['Swimming Pool', 'Garden', 'Parking', 'Security System', 'Gym'],
        'features': ['Air Conditioning', 'Heating', 'Fireplace', 'High Ceilings', 'Storage Room'],
        'contact_phone': '+964 750 987 6543',
    },
    {
        'id': 'property-003',
        'title': 'Elegant Townhouse in Duhok',
        'description': (
            "A stunning 3-bedroom townhouse in Duhok's premium residential area with a private "
            'garden, near schools and shopping centers.'
        ),
        'type': 'house',
        'listing_type': 'sale',
        'price': '220000',
        'bedrooms': 3,
        'bathrooms': 2,
        'area': 180,
        'address': 'Nakhoshkhana Road, Premium District',
        'city': 'Duhok',
        'country': 'Iraq',
        'latitude': '36.8677',
        'longitude': '42.9944',
        'images': [
            _unsplash('photo-1568605114967-8130f3a36994'),
            _unsplash('photo-1570129477492-45c003edd2be'),
            _unsplash('photo-1484154218962-a197022b5858'),
        ],
        'amenities': ['Private Garden', 'Garage', 'Central Heating', 'Security System'],
        'features': ['Hardwood Floors', 'Granite Countertops', 'Walk-in Closets', 'Patio'],
        'contact_phone': '+964 750 456 7890',
        'is_featured': True,
    },
    {
        'id': 'property-004',
        'title': 'Luxury Penthouse in Zakho',
        'description': (
            "Exclusive penthouse apartment with panoramic city views in Zakho's most "
            'prestigious building, with spacious terraces and premium amenities.'
        ),
        'type': 'apartment',
        'listing_type': 'rent',
        'price': '1200',
        'bedrooms': 2,
        'bathrooms': 2,
        'area': 120,
        'address': 'City Center Tower, Main Boulevard',
        'city': 'Zakho',
        'country': 'Iraq',
        'latitude': '37.1433',
        'longitude': '42.6816',
        'images': [
            _unsplash('photo-1613977257363-707ba9348227'),
            _unsplash('photo-1512918728675-ed5a9ecdebfd'),
            _unsplash('photo-1493809842364-78817add7ffb'),
        ],
        'amenities': ['Rooftop Terrace', 'Concierge Service', 'Gym Access', 'Valet Parking'],
        'features': ['Floor-to-Ceiling Windows', 'Designer Kitchen', 'Smart Home Technology', 'City Views'],
        'contact_phone': '+964 750 789 0123',
        'is_featured': True,
    },
    {
        'id': 'property-005',
        'title': 'Countryside Villa in Amedi',
        'description': (
            'Magnificent 4-bedroom villa surrounded by nature in the mountain town of Amedi, '
            'with fresh mountain air and breathtaking views.'
        ),
        'type': 'villa',
        'listing_type': 'sale',
        'price': '380000',
        'bedrooms': 4,
        'bathrooms': 3,
        'area': 280,
        'address': 'Mountain View Road, Amedi Heights',
        'city': 'Amedi',
        'country': 'Iraq',
        'latitude': '37.0897',
        'longitude': '43.4905',
        'images': [
            _unsplash('photo-1576941089067-2de3c901e126'),
            _unsplash('photo-1600047509807-ba8f99d2cdde'),
            _unsplash('photo-1582268611958-ebfd161ef9cf'),
        ],
        'amenities': ['Mountain Views', 'Large Garden', 'Fireplace', 'Outdoor Kitchen'],
        'features': ['Stone Construction', 'Wooden Beams', 'Multiple Terraces', 'Wine Cellar'],
        'contact_phone': '+964 750 234 5678',
        'is_featured': True,
    },
]


def seed_demo_data(storage: Storage) -> dict:
    """
    Populate a store with the demo accounts, wave and listings.

    Safe to run twice: records that already exist are skipped.

    Returns:
        Number of users, waves and properties created
    """
    created = {'users': 0, 'waves': 0, 'properties': 0}

    for index, user in enumerate(DEMO_USERS):
        if storage.get_user(user['id']) is None:
            storage.create_user({**user, 'created_at': SEED_TIME + timedelta(minutes=index)})
            created['users'] += 1

    for wave in DEMO_WAVES:
        if storage.get_wave(wave['id']) is None:
            storage.create_wave({**wave, 'created_at': SEED_TIME})
            created['waves'] += 1

    for index, prop in enumerate(DEMO_PROPERTIES):
        if storage.get_property(prop['id']) is None:
            storage.create_property({
                **prop,
                'currency': 'USD',
                'status': 'active',
                'agent_id': CUSTOMER_ID,
                'created_at': SEED_TIME + timedelta(hours=index + 1),
            })
            created['properties'] += 1

    LOGGER.info(
        "Seeded demo data: %d users, %d waves, %d properties",
        created['users'], created['waves'], created['properties']
    )
    return created
