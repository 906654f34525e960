"""
Entity Models

Includes:
- User: Accounts with roles and wave balances
- Property: Listings, optionally tagged with a wave
- Inquiry: Contact requests for a property
- Favorite, SearchHistory: Customer bookmarks and searches
- CustomerActivity, CustomerPoints: Activity log and points/levels
- Wave, CustomerWavePermission: Promotional channels and allowances
"""
from .user import User, DEFAULT_WAVE_BALANCE
from .property import Property, PropertyStatus, ListingType, NO_WAVE, normalize_wave_id
from .inquiry import Inquiry, InquiryStatus
from .customer import Favorite, SearchHistory, ActivityType, CustomerActivity, CustomerPoints
from .wave import Wave, CustomerWavePermission

__all__ = [
    'User', 'DEFAULT_WAVE_BALANCE',
    'Property', 'PropertyStatus', 'ListingType', 'NO_WAVE', 'normalize_wave_id',
    'Inquiry', 'InquiryStatus',
    'Favorite', 'SearchHistory', 'ActivityType', 'CustomerActivity', 'CustomerPoints',
    'Wave', 'CustomerWavePermission'
]
