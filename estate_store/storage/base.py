"""
Storage interface.

Every backend returns plain dictionaries (the models' ``to_dict()``
shape) so callers never see backend types. Single-entity lookups return
None when absent; rule violations raise the errors in
``estate_store.core.exceptions``.

Property reads are "enriched": the property record plus

    agent             public user record of the owner, or None
    wave              the wave record, or None
    customer_contact  {name, phone, email} of the newest inquiry that left
                      a non-empty phone number, or None
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from estate_store.core.config import settings
from estate_store.core.exceptions import ValidationError
from estate_store.services.filters import PropertyFilters
from estate_store.services.quota import WaveValidation

Record = Dict[str, Any]
FiltersArg = Union[PropertyFilters, Mapping[str, Any], None]


def enrich(prop, agent=None, wave=None, contact=None) -> Record:
    """Property record joined with its agent, wave and last phone contact"""
    record = prop.to_dict()
    record['agent'] = agent.to_dict() if agent is not None else None
    record['wave'] = wave.to_dict() if wave is not None else None
    record['customer_contact'] = contact.contact_dict() if contact is not None else None
    return record


def unknown(entity: str, entity_id) -> ValidationError:
    return ValidationError(f"Unknown {entity}: {entity_id}")


def activity_limit(limit: Optional[int]) -> int:
    """Requested activity page size; None means ACTIVITY_LIMIT, 0 means all"""
    if limit is None:
        return settings.ACTIVITY_LIMIT
    if limit < 0:
        raise ValidationError("'limit' must not be negative")
    return limit


def permission_record(permission, wave, used_properties: int) -> Record:
    record = permission.to_dict(used_properties=used_properties)
    record['wave'] = wave.to_dict() if wave is not None else None
    return record


class Storage(ABC):
    """Operations shared by the SQL and in-memory backends"""

    # ==================== USERS ====================

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[Record]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[Record]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[Record]: ...

    @abstractmethod
    def create_user(self, data: Mapping[str, Any]) -> Record:
        """Create a user; `password` is hashed. Duplicate username/email raise ConflictError."""

    @abstractmethod
    def update_user(self, user_id: str, data: Mapping[str, Any]) -> Optional[Record]: ...

    @abstractmethod
    def authenticate_user(self, username: str, password: str) -> Optional[Record]:
        """The user on a correct password for an unexpired account, else None"""

    @abstractmethod
    def get_all_users(self) -> List[Record]: ...

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """
        Delete a user with their favorites, searches, activity, points and
        wave permissions. Properties, inquiries and waves they own or
        authored are kept with the reference cleared.
        """

    # ==================== PROPERTIES ====================

    @abstractmethod
    def get_property(self, property_id: str) -> Optional[Record]: ...

    @abstractmethod
    def get_property_by_slug(self, slug: str) -> Optional[Record]: ...

    @abstractmethod
    def get_properties(self, filters: FiltersArg = None) -> List[Record]:
        """Active properties matching `filters`, sorted and paginated"""

    @abstractmethod
    def get_featured_properties(self) -> List[Record]:
        """Newest featured active properties (FEATURED_LIMIT of them)"""

    @abstractmethod
    def get_properties_by_agent(self, agent_id: str) -> List[Record]: ...

    @abstractmethod
    def get_properties_by_wave(self, wave_id: str) -> List[Record]: ...

    @abstractmethod
    def create_property(self, data: Mapping[str, Any]) -> Record:
        """
        Create a property. A wave assignment is checked against the
        agent's quota first; on rejection nothing is written.
        """

    @abstractmethod
    def update_property(self, property_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        """Update a property; wave changes are quota-checked before any write"""

    @abstractmethod
    def delete_property(self, property_id: str) -> bool: ...

    @abstractmethod
    def increment_property_views(self, property_id: str) -> None: ...

    @abstractmethod
    def clear_all_properties(self) -> int:
        """
        Atomically delete every property with its favorites, inquiries and
        search history. Returns the number of properties removed.
        """

    # ==================== INQUIRIES ====================

    @abstractmethod
    def get_inquiry(self, inquiry_id: str) -> Optional[Record]: ...

    @abstractmethod
    def get_inquiries_for_property(self, property_id: str) -> List[Record]: ...

    @abstractmethod
    def get_inquiries_for_agent(self, agent_id: str) -> List[Record]: ...

    @abstractmethod
    def create_inquiry(self, data: Mapping[str, Any]) -> Record: ...

    @abstractmethod
    def update_inquiry_status(self, inquiry_id: str, status: str) -> Optional[Record]: ...

    # ==================== FAVORITES ====================

    @abstractmethod
    def get_favorites_by_user(self, user_id: str) -> List[Record]: ...

    @abstractmethod
    def add_to_favorites(self, data: Mapping[str, Any]) -> Record:
        """Favorite a property; an existing (user, property) pair is returned unchanged"""

    @abstractmethod
    def remove_from_favorites(self, user_id: str, property_id: str) -> bool: ...

    @abstractmethod
    def is_favorite(self, user_id: str, property_id: str) -> bool: ...

    # ==================== SEARCH HISTORY ====================

    @abstractmethod
    def add_search_history(self, data: Mapping[str, Any]) -> Record: ...

    @abstractmethod
    def get_search_history_by_user(self, user_id: str) -> List[Record]: ...

    # ==================== CUSTOMER ACTIVITY ====================

    @abstractmethod
    def add_customer_activity(self, data: Mapping[str, Any]) -> Record:
        """Append an activity and fold its points into the user's totals"""

    @abstractmethod
    def get_customer_activities(self, user_id: str, limit: Optional[int] = None) -> List[Record]: ...

    @abstractmethod
    def get_customer_points(self, user_id: str) -> Optional[Record]: ...

    @abstractmethod
    def get_customer_analytics(self, user_id: str) -> Record: ...

    # ==================== WAVES ====================

    @abstractmethod
    def get_waves(self) -> List[Record]: ...

    @abstractmethod
    def get_wave(self, wave_id: str) -> Optional[Record]: ...

    @abstractmethod
    def create_wave(self, data: Mapping[str, Any]) -> Record: ...

    @abstractmethod
    def update_wave(self, wave_id: str, data: Mapping[str, Any]) -> Optional[Record]: ...

    @abstractmethod
    def delete_wave(self, wave_id: str) -> bool:
        """Soft delete (is_active = False)"""

    @abstractmethod
    def get_customer_wave_permissions(self, user_id: str) -> List[Record]: ...

    @abstractmethod
    def get_wave_permission(self, user_id: str, wave_id: str) -> Optional[Record]: ...

    @abstractmethod
    def grant_wave_permission(self, data: Mapping[str, Any]) -> Record: ...

    @abstractmethod
    def update_wave_permission(self, permission_id: str, data: Mapping[str, Any]) -> Optional[Record]: ...

    @abstractmethod
    def revoke_wave_permission(self, user_id: str, wave_id: str) -> bool: ...

    # ==================== WAVE QUOTA ====================

    @abstractmethod
    def get_user_wave_usage(self, user_id: str) -> int: ...

    @abstractmethod
    def get_user_remaining_waves(self, user_id: str) -> int: ...

    @abstractmethod
    def validate_wave_assignment(self, user_id: str, wave_id: Optional[str]) -> WaveValidation: ...

    @abstractmethod
    def update_users_with_zero_wave_balance(self) -> int:
        """Reset every customer ("user" role) balance of exactly 0 to the default"""
