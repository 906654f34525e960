"""
In-memory storage.

A volatile store for demos, offline development and tests. Each instance
owns its collections, guarded by one re-entrant lock, and holds the same
model objects the SQL backend persists (never added to a session) so
defaults, validation and serialization are shared.

Updates are applied to a copy of the stored object and swapped in only
once every check has passed, so a rejected write leaves nothing behind.
"""
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import inspect

from estate_store.core.config import settings
from estate_store.core.database import utcnow
from estate_store.core.exceptions import ConflictError
from estate_store.models import (
    User, Property, PropertyStatus, Inquiry, Favorite, SearchHistory,
    CustomerActivity, CustomerPoints, Wave, CustomerWavePermission
)
from estate_store.services.filters import PropertyFilters
from estate_store.services.points import accumulate, build_analytics, history_windows, summarize_by_type
from estate_store.services.quota import (
    REPAIR_WAVE_BALANCE, WaveValidation, assignment_needs_check, enforce_assignment,
    is_wave_assigned, needs_balance_repair, remaining_waves, validate_assignment
)
from estate_store.services.slugs import resolve_slug
from .base import (
    FiltersArg, Record, Storage, activity_limit, enrich, permission_record, unknown
)
from .seed import seed_demo_data

LOGGER = logging.getLogger(__name__)


def _copy(instance):
    """Detached copy of a model object's column values"""
    mapper = inspect(type(instance))
    return type(instance)(**{
        attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs
    })


def _newest_first(items):
    return sorted(items, key=lambda item: (item.created_at, item.id), reverse=True)


def _without_user(collection: dict, user_id: str) -> dict:
    return {key: row for key, row in collection.items() if row.user_id != user_id}


class MemoryStorage(Storage):
    """Lock-guarded, process-local implementation of the storage interface"""

    def __init__(self, seed: bool = False):
        self._lock = threading.RLock()
        self._users: Dict[str, User] = {}
        self._properties: Dict[str, Property] = {}
        self._inquiries: Dict[str, Inquiry] = {}
        self._favorites: Dict[str, Favorite] = {}
        self._search_history: Dict[str, SearchHistory] = {}
        self._activities: Dict[str, CustomerActivity] = {}
        self._points: Dict[str, CustomerPoints] = {}  # keyed by user id
        self._waves: Dict[str, Wave] = {}
        self._permissions: Dict[str, CustomerWavePermission] = {}

        if seed:
            seed_demo_data(self)

    # ==================== HELPERS ====================

    def _enrich(self, prop: Property) -> Record:
        return enrich(
            prop,
            agent=self._users.get(prop.agent_id) if prop.agent_id else None,
            wave=self._waves.get(prop.wave_id) if prop.wave_id else None,
            contact=self._latest_contact(prop.id),
        )

    def _latest_contact(self, property_id: str) -> Optional[Inquiry]:
        candidates = [
            inquiry for inquiry in self._inquiries.values()
            if inquiry.property_id == property_id and inquiry.has_phone
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda inquiry: (inquiry.created_at, inquiry.id))

    def _wave_usage(self, user_id: Optional[str], wave_id: Optional[str] = None) -> int:
        return sum(
            1 for prop in self._properties.values()
            if prop.agent_id == user_id and is_wave_assigned(prop.wave_id)
            and (wave_id is None or prop.wave_id == wave_id)
        )

    def _check_property(self, prop: Property, current_agent_id=None, current_wave_id=None):
        """Reference and quota checks shared by create and update"""
        if prop.wave_id is not None and prop.wave_id not in self._waves:
            raise unknown('wave', prop.wave_id)
        if assignment_needs_check(current_agent_id, current_wave_id, prop.agent_id, prop.wave_id):
            enforce_assignment(
                self._users.get(prop.agent_id), prop.wave_id, self._wave_usage(prop.agent_id)
            )
        if prop.agent_id is not None and prop.agent_id not in self._users:
            raise unknown('agent', prop.agent_id)

    def _slug_taken(self, property_id: str):
        def exists(slug: str) -> bool:
            return any(
                prop.slug == slug for pid, prop in self._properties.items() if pid != property_id
            )
        return exists

    def _check_unique_user(self, user: User):
        others = [other for other in self._users.values() if other.id != user.id]
        if any(other.username == user.username for other in others):
            raise ConflictError(f"Username already exists: {user.username}")
        if any(other.email == user.email for other in others):
            raise ConflictError(f"Email already exists: {user.email}")

    def _require(self, collection: dict, entity: str, entity_id: Optional[str], optional: bool = False):
        if entity_id is None and optional:
            return
        if entity_id not in collection:
            raise unknown(entity, entity_id)

    # ==================== USERS ====================

    def get_user(self, user_id: str) -> Optional[Record]:
        with self._lock:
            user = self._users.get(user_id)
            return user.to_dict() if user else None

    def get_user_by_username(self, username: str) -> Optional[Record]:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return user.to_dict()
            return None

    def get_user_by_email(self, email: str) -> Optional[Record]:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.to_dict()
            return None

    def create_user(self, data: Mapping[str, Any]) -> Record:
        user = User.new(dict(data))
        with self._lock:
            if user.id in self._users:
                raise ConflictError(f"User already exists: {user.id}")
            self._check_unique_user(user)
            self._users[user.id] = user
            return user.to_dict()

    def update_user(self, user_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            user = _copy(current)
            user.apply(dict(data))
            self._check_unique_user(user)
            self._users[user_id] = user
            return user.to_dict()

    def authenticate_user(self, username: str, password: str) -> Optional[Record]:
        with self._lock:
            user = next((u for u in self._users.values() if u.username == username), None)
            if user is None or user.is_expired() or not user.check_password(password):
                return None
            return user.to_dict()

    def get_all_users(self) -> List[Record]:
        with self._lock:
            users = sorted(self._users.values(), key=lambda u: (u.created_at, u.id))
            return [user.to_dict() for user in users]

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            if user_id not in self._users:
                return False

            self._favorites = _without_user(self._favorites, user_id)
            self._search_history = _without_user(self._search_history, user_id)
            self._activities = _without_user(self._activities, user_id)
            self._permissions = _without_user(self._permissions, user_id)
            self._points.pop(user_id, None)

            for prop in self._properties.values():
                if prop.agent_id == user_id:
                    prop.agent_id = None
            for inquiry in self._inquiries.values():
                if inquiry.user_id == user_id:
                    inquiry.user_id = None
            for wave in self._waves.values():
                if wave.created_by == user_id:
                    wave.created_by = None
            for permission in self._permissions.values():
                if permission.granted_by == user_id:
                    permission.granted_by = None

            del self._users[user_id]
            return True

    # ==================== PROPERTIES ====================

    def get_property(self, property_id: str) -> Optional[Record]:
        with self._lock:
            prop = self._properties.get(property_id)
            return self._enrich(prop) if prop else None

    def get_property_by_slug(self, slug: str) -> Optional[Record]:
        with self._lock:
            for prop in self._properties.values():
                if prop.slug == slug:
                    return self._enrich(prop)
            return None

    def get_properties(self, filters: FiltersArg = None) -> List[Record]:
        filters = PropertyFilters.coerce(filters)
        with self._lock:
            matched = [prop for prop in self._properties.values() if filters.matches(prop)]
            return [self._enrich(prop) for prop in filters.sort_and_page(matched)]

    def get_featured_properties(self) -> List[Record]:
        with self._lock:
            featured = [
                prop for prop in self._properties.values()
                if prop.is_featured and prop.status == PropertyStatus.ACTIVE.value
            ]
            newest = _newest_first(featured)[:settings.FEATURED_LIMIT]
            return [self._enrich(prop) for prop in newest]

    def get_properties_by_agent(self, agent_id: str) -> List[Record]:
        with self._lock:
            props = [p for p in self._properties.values() if p.agent_id == agent_id]
            return [self._enrich(prop) for prop in _newest_first(props)]

    def get_properties_by_wave(self, wave_id: str) -> List[Record]:
        with self._lock:
            props = [
                p for p in self._properties.values()
                if p.wave_id == wave_id and p.status == PropertyStatus.ACTIVE.value
            ]
            return [self._enrich(prop) for prop in _newest_first(props)]

    def create_property(self, data: Mapping[str, Any]) -> Record:
        data = dict(data)
        prop = Property.new(data)
        with self._lock:
            if prop.id in self._properties:
                raise ConflictError(f"Property already exists: {prop.id}")
            self._check_property(prop)
            prop.slug = resolve_slug(prop.to_dict(), data.get('slug'), self._slug_taken(prop.id))
            self._properties[prop.id] = prop
            return prop.to_dict()

    def update_property(self, property_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        data = dict(data)
        with self._lock:
            current = self._properties.get(property_id)
            if current is None:
                return None
            prop = _copy(current)
            prop.apply(data)
            prop.touch()
            self._check_property(prop, current.agent_id, current.wave_id)
            if 'slug' in data:
                prop.slug = resolve_slug(prop.to_dict(), data['slug'], self._slug_taken(prop.id))
            self._properties[property_id] = prop
            return prop.to_dict()

    def delete_property(self, property_id: str) -> bool:
        with self._lock:
            if property_id not in self._properties:
                return False
            self._favorites = {
                key: fav for key, fav in self._favorites.items() if fav.property_id != property_id
            }
            self._inquiries = {
                key: inq for key, inq in self._inquiries.items() if inq.property_id != property_id
            }
            for activity in self._activities.values():
                if activity.property_id == property_id:
                    activity.property_id = None
            del self._properties[property_id]
            return True

    def increment_property_views(self, property_id: str) -> None:
        with self._lock:
            prop = self._properties.get(property_id)
            if prop is not None:
                prop.views = (prop.views or 0) + 1

    def clear_all_properties(self) -> int:
        with self._lock:
            count = len(self._properties)
            activities = {}
            for key, activity in self._activities.items():
                if activity.property_id is not None:
                    activity = _copy(activity)
                    activity.property_id = None
                activities[key] = activity

            # Swap everything in at once; nothing below can fail
            self._favorites = {}
            self._inquiries = {}
            self._search_history = {}
            self._activities = activities
            self._properties = {}

        LOGGER.info("Cleared %d properties and their dependent rows", count)
        return count

    # ==================== INQUIRIES ====================

    def get_inquiry(self, inquiry_id: str) -> Optional[Record]:
        with self._lock:
            inquiry = self._inquiries.get(inquiry_id)
            return inquiry.to_dict() if inquiry else None

    def get_inquiries_for_property(self, property_id: str) -> List[Record]:
        with self._lock:
            rows = [i for i in self._inquiries.values() if i.property_id == property_id]
            return [inquiry.to_dict() for inquiry in _newest_first(rows)]

    def get_inquiries_for_agent(self, agent_id: str) -> List[Record]:
        with self._lock:
            owned = {pid for pid, prop in self._properties.items() if prop.agent_id == agent_id}
            rows = [i for i in self._inquiries.values() if i.property_id in owned]
            return [inquiry.to_dict() for inquiry in _newest_first(rows)]

    def create_inquiry(self, data: Mapping[str, Any]) -> Record:
        inquiry = Inquiry.new(dict(data))
        with self._lock:
            self._require(self._properties, 'property', inquiry.property_id, optional=True)
            self._require(self._users, 'user', inquiry.user_id, optional=True)
            self._inquiries[inquiry.id] = inquiry
            return inquiry.to_dict()

    def update_inquiry_status(self, inquiry_id: str, status: str) -> Optional[Record]:
        Inquiry.check_status(status)
        with self._lock:
            inquiry = self._inquiries.get(inquiry_id)
            if inquiry is None:
                return None
            inquiry.status = status
            return inquiry.to_dict()

    # ==================== FAVORITES ====================

    def get_favorites_by_user(self, user_id: str) -> List[Record]:
        with self._lock:
            favorites = [f for f in self._favorites.values() if f.user_id == user_id]
            return [
                self._enrich(self._properties[fav.property_id])
                for fav in _newest_first(favorites)
                if fav.property_id in self._properties
            ]

    def _find_favorite(self, user_id: str, property_id: str) -> Optional[Favorite]:
        for favorite in self._favorites.values():
            if favorite.user_id == user_id and favorite.property_id == property_id:
                return favorite
        return None

    def add_to_favorites(self, data: Mapping[str, Any]) -> Record:
        favorite = Favorite.new(dict(data))
        with self._lock:
            existing = self._find_favorite(favorite.user_id, favorite.property_id)
            if existing is not None:
                return existing.to_dict()
            self._require(self._users, 'user', favorite.user_id)
            self._require(self._properties, 'property', favorite.property_id)
            self._favorites[favorite.id] = favorite
            return favorite.to_dict()

    def remove_from_favorites(self, user_id: str, property_id: str) -> bool:
        with self._lock:
            favorite = self._find_favorite(user_id, property_id)
            if favorite is None:
                return False
            del self._favorites[favorite.id]
            return True

    def is_favorite(self, user_id: str, property_id: str) -> bool:
        with self._lock:
            return self._find_favorite(user_id, property_id) is not None

    # ==================== SEARCH HISTORY ====================

    def add_search_history(self, data: Mapping[str, Any]) -> Record:
        search = SearchHistory.new(dict(data))
        with self._lock:
            self._require(self._users, 'user', search.user_id, optional=True)
            self._search_history[search.id] = search
            return search.to_dict()

    def get_search_history_by_user(self, user_id: str) -> List[Record]:
        with self._lock:
            rows = [s for s in self._search_history.values() if s.user_id == user_id]
            newest = _newest_first(rows)[:settings.SEARCH_HISTORY_LIMIT]
            return [search.to_dict() for search in newest]

    # ==================== CUSTOMER ACTIVITY ====================

    def add_customer_activity(self, data: Mapping[str, Any]) -> Record:
        activity = CustomerActivity.new(dict(data))
        with self._lock:
            self._require(self._users, 'user', activity.user_id)
            self._require(self._properties, 'property', activity.property_id, optional=True)

            points = self._points.get(activity.user_id) or CustomerPoints.new(activity.user_id)
            accumulate(points, activity.points, utcnow())
            self._activities[activity.id] = activity
            self._points[activity.user_id] = points
            return activity.to_dict()

    def get_customer_activities(self, user_id: str, limit: Optional[int] = None) -> List[Record]:
        limit = activity_limit(limit)
        with self._lock:
            rows = _newest_first(a for a in self._activities.values() if a.user_id == user_id)
            if limit:
                rows = rows[:limit]
            return [activity.to_dict() for activity in rows]

    def get_customer_points(self, user_id: str) -> Optional[Record]:
        with self._lock:
            points = self._points.get(user_id)
            return points.to_dict() if points else None

    def get_customer_analytics(self, user_id: str) -> Record:
        now = utcnow()
        _, since = history_windows(now)
        with self._lock:
            rows = [
                (a.activity_type, a.points or 0, a.created_at)
                for a in self._activities.values() if a.user_id == user_id
            ]
        recent = [row for row in rows if row[2] >= since]
        return build_analytics(len(rows), summarize_by_type(rows), recent, now)

    # ==================== WAVES ====================

    def get_waves(self) -> List[Record]:
        with self._lock:
            active = [w for w in self._waves.values() if w.is_active]
            return [wave.to_dict() for wave in sorted(active, key=lambda w: (w.name, w.id))]

    def get_wave(self, wave_id: str) -> Optional[Record]:
        with self._lock:
            wave = self._waves.get(wave_id)
            return wave.to_dict() if wave else None

    def create_wave(self, data: Mapping[str, Any]) -> Record:
        wave = Wave.new(dict(data))
        with self._lock:
            if wave.id in self._waves:
                raise ConflictError(f"Wave already exists: {wave.id}")
            self._require(self._users, 'user', wave.created_by, optional=True)
            self._waves[wave.id] = wave
            return wave.to_dict()

    def update_wave(self, wave_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        with self._lock:
            current = self._waves.get(wave_id)
            if current is None:
                return None
            wave = _copy(current)
            wave.apply(dict(data))
            wave.updated_at = utcnow()
            self._require(self._users, 'user', wave.created_by, optional=True)
            self._waves[wave_id] = wave
            return wave.to_dict()

    def delete_wave(self, wave_id: str) -> bool:
        with self._lock:
            wave = self._waves.get(wave_id)
            if wave is None:
                return False
            wave.is_active = False
            wave.updated_at = utcnow()
            return True

    def _permission_record(self, permission: CustomerWavePermission) -> Record:
        return permission_record(
            permission,
            self._waves.get(permission.wave_id),
            self._wave_usage(permission.user_id, permission.wave_id),
        )

    def _find_permission(self, user_id: str, wave_id: str) -> Optional[CustomerWavePermission]:
        for permission in self._permissions.values():
            if permission.user_id == user_id and permission.wave_id == wave_id:
                return permission
        return None

    def get_customer_wave_permissions(self, user_id: str) -> List[Record]:
        with self._lock:
            rows = [
                p for p in self._permissions.values()
                if p.user_id == user_id and p.wave_id in self._waves
                and self._waves[p.wave_id].is_active
            ]
            rows.sort(key=lambda p: (self._waves[p.wave_id].name, p.wave_id))
            return [self._permission_record(permission) for permission in rows]

    def get_wave_permission(self, user_id: str, wave_id: str) -> Optional[Record]:
        with self._lock:
            permission = self._find_permission(user_id, wave_id)
            return self._permission_record(permission) if permission else None

    def grant_wave_permission(self, data: Mapping[str, Any]) -> Record:
        data = dict(data)
        granted = CustomerWavePermission.new(data)
        with self._lock:
            self._require(self._users, 'user', granted.user_id)
            self._require(self._waves, 'wave', granted.wave_id)
            self._require(self._users, 'user', granted.granted_by, optional=True)

            existing = self._find_permission(granted.user_id, granted.wave_id)
            if existing is not None:
                permission = _copy(existing)
                permission.apply({k: v for k, v in data.items() if k in permission.UPDATE_FIELDS})
                permission.updated_at = utcnow()
            else:
                permission = granted
            self._permissions[permission.id] = permission
            return self._permission_record(permission)

    def update_wave_permission(self, permission_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        with self._lock:
            current = self._permissions.get(permission_id)
            if current is None:
                return None
            permission = _copy(current)
            permission.apply(dict(data))
            permission.updated_at = utcnow()
            self._require(self._users, 'user', permission.granted_by, optional=True)
            self._permissions[permission_id] = permission
            return self._permission_record(permission)

    def revoke_wave_permission(self, user_id: str, wave_id: str) -> bool:
        with self._lock:
            permission = self._find_permission(user_id, wave_id)
            if permission is None:
                return False
            del self._permissions[permission.id]
            return True

    # ==================== WAVE QUOTA ====================

    def get_user_wave_usage(self, user_id: str) -> int:
        with self._lock:
            return self._wave_usage(user_id)

    def get_user_remaining_waves(self, user_id: str) -> int:
        with self._lock:
            return remaining_waves(self._users.get(user_id), self._wave_usage(user_id))

    def validate_wave_assignment(self, user_id: str, wave_id: Optional[str]) -> WaveValidation:
        with self._lock:
            return validate_assignment(self._users.get(user_id), wave_id, self._wave_usage(user_id))

    def update_users_with_zero_wave_balance(self) -> int:
        with self._lock:
            repaired = 0
            for user in self._users.values():
                if needs_balance_repair(user):
                    user.wave_balance = REPAIR_WAVE_BALANCE
                    repaired += 1
        LOGGER.info("Reset wave balance for %d users", repaired)
        return repaired
