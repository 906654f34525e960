"""
SQL storage.

Persistent implementation over SQLAlchemy sessions. Each public call is
one transaction (`session_scope`): it commits on success and rolls back
entirely on any error. Writes that check-then-write (quota, upserts,
uniqueness) also hold the instance write lock, and lock the agent or
points row with SELECT ... FOR UPDATE where the database supports it.
"""
import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, List, Mapping, Optional

from sqlalchemy import Numeric, asc, cast, desc, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, aliased

from estate_store.core.config import settings
from estate_store.core.database import (
    create_db_engine, create_session_factory, init_db, session_scope, shares_one_connection, utcnow
)
from estate_store.core.exceptions import ConflictError
from estate_store.models import (
    User, Property, PropertyStatus, Inquiry, Favorite, SearchHistory,
    CustomerActivity, CustomerPoints, Wave, CustomerWavePermission, NO_WAVE
)
from estate_store.services.filters import PropertyFilters
from estate_store.services.points import accumulate, build_analytics, history_windows
from estate_store.services.quota import (
    REPAIR_WAVE_BALANCE, WaveValidation, assignment_needs_check, enforce_assignment,
    remaining_waves, validate_assignment
)
from estate_store.services.slugs import resolve_slug
from .base import (
    FiltersArg, Record, Storage, activity_limit, enrich, permission_record, unknown
)

LOGGER = logging.getLogger(__name__)

# Prices are stored as decimal strings; compare and sort them as numbers
PRICE = cast(Property.price, Numeric(18, 2))


def _latest_contact_id():
    """Id of the newest inquiry with a phone number, per outer property row"""
    latest = aliased(Inquiry)
    return (
        select(latest.id)
        .where(latest.property_id == Property.id)
        .where(latest.phone.isnot(None), latest.phone != '')
        .order_by(latest.created_at.desc(), latest.id.desc())
        .limit(1)
        .correlate(Property)
        .scalar_subquery()
    )


def _apply_filters(query, filters: PropertyFilters):
    query = query.filter(Property.status == PropertyStatus.ACTIVE.value)

    if filters.type:
        query = query.filter(Property.type == filters.type)
    if filters.listing_type:
        query = query.filter(Property.listing_type == filters.listing_type)
    if filters.min_price:
        query = query.filter(PRICE >= Decimal(str(filters.min_price)))
    if filters.max_price:
        query = query.filter(PRICE <= Decimal(str(filters.max_price)))
    if filters.bedrooms:
        query = query.filter(Property.bedrooms >= filters.bedrooms)
    if filters.bathrooms:
        query = query.filter(Property.bathrooms >= filters.bathrooms)
    if filters.city:
        query = query.filter(func.lower(Property.city).contains(filters.city.lower(), autoescape=True))
    if filters.country:
        query = query.filter(Property.country == filters.country)
    if filters.language:
        query = query.filter(Property.language == filters.language)
    if filters.search:
        term = filters.search.lower()
        query = query.filter(or_(
            func.lower(Property.title).contains(term, autoescape=True),
            func.lower(Property.description).contains(term, autoescape=True),
            func.lower(Property.address).contains(term, autoescape=True),
        ))

    if filters.sort_by == 'price':
        primary = PRICE
    elif filters.sort_by == 'views':
        primary = func.coalesce(Property.views, 0)
    else:
        primary = Property.created_at
    direction = desc if filters.descending else asc
    query = query.order_by(direction(primary), direction(Property.id))

    if filters.offset:
        query = query.offset(filters.offset)
    if filters.limit:
        query = query.limit(filters.limit)
    return query


class DatabaseStorage(Storage):
    """SQLAlchemy implementation of the storage interface"""

    def __init__(self, engine: Optional[Engine] = None, database_url: Optional[str] = None):
        self.engine = engine or create_db_engine(database_url)
        init_db(self.engine)
        self._session_factory = create_session_factory(self.engine)
        self._write_lock = threading.RLock()
        # Sessions on a single shared connection would see and commit each
        # other's open transactions, so they take turns
        self._serialize_sessions = shares_one_connection(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if not self._serialize_sessions:
            with session_scope(self._session_factory) as session:
                yield session
            return
        with self._write_lock, session_scope(self._session_factory) as session:
            yield session

    # ==================== HELPERS ====================

    @staticmethod
    def _property_query(session: Session):
        return (
            session.query(Property, User, Wave, Inquiry)
            .select_from(Property)
            .outerjoin(User, User.id == Property.agent_id)
            .outerjoin(Wave, Wave.id == Property.wave_id)
            .outerjoin(Inquiry, Inquiry.id == _latest_contact_id())
        )

    @staticmethod
    def _enriched(rows) -> List[Record]:
        return [enrich(prop, agent, wave, contact) for prop, agent, wave, contact in rows]

    @staticmethod
    def _exists(session: Session, model, entity_id) -> bool:
        return session.query(model.id).filter(model.id == entity_id).first() is not None

    def _require(self, session: Session, model, entity: str, entity_id, optional: bool = False):
        if entity_id is None and optional:
            return
        if not self._exists(session, model, entity_id):
            raise unknown(entity, entity_id)

    @staticmethod
    def _wave_usage(session: Session, user_id: Optional[str], wave_id: Optional[str] = None) -> int:
        query = session.query(func.count(Property.id)).filter(
            Property.agent_id == user_id,
            Property.wave_id.isnot(None),
            Property.wave_id != NO_WAVE,
        )
        if wave_id is not None:
            query = query.filter(Property.wave_id == wave_id)
        return query.scalar() or 0

    def _check_property(self, session: Session, prop: Property, current_agent_id=None, current_wave_id=None):
        """Reference and quota checks shared by create and update"""
        if prop.wave_id is not None:
            self._require(session, Wave, 'wave', prop.wave_id)
        if assignment_needs_check(current_agent_id, current_wave_id, prop.agent_id, prop.wave_id):
            # Serialize concurrent assignments for the same agent
            agent = (
                session.query(User)
                .filter(User.id == prop.agent_id)
                .with_for_update()
                .first()
            )
            enforce_assignment(agent, prop.wave_id, self._wave_usage(session, prop.agent_id))
        if prop.agent_id is not None:
            self._require(session, User, 'agent', prop.agent_id)

    @staticmethod
    def _slug_taken(session: Session, property_id: str):
        def exists(slug: str) -> bool:
            return session.query(Property.id).filter(
                Property.slug == slug, Property.id != property_id
            ).first() is not None
        return exists

    @staticmethod
    def _check_unique_user(session: Session, user: User):
        others = session.query(User.id).filter(User.id != user.id)
        if others.filter(User.username == user.username).first() is not None:
            raise ConflictError(f"Username already exists: {user.username}")
        if others.filter(User.email == user.email).first() is not None:
            raise ConflictError(f"Email already exists: {user.email}")

    # ==================== USERS ====================

    def get_user(self, user_id: str) -> Optional[Record]:
        with self._session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            return user.to_dict() if user else None

    def get_user_by_username(self, username: str) -> Optional[Record]:
        with self._session() as session:
            user = session.query(User).filter(User.username == username).first()
            return user.to_dict() if user else None

    def get_user_by_email(self, email: str) -> Optional[Record]:
        with self._session() as session:
            user = session.query(User).filter(User.email == email).first()
            return user.to_dict() if user else None

    def create_user(self, data: Mapping[str, Any]) -> Record:
        user = User.new(dict(data))
        with self._write_lock, self._session() as session:
            if self._exists(session, User, user.id):
                raise ConflictError(f"User already exists: {user.id}")
            self._check_unique_user(session, user)
            session.add(user)
            return user.to_dict()

    def update_user(self, user_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        with self._write_lock, self._session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if user is None:
                return None
            user.apply(dict(data))
            self._check_unique_user(session, user)
            return user.to_dict()

    def authenticate_user(self, username: str, password: str) -> Optional[Record]:
        with self._session() as session:
            user = session.query(User).filter(User.username == username).first()
            if user is None or user.is_expired() or not user.check_password(password):
                return None
            return user.to_dict()

    def get_all_users(self) -> List[Record]:
        with self._session() as session:
            users = session.query(User).order_by(User.created_at, User.id).all()
            return [user.to_dict() for user in users]

    def delete_user(self, user_id: str) -> bool:
        with self._write_lock, self._session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if user is None:
                return False

            for model in (Favorite, SearchHistory, CustomerActivity, CustomerPoints, CustomerWavePermission):
                session.query(model).filter(model.user_id == user_id).delete(synchronize_session=False)

            detach = (
                (Property, Property.agent_id),
                (Inquiry, Inquiry.user_id),
                (Wave, Wave.created_by),
                (CustomerWavePermission, CustomerWavePermission.granted_by),
            )
            for model, column in detach:
                session.query(model).filter(column == user_id).update(
                    {column: None}, synchronize_session=False
                )

            session.delete(user)
            return True

    # ==================== PROPERTIES ====================

    def get_property(self, property_id: str) -> Optional[Record]:
        with self._session() as session:
            row = self._property_query(session).filter(Property.id == property_id).first()
            return enrich(*row) if row else None

    def get_property_by_slug(self, slug: str) -> Optional[Record]:
        with self._session() as session:
            row = self._property_query(session).filter(Property.slug == slug).first()
            return enrich(*row) if row else None

    def get_properties(self, filters: FiltersArg = None) -> List[Record]:
        filters = PropertyFilters.coerce(filters)
        with self._session() as session:
            return self._enriched(_apply_filters(self._property_query(session), filters).all())

    def get_featured_properties(self) -> List[Record]:
        with self._session() as session:
            rows = (
                self._property_query(session)
                .filter(Property.is_featured.is_(True))
                .filter(Property.status == PropertyStatus.ACTIVE.value)
                .order_by(Property.created_at.desc(), Property.id.desc())
                .limit(settings.FEATURED_LIMIT)
                .all()
            )
            return self._enriched(rows)

    def get_properties_by_agent(self, agent_id: str) -> List[Record]:
        with self._session() as session:
            rows = (
                self._property_query(session)
                .filter(Property.agent_id == agent_id)
                .order_by(Property.created_at.desc(), Property.id.desc())
                .all()
            )
            return self._enriched(rows)

    def get_properties_by_wave(self, wave_id: str) -> List[Record]:
        with self._session() as session:
            rows = (
                self._property_query(session)
                .filter(Property.wave_id == wave_id)
                .filter(Property.status == PropertyStatus.ACTIVE.value)
                .order_by(Property.created_at.desc(), Property.id.desc())
                .all()
            )
            return self._enriched(rows)

    def create_property(self, data: Mapping[str, Any]) -> Record:
        data = dict(data)
        prop = Property.new(data)
        with self._write_lock, self._session() as session:
            if self._exists(session, Property, prop.id):
                raise ConflictError(f"Property already exists: {prop.id}")
            self._check_property(session, prop)
            prop.slug = resolve_slug(prop.to_dict(), data.get('slug'), self._slug_taken(session, prop.id))
            session.add(prop)
            return prop.to_dict()

    def update_property(self, property_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        data = dict(data)
        with self._write_lock, self._session() as session:
            prop = session.query(Property).filter(Property.id == property_id).first()
            if prop is None:
                return None
            current_agent_id, current_wave_id = prop.agent_id, prop.wave_id
            # Autoflush is off: the checks below still see the stored row
            prop.apply(data)
            prop.touch()
            self._check_property(session, prop, current_agent_id, current_wave_id)
            if 'slug' in data:
                prop.slug = resolve_slug(prop.to_dict(), data['slug'], self._slug_taken(session, prop.id))
            return prop.to_dict()

    def delete_property(self, property_id: str) -> bool:
        with self._write_lock, self._session() as session:
            prop = session.query(Property).filter(Property.id == property_id).first()
            if prop is None:
                return False
            session.query(Favorite).filter(Favorite.property_id == property_id).delete(synchronize_session=False)
            session.query(Inquiry).filter(Inquiry.property_id == property_id).delete(synchronize_session=False)
            session.query(CustomerActivity).filter(CustomerActivity.property_id == property_id).update(
                {CustomerActivity.property_id: None}, synchronize_session=False
            )
            session.delete(prop)
            return True

    def increment_property_views(self, property_id: str) -> None:
        with self._session() as session:
            # Single UPDATE so concurrent views are never lost
            session.query(Property).filter(Property.id == property_id).update(
                {Property.views: func.coalesce(Property.views, 0) + 1}, synchronize_session=False
            )

    def clear_all_properties(self) -> int:
        with self._write_lock, self._session() as session:
            count = session.query(func.count(Property.id)).scalar() or 0

            # Dependents first
            session.query(Favorite).delete(synchronize_session=False)
            session.query(Inquiry).delete(synchronize_session=False)
            session.query(SearchHistory).delete(synchronize_session=False)
            session.query(CustomerActivity).filter(CustomerActivity.property_id.isnot(None)).update(
                {CustomerActivity.property_id: None}, synchronize_session=False
            )
            session.query(Property).delete(synchronize_session=False)

        LOGGER.info("Cleared %d properties and their dependent rows", count)
        return count

    # ==================== INQUIRIES ====================

    def get_inquiry(self, inquiry_id: str) -> Optional[Record]:
        with self._session() as session:
            inquiry = session.query(Inquiry).filter(Inquiry.id == inquiry_id).first()
            return inquiry.to_dict() if inquiry else None

    def get_inquiries_for_property(self, property_id: str) -> List[Record]:
        with self._session() as session:
            inquiries = (
                session.query(Inquiry)
                .filter(Inquiry.property_id == property_id)
                .order_by(Inquiry.created_at.desc(), Inquiry.id.desc())
                .all()
            )
            return [inquiry.to_dict() for inquiry in inquiries]

    def get_inquiries_for_agent(self, agent_id: str) -> List[Record]:
        with self._session() as session:
            inquiries = (
                session.query(Inquiry)
                .join(Property, Property.id == Inquiry.property_id)
                .filter(Property.agent_id == agent_id)
                .order_by(Inquiry.created_at.desc(), Inquiry.id.desc())
                .all()
            )
            return [inquiry.to_dict() for inquiry in inquiries]

    def create_inquiry(self, data: Mapping[str, Any]) -> Record:
        inquiry = Inquiry.new(dict(data))
        with self._session() as session:
            self._require(session, Property, 'property', inquiry.property_id, optional=True)
            self._require(session, User, 'user', inquiry.user_id, optional=True)
            session.add(inquiry)
            return inquiry.to_dict()

    def update_inquiry_status(self, inquiry_id: str, status: str) -> Optional[Record]:
        Inquiry.check_status(status)
        with self._session() as session:
            inquiry = session.query(Inquiry).filter(Inquiry.id == inquiry_id).first()
            if inquiry is None:
                return None
            inquiry.status = status
            return inquiry.to_dict()

    # ==================== FAVORITES ====================

    def get_favorites_by_user(self, user_id: str) -> List[Record]:
        with self._session() as session:
            rows = (
                self._property_query(session)
                .join(Favorite, Favorite.property_id == Property.id)
                .filter(Favorite.user_id == user_id)
                .order_by(Favorite.created_at.desc(), Favorite.id.desc())
                .all()
            )
            return self._enriched(rows)

    @staticmethod
    def _find_favorite(session: Session, user_id: str, property_id: str) -> Optional[Favorite]:
        return session.query(Favorite).filter(
            Favorite.user_id == user_id, Favorite.property_id == property_id
        ).first()

    def add_to_favorites(self, data: Mapping[str, Any]) -> Record:
        favorite = Favorite.new(dict(data))
        with self._write_lock, self._session() as session:
            existing = self._find_favorite(session, favorite.user_id, favorite.property_id)
            if existing is not None:
                return existing.to_dict()
            self._require(session, User, 'user', favorite.user_id)
            self._require(session, Property, 'property', favorite.property_id)
            session.add(favorite)
            return favorite.to_dict()

    def remove_from_favorites(self, user_id: str, property_id: str) -> bool:
        with self._session() as session:
            deleted = session.query(Favorite).filter(
                Favorite.user_id == user_id, Favorite.property_id == property_id
            ).delete(synchronize_session=False)
            return deleted > 0

    def is_favorite(self, user_id: str, property_id: str) -> bool:
        with self._session() as session:
            return self._find_favorite(session, user_id, property_id) is not None

    # ==================== SEARCH HISTORY ====================

    def add_search_history(self, data: Mapping[str, Any]) -> Record:
        search = SearchHistory.new(dict(data))
        with self._session() as session:
            self._require(session, User, 'user', search.user_id, optional=True)
            session.add(search)
            return search.to_dict()

    def get_search_history_by_user(self, user_id: str) -> List[Record]:
        with self._session() as session:
            searches = (
                session.query(SearchHistory)
                .filter(SearchHistory.user_id == user_id)
                .order_by(SearchHistory.created_at.desc(), SearchHistory.id.desc())
                .limit(settings.SEARCH_HISTORY_LIMIT)
                .all()
            )
            return [search.to_dict() for search in searches]

    # ==================== CUSTOMER ACTIVITY ====================

    def add_customer_activity(self, data: Mapping[str, Any]) -> Record:
        activity = CustomerActivity.new(dict(data))
        with self._write_lock, self._session() as session:
            self._require(session, User, 'user', activity.user_id)
            self._require(session, Property, 'property', activity.property_id, optional=True)

            points = (
                session.query(CustomerPoints)
                .filter(CustomerPoints.user_id == activity.user_id)
                .with_for_update()
                .first()
            )
            if points is None:
                points = CustomerPoints.new(activity.user_id)
                session.add(points)
            accumulate(points, activity.points, utcnow())
            session.add(activity)
            return activity.to_dict()

    def get_customer_activities(self, user_id: str, limit: Optional[int] = None) -> List[Record]:
        limit = activity_limit(limit)
        with self._session() as session:
            query = (
                session.query(CustomerActivity)
                .filter(CustomerActivity.user_id == user_id)
                .order_by(CustomerActivity.created_at.desc(), CustomerActivity.id.desc())
            )
            if limit:
                query = query.limit(limit)
            return [activity.to_dict() for activity in query.all()]

    def get_customer_points(self, user_id: str) -> Optional[Record]:
        with self._session() as session:
            points = session.query(CustomerPoints).filter(CustomerPoints.user_id == user_id).first()
            return points.to_dict() if points else None

    def get_customer_analytics(self, user_id: str) -> Record:
        now = utcnow()
        _, since = history_windows(now)
        with self._session() as session:
            mine = CustomerActivity.user_id == user_id
            total = session.query(func.count(CustomerActivity.id)).filter(mine).scalar() or 0
            grouped = (
                session.query(
                    CustomerActivity.activity_type,
                    func.count(CustomerActivity.id),
                    func.coalesce(func.sum(CustomerActivity.points), 0),
                )
                .filter(mine)
                .group_by(CustomerActivity.activity_type)
                .all()
            )
            recent = (
                session.query(
                    CustomerActivity.activity_type,
                    CustomerActivity.points,
                    CustomerActivity.created_at,
                )
                .filter(mine, CustomerActivity.created_at >= since)
                .all()
            )

        by_type = [
            {'type': activity_type, 'count': int(count), 'points': int(points)}
            for activity_type, count, points in sorted(grouped, key=lambda row: row[0])
        ]
        rows = [(activity_type, points or 0, created_at) for activity_type, points, created_at in recent]
        return build_analytics(int(total), by_type, rows, now)

    # ==================== WAVES ====================

    def get_waves(self) -> List[Record]:
        with self._session() as session:
            waves = (
                session.query(Wave)
                .filter(Wave.is_active.is_(True))
                .order_by(Wave.name, Wave.id)
                .all()
            )
            return [wave.to_dict() for wave in waves]

    def get_wave(self, wave_id: str) -> Optional[Record]:
        with self._session() as session:
            wave = session.query(Wave).filter(Wave.id == wave_id).first()
            return wave.to_dict() if wave else None

    def create_wave(self, data: Mapping[str, Any]) -> Record:
        wave = Wave.new(dict(data))
        with self._write_lock, self._session() as session:
            if self._exists(session, Wave, wave.id):
                raise ConflictError(f"Wave already exists: {wave.id}")
            self._require(session, User, 'user', wave.created_by, optional=True)
            session.add(wave)
            return wave.to_dict()

    def update_wave(self, wave_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        with self._session() as session:
            wave = session.query(Wave).filter(Wave.id == wave_id).first()
            if wave is None:
                return None
            wave.apply(dict(data))
            wave.updated_at = utcnow()
            self._require(session, User, 'user', wave.created_by, optional=True)
            return wave.to_dict()

    def delete_wave(self, wave_id: str) -> bool:
        with self._session() as session:
            wave = session.query(Wave).filter(Wave.id == wave_id).first()
            if wave is None:
                return False
            wave.is_active = False
            wave.updated_at = utcnow()
            return True

    def _permission_record(self, session: Session, permission: CustomerWavePermission, wave=None) -> Record:
        if wave is None:
            wave = session.query(Wave).filter(Wave.id == permission.wave_id).first()
        return permission_record(
            permission, wave, self._wave_usage(session, permission.user_id, permission.wave_id)
        )

    @staticmethod
    def _find_permission(session: Session, user_id: str, wave_id: str):
        return session.query(CustomerWavePermission).filter(
            CustomerWavePermission.user_id == user_id,
            CustomerWavePermission.wave_id == wave_id,
        )

    def get_customer_wave_permissions(self, user_id: str) -> List[Record]:
        with self._session() as session:
            rows = (
                session.query(CustomerWavePermission, Wave)
                .join(Wave, Wave.id == CustomerWavePermission.wave_id)
                .filter(CustomerWavePermission.user_id == user_id)
                .filter(Wave.is_active.is_(True))
                .order_by(Wave.name, Wave.id)
                .all()
            )
            return [self._permission_record(session, permission, wave) for permission, wave in rows]

    def get_wave_permission(self, user_id: str, wave_id: str) -> Optional[Record]:
        with self._session() as session:
            permission = self._find_permission(session, user_id, wave_id).first()
            return self._permission_record(session, permission) if permission else None

    def grant_wave_permission(self, data: Mapping[str, Any]) -> Record:
        data = dict(data)
        granted = CustomerWavePermission.new(data)
        with self._write_lock, self._session() as session:
            self._require(session, User, 'user', granted.user_id)
            self._require(session, Wave, 'wave', granted.wave_id)
            self._require(session, User, 'user', granted.granted_by, optional=True)

            permission = (
                self._find_permission(session, granted.user_id, granted.wave_id)
                .with_for_update()
                .first()
            )
            if permission is not None:
                permission.apply({k: v for k, v in data.items() if k in permission.UPDATE_FIELDS})
                permission.updated_at = utcnow()
            else:
                permission = granted
                session.add(permission)
            return self._permission_record(session, permission)

    def update_wave_permission(self, permission_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        with self._session() as session:
            permission = (
                session.query(CustomerWavePermission)
                .filter(CustomerWavePermission.id == permission_id)
                .first()
            )
            if permission is None:
                return None
            permission.apply(dict(data))
            permission.updated_at = utcnow()
            self._require(session, User, 'user', permission.granted_by, optional=True)
            return self._permission_record(session, permission)

    def revoke_wave_permission(self, user_id: str, wave_id: str) -> bool:
        with self._session() as session:
            deleted = self._find_permission(session, user_id, wave_id).delete(synchronize_session=False)
            return deleted > 0

    # ==================== WAVE QUOTA ====================

    def get_user_wave_usage(self, user_id: str) -> int:
        with self._session() as session:
            return self._wave_usage(session, user_id)

    def get_user_remaining_waves(self, user_id: str) -> int:
        with self._session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            return remaining_waves(user, self._wave_usage(session, user_id))

    def validate_wave_assignment(self, user_id: str, wave_id: Optional[str]) -> WaveValidation:
        with self._session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            return validate_assignment(user, wave_id, self._wave_usage(session, user_id))

    def update_users_with_zero_wave_balance(self) -> int:
        with self._write_lock, self._session() as session:
            repaired = (
                session.query(User)
                .filter(User.role == 'user', User.wave_balance == 0)
                .update({User.wave_balance: REPAIR_WAVE_BALANCE}, synchronize_session=False)
            )
        LOGGER.info("Reset wave balance for %d users", repaired)
        return repaired
