"""
Property search filters.

`PropertyFilters` is the shape route handlers build from the query
string. The in-memory backend evaluates it with `matches()` and
`sort_and_page()`; the SQL backend translates the same fields into a
WHERE/ORDER BY clause.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from estate_store.core.exceptions import ValidationError
from estate_store.models import Property, PropertyStatus
from estate_store.models.fields import to_decimal

SORT_FIELDS = ('price', 'views', 'date')
SORT_ORDERS = ('asc', 'desc')


@dataclass
class PropertyFilters:
    """Optional, ANDed property search criteria"""
    type: Optional[str] = None
    listing_type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None  # minimum
    bathrooms: Optional[int] = None  # minimum
    city: Optional[str] = None  # case-insensitive substring
    country: Optional[str] = None
    language: Optional[str] = None
    search: Optional[str] = None  # title, description or address
    sort_by: Optional[str] = None  # price, views, date (default)
    sort_order: Optional[str] = None  # asc, desc (default)
    limit: Optional[int] = None
    offset: Optional[int] = None

    def __post_init__(self):
        if self.sort_by is not None and self.sort_by not in SORT_FIELDS:
            raise ValidationError(f"Invalid sort field: {self.sort_by}")
        if self.sort_order is not None and self.sort_order not in SORT_ORDERS:
            raise ValidationError(f"Invalid sort order: {self.sort_order}")
        for name in ('limit', 'offset'):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"'{name}' must not be negative")

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> 'PropertyFilters':
        """
        Build filters from query-string style parameters.

        Accepts camelCase (``listingType``) or snake_case keys; blank
        values are ignored and numbers are parsed from strings.
        """
        def pick(*names):
            for name in names:
                value = params.get(name)
                if value not in (None, ''):
                    return value
            return None

        def number(value, parse, name):
            if value is None:
                return None
            try:
                return parse(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid value for '{name}': {value}")

        return cls(
            type=pick('type'),
            listing_type=pick('listingType', 'listing_type'),
            min_price=number(pick('minPrice', 'min_price'), float, 'minPrice'),
            max_price=number(pick('maxPrice', 'max_price'), float, 'maxPrice'),
            bedrooms=number(pick('bedrooms'), int, 'bedrooms'),
            bathrooms=number(pick('bathrooms'), int, 'bathrooms'),
            city=pick('city'),
            country=pick('country'),
            language=pick('language'),
            search=pick('search'),
            sort_by=pick('sortBy', 'sort_by'),
            sort_order=pick('sortOrder', 'sort_order'),
            limit=number(pick('limit'), int, 'limit'),
            offset=number(pick('offset'), int, 'offset'),
        )

    @classmethod
    def coerce(cls, filters) -> 'PropertyFilters':
        """Accept None, a PropertyFilters, or a mapping of field names"""
        if filters is None:
            return cls()
        if isinstance(filters, cls):
            return filters
        try:
            return cls(**dict(filters))
        except TypeError as exc:
            raise ValidationError(f"Invalid property filters: {exc}")

    @property
    def descending(self) -> bool:
        return self.sort_order != 'asc'

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}

    def matches(self, prop: Property) -> bool:
        """Whether a property passes every filter (active listings only)"""
        if prop.status != PropertyStatus.ACTIVE.value:
            return False
        if self.type and prop.type != self.type:
            return False
        if self.listing_type and prop.listing_type != self.listing_type:
            return False
        if self.min_price and to_decimal(prop.price) < Decimal(str(self.min_price)):
            return False
        if self.max_price and to_decimal(prop.price) > Decimal(str(self.max_price)):
            return False
        if self.bedrooms and (prop.bedrooms or 0) < self.bedrooms:
            return False
        if self.bathrooms and (prop.bathrooms or 0) < self.bathrooms:
            return False
        if self.city and self.city.lower() not in (prop.city or '').lower():
            return False
        if self.country and prop.country != self.country:
            return False
        if self.language and prop.language != self.language:
            return False
        if self.search:
            term = self.search.lower()
            haystacks = (prop.title, prop.description, prop.address)
            if not any(term in (text or '').lower() for text in haystacks):
                return False
        return True

    def sort_key(self, prop: Property):
        if self.sort_by == 'price':
            primary = to_decimal(prop.price)
        elif self.sort_by == 'views':
            primary = prop.views or 0
        else:
            primary = prop.created_at
        return (primary, prop.id)

    def sort_and_page(self, props: List[Property]) -> List[Property]:
        ordered = sorted(props, key=self.sort_key, reverse=self.descending)
        start = self.offset or 0
        if self.limit:
            return ordered[start:start + self.limit]
        return ordered[start:]
