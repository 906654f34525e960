import pytest

from estate_store.core.exceptions import ValidationError
from estate_store.services.filters import PropertyFilters
from estate_store.services.slugs import (
    clean_slug_text, generate_property_slug, generate_unique_slug, is_valid_slug, transliterate
)


def test_transliterate_arabic_and_kurdish():
    assert transliterate("أربيل") == "arbyl"
    assert transliterate("هەولێر") == "hawler"
    assert transliterate("Erbil") == "Erbil"


def test_clean_slug_text_strips_accents_and_punctuation():
    assert clean_slug_text("Zürich  Apartments!") == "zurich-apartments"
    assert clean_slug_text("--Gulan -- Street--") == "gulan-street"


def test_property_slug_from_listing_fields():
    slug = generate_property_slug({
        "city": "Erbil", "bedrooms": 3, "type": "villa", "listing_type": "rent",
    })

    assert slug == "erbil-3-bedroom-villa-for-rent"


def test_property_slug_uses_title_words_as_filler():
    slug = generate_property_slug({
        "type": "land", "listing_type": "sale", "title": "Big Plot Near Airport",
    })

    assert slug == "land-for-sale-big-plot-near"


def test_property_slug_from_arabic_city():
    slug = generate_property_slug({"city": "أربيل", "type": "house", "listing_type": "sale"})

    assert slug == "arbyl-house-for-sale"


def test_property_slug_fallback():
    assert generate_property_slug({}) == "property"


def test_unique_slug_appends_counter():
    taken = {"erbil-house", "erbil-house-1"}

    assert generate_unique_slug("erbil-house", taken.__contains__) == "erbil-house-2"
    assert generate_unique_slug("duhok-house", taken.__contains__) == "duhok-house"


@pytest.mark.parametrize("slug,valid", [
    ("erbil-house", True),
    ("abc", True),
    ("ab", False),
    ("Erbil-House", False),
    ("erbil--house", False),
    ("-erbil", False),
    (None, False),
])
def test_is_valid_slug(slug, valid):
    assert is_valid_slug(slug) is valid


def test_filters_from_query_string_parameters():
    filters = PropertyFilters.from_query({
        "listingType": "rent",
        "minPrice": "1000",
        "bedrooms": "2",
        "sortBy": "price",
        "sortOrder": "asc",
        "limit": "10",
        "city": "",
    })

    assert filters.listing_type == "rent"
    assert filters.min_price == 1000.0
    assert filters.bedrooms == 2
    assert filters.city is None
    assert filters.descending is False
    assert filters.to_dict() == {
        "listing_type": "rent", "min_price": 1000.0, "bedrooms": 2,
        "sort_by": "price", "sort_order": "asc", "limit": 10,
    }


def test_filters_from_query_accepts_snake_case():
    filters = PropertyFilters.from_query({"max_price": "250000", "sort_by": "views"})

    assert filters.max_price == 250000.0
    assert filters.sort_by == "views"
    assert filters.descending is True


@pytest.mark.parametrize("params", [
    {"bedrooms": "two"},
    {"limit": "-5"},
    {"sortBy": "title"},
    {"sortOrder": "sideways"},
])
def test_filters_from_query_rejects_bad_values(params):
    with pytest.raises(ValidationError):
        PropertyFilters.from_query(params)


def test_coerce_filters():
    filters = PropertyFilters(city="Erbil")

    assert PropertyFilters.coerce(filters) is filters
    assert PropertyFilters.coerce(None) == PropertyFilters()
    assert PropertyFilters.coerce({"city": "Duhok"}).city == "Duhok"
    with pytest.raises(ValidationError):
        PropertyFilters.coerce({"neighbourhood": "Ainkawa"})
