"""
SEO-friendly property slugs, e.g. ``erbil-3-bedroom-apartment-for-sale``.

Arabic and Kurdish (Sorani) text is transliterated to Latin letters
before cleaning.
"""
import re
import unicodedata
import uuid
from typing import Callable, List, Mapping, Optional

from estate_store.core.exceptions import ConflictError, ValidationError

ARABIC_TO_LATIN = {
    'ا': 'a', 'أ': 'a', 'إ': 'i', 'آ': 'aa',
    'ب': 'b', 'ت': 't', 'ث': 'th', 'ج': 'j',
    'ح': 'h', 'خ': 'kh', 'د': 'd', 'ذ': 'dh',
    'ر': 'r', 'ز': 'z', 'س': 's', 'ش': 'sh',
    'ص': 's', 'ض': 'd', 'ط': 't', 'ظ': 'z',
    'ع': 'a', 'غ': 'gh', 'ف': 'f', 'ق': 'q',
    'ك': 'k', 'ل': 'l', 'م': 'm', 'ن': 'n',
    'ه': 'h', 'و': 'w', 'ي': 'y', 'ة': 'a',
    'ى': 'a', 'ئ': 'e', 'ء': '',
}

KURDISH_TO_LATIN = {
    'ا': 'a', 'ب': 'b', 'پ': 'p', 'ت': 't',
    'ج': 'j', 'چ': 'ch', 'ح': 'h', 'خ': 'kh',
    'د': 'd', 'ر': 'r', 'ڕ': 'rr', 'ز': 'z',
    'ژ': 'zh', 'س': 's', 'ش': 'sh', 'ع': 'a',
    'غ': 'gh', 'ف': 'f', 'ڤ': 'v', 'ق': 'q',
    'ک': 'k', 'گ': 'g', 'ل': 'l', 'ڵ': 'll',
    'م': 'm', 'ن': 'n', 'ڶ': 'nn', 'ه': 'h',
    'ھ': 'h', 'و': 'w', 'ی': 'y',
    'ێ': 'e', 'ە': 'a', 'ۆ': 'o', 'ۇ': 'u',
}

ARABIC_SCRIPT = re.compile('[؀-ۿݐ-ݿ]')
KURDISH_LETTERS = re.compile('[ۀ-ۿݐ-ݿڕژڤگڵە]')
ARABIC_DIACRITICS = re.compile('[ً-ْ]')
VALID_SLUG = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')

LISTING_TYPE_SLUGS = {'sale': 'for-sale', 'rent': 'for-rent'}
MAX_SLUG_LENGTH = 100
MAX_SUFFIX_ATTEMPTS = 1000


def transliterate(text: str) -> str:
    """Map Kurdish or Arabic script to Latin letters; other text passes through"""
    if KURDISH_LETTERS.search(text):
        table = KURDISH_TO_LATIN
    elif ARABIC_SCRIPT.search(text):
        table = ARABIC_TO_LATIN
    else:
        return text
    text = ''.join(table.get(char, char) for char in text)
    return ARABIC_DIACRITICS.sub('', text).strip()


def clean_slug_text(text: str) -> str:
    # Decompose accents so "Zürich" becomes "zurich"
    text = unicodedata.normalize('NFKD', text).lower()
    text = re.sub(r'[^a-z0-9\s-]', '', text)
    text = re.sub(r'\s+', '-', text)
    text = re.sub(r'-+', '-', text)
    return text.strip('-')[:MAX_SLUG_LENGTH].strip('-')


def generate_property_slug(prop: Mapping) -> str:
    """Slug from city, bedroom count, type and listing type (title words as filler)"""
    parts: List[str] = []

    city = clean_slug_text(transliterate(prop.get('city') or ''))
    if city:
        parts.append(city)

    bedrooms = prop.get('bedrooms')
    if bedrooms and int(bedrooms) > 0:
        parts.append(f"{int(bedrooms)}-bedroom")

    prop_type = clean_slug_text(transliterate(prop.get('type') or ''))
    if prop_type:
        parts.append(prop_type)

    listing_type = prop.get('listing_type')
    if listing_type:
        parts.append(LISTING_TYPE_SLUGS.get(listing_type, clean_slug_text(listing_type)))

    if len(parts) < 3 and prop.get('title'):
        words = clean_slug_text(transliterate(prop['title'])).split('-')
        parts.extend([word for word in words if len(word) > 2][:3])

    slug = '-'.join(part for part in parts if part)
    return clean_slug_text(slug) or 'property'


def generate_unique_slug(base_slug: str, exists: Callable[[str], bool]) -> str:
    """Append -1, -2, ... until `exists` reports the slug free"""
    slug = base_slug
    counter = 1
    while exists(slug):
        if counter > MAX_SUFFIX_ATTEMPTS:
            return f"{base_slug}-{uuid.uuid4().hex[:8]}"
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug


def is_valid_slug(slug: Optional[str]) -> bool:
    return bool(slug) and 3 <= len(slug) <= MAX_SLUG_LENGTH and bool(VALID_SLUG.match(slug))


def resolve_slug(prop: Mapping, requested: Optional[str], exists: Callable[[str], bool]) -> str:
    """
    Slug to store for a property.

    An explicit slug must be well formed and free; otherwise one is
    generated from the property and de-duplicated with a numeric suffix.
    """
    if requested:
        if not is_valid_slug(requested):
            raise ValidationError(f"Invalid slug: {requested}")
        if exists(requested):
            raise ConflictError(f"Slug already in use: {requested}")
        return requested
    return generate_unique_slug(generate_property_slug(prop), exists)
