"""Natural-language search query parser.

Turns free text such as ``"2 bed near sainbu under 15k"`` into ``ParsedFilters``.
The rules run in a fixed order over a shrinking residual string, each one
consuming the text it recognised:

1. conversational prefix ("i want", "looking for", "show me", ...)
2. price: explicit range, else upper / lower bound, else a lone currency amount
3. bedroom and bathroom counts
4. city, taken from the phrase after "in" / "at" / "near" / "around"
5. amenity synonyms (scanned on the whole query, nothing consumed)
6. standalone currency words

Whatever is left becomes ``remaining_query``. Nothing here raises: input that
matches no rule simply yields fewer filters.
"""

import re
from typing import Optional

from src.models.search import ParsedFilters
from src.utils.logging import get_structured_logger, sanitize_message_text

logger = get_structured_logger(__name__)


PREFIX_PATTERN = re.compile(
    r"^\s*(?:i\s+want|i\s+need|i\s*(?:'m|am)\s+looking\s+for|looking\s+for|show\s+me|find\s+me|search\s+for)\b\s*",
    re.IGNORECASE,
)

NUMBER_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(k)?$", re.IGNORECASE)

_CURRENCY = r"(?:\b(?:rs|npr)\.?|₹)"


def _amount(name: str) -> str:
    # A number glued to a room keyword ("3bhk", "2 bath") is a count, not a price.
    return rf"(?<!\d)(?<!\d\.)(?P<{name}>\d+(?:\.\d+)?(?:\s*k)?)(?!\w)(?!\s*(?:bhk|bed|bath|wc))"


RANGE_PATTERNS = (
    re.compile(
        rf"\bbetween\s+(?:{_CURRENCY}\s*)?{_amount('low')}\s+and\s+(?:{_CURRENCY}\s*)?{_amount('high')}",
        re.IGNORECASE,
    ),
    re.compile(
        rf"(?:{_CURRENCY}\s*)?{_amount('low')}\s*(?:-|–|—|\bto\b)\s*(?:{_CURRENCY}\s*)?{_amount('high')}",
        re.IGNORECASE,
    ),
)

MAX_PRICE_PATTERN = re.compile(
    rf"(?:\b(?:under|below|less\s+than|max(?:imum)?|budget(?:\s+of)?|up\s*to|within)\b|<=?)"
    rf"\s*(?:{_CURRENCY}\s*)?{_amount('value')}",
    re.IGNORECASE,
)

MIN_PRICE_PATTERN = re.compile(
    rf"(?:\b(?:over|above|more\s+than|min(?:imum)?|at\s+least)\b|>=?)"
    rf"\s*(?:{_CURRENCY}\s*)?{_amount('value')}",
    re.IGNORECASE,
)

LONE_PRICE_PATTERNS = (
    re.compile(rf"{_CURRENCY}\s*{_amount('value')}", re.IGNORECASE),
    re.compile(rf"\b{_amount('value')}\s*(?:rs|rupees?|npr)\b\.?", re.IGNORECASE),
)

BEDROOM_PATTERN = re.compile(r"\b(\d{1,3})\s*(?:bhk|bed\s*rooms?|beds?)\b", re.IGNORECASE)

BATHROOM_PATTERN = re.compile(r"\b(\d{1,3})\s*(?:bath\s*rooms?|baths?|wc)\b", re.IGNORECASE)

CITY_PATTERN = re.compile(
    r"\b(?:in|at|near|around)\s+(?P<phrase>[a-z][a-z\s]*?)"
    r"(?=\s*(?:\d|[,.;:!?()]|\b(?:for|under|below|over|above|with|without|within|max|min|budget|less|more|between|upto)\b|$))",
    re.IGNORECASE,
)

CURRENCY_NOISE_PATTERN = re.compile(r"(?:\b(?:rs|rupees?|npr)\b\.?|₹)", re.IGNORECASE)

# Canonical tags match the values stored in listings.amenities.
AMENITY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "WiFi": ("wifi", "wi-fi", "wi fi", "internet"),
    "Parking": ("parking", "garage"),
    "Furnished": ("furnished", "fully furnished", "semi-furnished", "semi furnished"),
    "Balcony": ("balcony", "terrace"),
    "TV": ("tv", "television"),
    "Kitchen": ("kitchen", "cooking"),
    "Washing Machine": ("washing machine", "laundry"),
    "AC": ("ac", "a/c", "air conditioning", "air conditioner"),
    "Garden": ("garden",),
    "Water 24/7": ("water 24/7", "24/7 water", "24 hour water", "24 hours water"),
}

AMENITY_PATTERNS: dict[str, re.Pattern] = {
    canonical: re.compile(
        r"(?<![a-z0-9])(?:"
        + "|".join(re.escape(variant) for variant in sorted(variants, key=len, reverse=True))
        + r")(?![a-z0-9])"
    )
    for canonical, variants in AMENITY_SYNONYMS.items()
}

CITY_STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "my",
    "fully", "semi", "furnished", "unfurnished",
    "cheap", "cheaper", "cheapest", "affordable", "nice", "good", "best", "new",
    "big", "small", "single", "double", "family", "student", "students",
    "room", "rooms", "flat", "flats", "house", "houses", "apartment", "apartments",
    "hostel", "studio", "area", "place", "rent", "budget",
    "with", "without", "near", "around", "under", "over", "for",
    "water", "electricity",
    "bhk", "bed", "beds", "bedroom", "bedrooms", "bath", "baths", "bathroom", "bathrooms",
}) | frozenset(
    token
    for variants in AMENITY_SYNONYMS.values()
    for variant in variants
    for token in re.split(r"[\s/-]+", variant)
    if token.isalpha()
)


def parse_number(token: str) -> Optional[float]:
    """Parse ``"15000"``, ``"5k"`` or ``"7.5k"`` into a number.

    Returns ``None`` for anything else. Whole values come back as ``int``.
    """
    match = NUMBER_PATTERN.match(token.strip()) if token else None
    if not match:
        return None
    value = float(match.group(1))
    if match.group(2):
        value *= 1000
    return int(value) if value.is_integer() else value


def strip_prefix(query: str) -> str:
    """Remove a leading conversational prefix such as "i want" or "show me"."""
    return PREFIX_PATTERN.sub("", query, count=1)


def _cut(text: str, match: re.Match) -> str:
    return f"{text[:match.start()]} {text[match.end():]}"


def _extract_price(text: str, fields: dict) -> str:
    for pattern in RANGE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        low, high = parse_number(match.group("low")), parse_number(match.group("high"))
        if low is None or high is None:
            continue
        fields["min_price"], fields["max_price"] = min(low, high), max(low, high)
        return _cut(text, match)

    for pattern, field in ((MAX_PRICE_PATTERN, "max_price"), (MIN_PRICE_PATTERN, "min_price")):
        match = pattern.search(text)
        if match:
            value = parse_number(match.group("value"))
            if value is not None:
                fields[field] = value
                text = _cut(text, match)

    if "min_price" in fields or "max_price" in fields:
        return text

    for pattern in LONE_PRICE_PATTERNS:
        match = pattern.search(text)
        if match:
            value = parse_number(match.group("value"))
            if value is not None:
                fields["max_price"] = value
                return _cut(text, match)
    return text


def _extract_count(pattern: re.Pattern, text: str, field: str, fields: dict) -> str:
    match = pattern.search(text)
    if not match:
        return text
    fields[field] = int(match.group(1))
    return _cut(text, match)


def _extract_city(text: str, fields: dict) -> str:
    match = CITY_PATTERN.search(text)
    if not match:
        return text
    tokens = [token for token in match.group("phrase").lower().split() if token not in CITY_STOP_WORDS]
    if tokens:
        # "near bagar pokhara" -> "pokhara": the last location word wins
        fields["city"] = tokens[-1]
    return _cut(text, match)


def extract_amenities(text: str) -> tuple[str, ...]:
    """Canonical amenity tags mentioned anywhere in ``text``, in table order."""
    lowered = text.lower()
    return tuple(
        canonical for canonical, pattern in AMENITY_PATTERNS.items() if pattern.search(lowered)
    )


def parse(query: str) -> ParsedFilters:
    """Convert one free-text search phrase into structured filters."""
    if not query or not query.strip():
        return ParsedFilters()

    fields: dict = {}
    text = strip_prefix(query.strip())
    full_text = text

    text = _extract_price(text, fields)
    text = _extract_count(BEDROOM_PATTERN, text, "bedrooms", fields)
    text = _extract_count(BATHROOM_PATTERN, text, "bathrooms", fields)
    text = _extract_city(text, fields)

    amenities = extract_amenities(full_text)
    if amenities:
        fields["amenities"] = amenities

    text = CURRENCY_NOISE_PATTERN.sub(" ", text)
    remaining = " ".join(text.split()).strip(" ,.;:-")
    if remaining:
        fields["remaining_query"] = remaining

    filters = ParsedFilters(**fields)
    logger.debug(
        "Parsed search query",
        query_preview=sanitize_message_text(query, max_length=100),
        city=filters.city,
        min_price=filters.min_price,
        max_price=filters.max_price,
        bedrooms=filters.bedrooms,
        bathrooms=filters.bathrooms,
        amenities=list(filters.amenities),
        has_remaining_query=filters.remaining_query is not None,
    )
    return filters
