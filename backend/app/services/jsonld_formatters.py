"""Polymorphic field formatters for JSON-LD properties.

None of these raise: a missing or oddly-shaped value degrades to a generic
fallback string.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")

UNKNOWN_NAME = "Unknown"
PRICE_FALLBACK = "Price available"
RATING_FALLBACK = "Rated"
LOCATION_FALLBACK = "Location available"


def has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list | dict):
        return bool(value)
    return True


def text_value(value: Any) -> str | None:
    """Plain text for a scalar, a `{"name"/"text"/"@value": ...}` object or a list of them."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, dict):
        for key in ("name", "text", "@value"):
            nested = text_value(value.get(key))
            if nested is not None:
                return nested
        return None
    if isinstance(value, list):
        parts = [part for part in (text_value(item) for item in value) if part is not None]
        return ", ".join(parts) or None
    return None


def format_duration(duration: Any) -> str:
    if not isinstance(duration, str):
        return "" if duration is None else str(duration)
    match = _DURATION_PATTERN.fullmatch(duration.strip())
    if match is None or (match.group(1) is None and match.group(2) is None):
        return duration
    hours = f"{match.group(1)}h " if match.group(1) else ""
    minutes = f"{match.group(2)}m" if match.group(2) else ""
    return hours + minutes


def format_named(value: Any) -> str:
    """Author, publisher and brand: a string, an object with `name`, or a list of either."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, list):
        names = [format_named(item) for item in value]
        names = [name for name in names if name != UNKNOWN_NAME]
        return ", ".join(names) if names else UNKNOWN_NAME
    if isinstance(value, dict):
        name = text_value(value.get("name"))
        if name is not None:
            return name
    return UNKNOWN_NAME


def format_author(author: Any) -> str:
    return format_named(author)


def format_publisher(publisher: Any) -> str:
    return format_named(publisher)


def format_brand(brand: Any) -> str:
    return format_named(brand)


def format_price(offers: Any) -> str:
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return PRICE_FALLBACK
    price = offers.get("price")
    currency = offers.get("priceCurrency")
    if has_value(price) and has_value(currency):
        return f"{currency} {price}"
    if has_value(price):
        return str(price)
    low_price = offers.get("lowPrice")
    if has_value(low_price):
        high_price = offers.get("highPrice")
        price_range = f"{low_price}-{high_price}" if has_value(high_price) else str(low_price)
        return f"{currency} {price_range}" if has_value(currency) else price_range
    return PRICE_FALLBACK


def format_rating(rating: Any) -> str:
    if not isinstance(rating, dict):
        return RATING_FALLBACK
    value = rating.get("ratingValue")
    best = rating.get("bestRating")
    if has_value(value) and has_value(best):
        return f"{value}/{best}"
    if has_value(value):
        return str(value)
    return RATING_FALLBACK


def format_location(location: Any) -> str:
    if isinstance(location, list):
        location = location[0] if location else None
    if isinstance(location, str) and location.strip():
        return location.strip()
    if not isinstance(location, dict):
        return LOCATION_FALLBACK
    name = text_value(location.get("name"))
    if name is not None:
        return name
    address = location.get("address")
    if isinstance(address, str) and address.strip():
        return address.strip()
    if isinstance(address, dict):
        street = text_value(address.get("streetAddress"))
        if street is not None:
            locality = text_value(address.get("addressLocality"))
            return f"{street}, {locality}" if locality else street
    return LOCATION_FALLBACK


def format_date(value: Any, *, with_time: bool = False) -> str | None:
    raw = text_value(value)
    if raw is None:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return raw
    if with_time and (parsed.hour or parsed.minute):
        return parsed.strftime("%Y-%m-%d %H:%M")
    return parsed.strftime("%Y-%m-%d")


def format_yield(value: Any) -> str | None:
    if isinstance(value, list):
        parts = [text_value(item) for item in value]
        unique = list(dict.fromkeys(part for part in parts if part is not None))
        return ", ".join(unique) or None
    if isinstance(value, dict):
        amount = text_value(value.get("value"))
        unit = text_value(value.get("unitText"))
        if amount is not None:
            return f"{amount} {unit}" if unit else amount
    return text_value(value)
