"""
Field-level normalization shared by every schema adapter.

Each helper accepts whatever a stored document happens to contain (missing
keys, strings where numbers belong, nested objects where scalars belong) and
returns a value that satisfies the canonical product invariants.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any

_IMAGE_KEY_RE = re.compile(r"(\d+)$")
_NUMBER_CLEAN_RE = re.compile(r"[,\s₹$]")
# Upper bound for stock-like counts (32-bit signed)
MAX_COUNT = 2**31 - 1


# ---------------------------------------------------------------------------
# Numbers and prices
# ---------------------------------------------------------------------------


def to_number(value: Any) -> float:
    """Coerce a stored price-like value to a finite float, 0 when unusable."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        try:
            number = float(_NUMBER_CLEAN_RE.sub("", value))
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def first_positive(*values: Any) -> float:
    """Return the first value that coerces to a positive number, else 0.

    Legacy documents spread the same price across ``price``, ``mrp`` and
    ``originalPrice``; a zero or missing entry means "look at the next one".
    """
    for value in values:
        number = to_number(value)
        if number > 0:
            return number
    return 0.0


def clamp_discount(value: Any) -> float:
    return min(max(to_number(value), 0.0), 100.0)


def derive_final_price(mrp: float, discount_percent: float) -> float:
    if discount_percent > 0:
        return round(mrp - (mrp * discount_percent / 100), 2)
    return mrp


def resolve_prices(mrp: Any, discount_percent: Any, final_price: Any = None, original_price: Any = None) -> dict:
    """Build the canonical price block.

    ``final_price`` wins when the document carries a positive one; otherwise
    it is derived from ``mrp`` and the discount.
    """
    mrp_value = max(to_number(mrp), 0.0)
    discount = clamp_discount(discount_percent)
    final = first_positive(final_price) or derive_final_price(mrp_value, discount)
    final = max(final, 0.0)
    return {
        "mrp": mrp_value,
        "discount_percent": discount,
        "final_price": final,
        "price": final,
        "original_price": first_positive(original_price) or mrp_value,
    }


def to_int(value: Any) -> int:
    return min(max(int(to_number(value)), 0), MAX_COUNT)


def to_rating(value: Any) -> float:
    return min(max(to_number(value), 0.0), 5.0)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def text(value: Any) -> str:
    """Stored scalar as a stripped string; containers and None become ''."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    if isinstance(value, bool):
        return ""
    return str(value).strip()


def first_text(*values: Any) -> str:
    for value in values:
        candidate = text(value)
        if candidate:
            return candidate
    return ""


def placeholder_name(doc_id: str = "") -> str:
    return f"Untitled product {doc_id[-6:]}" if doc_id else "Untitled product"


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def text_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [s for s in (text(v) for v in value) if s]


def is_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def _image_key_order(key: str) -> int:
    match = _IMAGE_KEY_RE.search(str(key))
    return int(match.group(1)) if match else 0


def normalize_images(value: Any, *fallbacks: Any) -> list[str]:
    """Turn any stored image shape into an ordered list of URLs.

    Accepts an array, a numbered-key object ({"image1": ..., "image2": ...},
    ordered by numeric suffix, empty slots dropped) or a single URL string.
    When that yields nothing, the first usable fallback (thumbnail, image)
    becomes a one-element list.
    """
    images: list[str] = []
    if isinstance(value, (list, tuple)):
        images = text_list(value)
    elif isinstance(value, dict):
        for key in sorted(value, key=_image_key_order):
            url = text(value[key])
            if url:
                images.append(url)
    elif isinstance(value, str):
        images = [value.strip()] if value.strip() else []

    if images:
        return images

    for fallback in fallbacks:
        url = text(fallback)
        if url:
            return [url]
    return []


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def timestamp_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, dict) and "$date" in value:
        value = value["$date"]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_timestamp(value: Any) -> float:
    """Epoch seconds for a stored timestamp; 0 (oldest) when unparsable."""
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # Numeric timestamps in stored documents are epoch milliseconds
        try:
            millis = float(value)
        except OverflowError:
            return 0.0
        return millis / 1000 if math.isfinite(millis) else 0.0
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return 0.0
        try:
            if raw.isascii() and raw.lstrip("-").isdigit():
                millis = float(raw)
                return millis / 1000 if math.isfinite(millis) else 0.0
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return 0.0
    else:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.timestamp()
    except (OverflowError, OSError, ValueError):
        return 0.0
