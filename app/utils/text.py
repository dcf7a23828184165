# app/utils/text.py
import math
import re
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_CITY_SUFFIX = re.compile(r"\s+city\s*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

EMAIL_REGEX = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,})+$")
PHONE_REGEX = re.compile(r"^[+]?[1-9]\d{0,15}$")


def slugify(value: Any, max_length: int = 64) -> str:
    slug = _NON_SLUG.sub("-", str(value).strip().lower()).strip("-")[:max_length].strip("-")
    return slug or "auto-slug"


def unique_slug(value: Any) -> str:
    """Slug with a short random suffix, for names that repeat under different parents."""
    return f"{slugify(value, max_length=55)}-{uuid.uuid4().hex[:8]}"


def record_slug(record: dict, from_name: bool = True) -> Optional[str]:
    """Slug a record is stored under: its own `slug`, else one derived from `name`."""
    if not is_blank(record.get("slug")):
        return slugify(record["slug"])
    if from_name and not is_blank(record.get("name")):
        return slugify(record["name"])
    return None


def normalize_name_for_matching(name: Any) -> str:
    """'  New Cairo   City ' -> 'new cairo'"""
    normalized = str(name).strip().lower()
    normalized = _CITY_SUFFIX.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and EMAIL_REGEX.match(email) is not None


def is_valid_phone(phone: Any) -> bool:
    return isinstance(phone, str) and PHONE_REGEX.match(phone) is not None


def is_number(value: Any) -> bool:
    # bool is an int subclass; "true" is not a price. NaN and Infinity are not numbers here.
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    if isinstance(value, int):
        return True
    return value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)


def to_decimal_or_none(value: Any, places: str = "0.01") -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value)).quantize(Decimal(places))
    except (InvalidOperation, ValueError):
        return None


def ensure_list(value: Any) -> List[Any]:
    """None -> [], scalar -> [scalar], list -> list without empty entries."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [item for item in value if item not in (None, "")]
    return [value]


def get_path(record: dict, path: str) -> Any:
    """Read a dot-notation path ('location.address') from nested dicts."""
    current: Any = record
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current
