import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from app.models.enums import (
    PropertyStatus, LaunchStatus, UserRole,
    PROPERTY_STATUSES, PROPERTY_TYPES, LAUNCH_STATUSES, USER_ROLES, LEAD_SOURCES,
)
from app.utils.concurrency import chunked, gather_bounded
from app.utils.dates import parse_datetime
from app.utils.enum_mapping import canonical
from app.utils.text import (
    ensure_list, get_path, is_number, is_valid_email, is_valid_phone,
    normalize_name_for_matching, record_slug, slugify, to_decimal_or_none, unique_slug,
)


# --- Name normalization ---
@pytest.mark.parametrize("raw", ["New Cairo", "new cairo", "New Cairo City", "  New   Cairo  ", "NEW CAIRO city"])
def test_normalize_name_for_matching(raw):
    assert normalize_name_for_matching(raw) == "new cairo"


def test_normalize_keeps_city_inside_name():
    assert normalize_name_for_matching("Cityscape Towers") == "cityscape towers"


def test_slugify():
    assert slugify("Fifth Settlement!") == "fifth-settlement"
    assert slugify("   ") == "auto-slug"
    assert len(slugify("x" * 200)) == 64


def test_unique_slug_differs_per_call():
    first, second = unique_slug("Maadi"), unique_slug("Maadi")
    assert first.startswith("maadi-") and second.startswith("maadi-")
    assert first != second


# --- Field checks ---
@pytest.mark.parametrize("email,valid", [
    ("jane@example.com", True),
    ("first.last@mail.example.org", True),
    ("not-an-email", False),
    ("missing@tld", False),
    (None, False),
])
def test_email_format(email, valid):
    assert is_valid_email(email) is valid


@pytest.mark.parametrize("phone,valid", [
    ("+201234567890", True),
    ("201234567890", True),
    ("0123", False),
    ("+20 123", False),
    (201234567890, False),
])
def test_phone_format(phone, valid):
    assert is_valid_phone(phone) is valid


def test_booleans_are_not_numbers():
    assert is_number(5) and is_number(2.5) and is_number(Decimal("1"))
    assert not is_number(True)
    assert not is_number("5")


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), Decimal("NaN"), Decimal("Infinity")])
def test_non_finite_values_are_not_numbers(value):
    assert not is_number(value)


def test_huge_integers_are_numbers():
    assert is_number(10 ** 400)


def test_record_slug():
    assert record_slug({"name": "New-Cairo"}) == record_slug({"name": "New Cairo"}) == "new-cairo"
    assert record_slug({"name": "Emaar", "slug": "Emaar Misr"}) == "emaar-misr"
    assert record_slug({"name": "Emaar", "slug": "  "}) == "emaar"
    assert record_slug({"name": "Maadi"}, from_name=False) is None
    assert record_slug({}) is None


def test_to_decimal_or_none():
    assert to_decimal_or_none(5000000) == Decimal("5000000.00")
    assert to_decimal_or_none("12.345") == Decimal("12.34")
    assert to_decimal_or_none("abc") is None
    assert to_decimal_or_none(True) is None


def test_ensure_list_and_get_path():
    assert ensure_list(None) == []
    assert ensure_list("pool") == ["pool"]
    assert ensure_list(["pool", "", None, "gym"]) == ["pool", "gym"]
    assert get_path({"location": {"address": "x"}}, "location.address") == "x"
    assert get_path({"location": "flat"}, "location.address") is None


def test_parse_datetime():
    assert parse_datetime("2025-03-01") == datetime(2025, 3, 1)
    assert parse_datetime("2025-11-01T10:30:00Z") == datetime(2025, 11, 1, 10, 30)
    assert parse_datetime("2025-11-01T12:30:00+02:00") == datetime(2025, 11, 1, 10, 30)
    assert parse_datetime("next tuesday") is None
    assert parse_datetime(None) is None


# --- Enum canonicalization ---
@pytest.mark.parametrize("spelling", ["for-sale", "FOR_SALE", "for_sale", "For Sale", "forsale"])
def test_property_status_spellings(spelling):
    assert PROPERTY_STATUSES.get(spelling) is PropertyStatus.FOR_SALE
    assert spelling in PROPERTY_STATUSES


def test_launch_status_spellings():
    assert LAUNCH_STATUSES.get("coming soon") is LaunchStatus.COMING_SOON
    assert LAUNCH_STATUSES.get("PRE_LAUNCH") is LaunchStatus.PRE_LAUNCH
    assert LAUNCH_STATUSES.get("Sold-Out") is LaunchStatus.SOLD_OUT


def test_enum_round_trip():
    for member in PropertyStatus:
        assert PROPERTY_STATUSES.get(member.value) is member
        assert PROPERTY_STATUSES.get(member.name) is member


def test_enum_lookup_defaults_and_misses():
    assert USER_ROLES.get(None, UserRole.USER) is UserRole.USER
    assert USER_ROLES.get("SALES-MANAGER") is UserRole.SALES_MANAGER
    assert "mansion" not in PROPERTY_TYPES
    assert "chat-ai" in LEAD_SOURCES
    assert canonical(" Twin_Villa ") == "twinvilla"


# --- Concurrency helpers ---
def test_chunked():
    chunks = list(chunked(list(range(1000)), 50))
    assert len(chunks) == 20
    assert all(len(chunk) == 50 for chunk in chunks)
    assert list(chunked([1, 2, 3], 2)) == [[1, 2], [3]]
    with pytest.raises(ValueError):
        list(chunked([1], 0))


async def test_gather_bounded_keeps_order_and_isolates_failures():
    in_flight = 0
    peak = 0

    async def worker(item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        try:
            if item == 3:
                raise RuntimeError("boom")
            return item * 2
        finally:
            in_flight -= 1

    results = await gather_bounded(list(range(6)), worker, limit=2)

    assert results[:3] == [0, 2, 4]
    assert isinstance(results[3], RuntimeError)
    assert results[4:] == [8, 10]
    assert peak == 2
