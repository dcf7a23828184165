from uuid import uuid4

import pytest

from app.services.bulk_validation import (
    validate_users, validate_developers, validate_governorates, validate_cities,
    validate_areas, validate_properties, validate_leads, validate_launches,
)


def valid_user(**overrides):
    record = {
        "name": "John Doe",
        "email": "john@example.com",
        "phone": "+201234567890",
        "password": "default123",
        "role": "user",
    }
    record.update(overrides)
    return record


def valid_property(**overrides):
    record = {
        "title": "Modern Apartment",
        "description": "Two bedrooms with a view",
        "type": "apartment",
        "status": "for-rent",
        "price": 15000,
        "location": {"address": "456 Downtown Street", "city": "Cairo", "state": "Cairo"},
        "specifications": {"area": 120},
    }
    record.update(overrides)
    return record


def valid_lead(**overrides):
    record = {
        "name": "Jane Smith",
        "email": "jane@example.com",
        "phone": "+201234567890",
        "requiredService": "buy",
        "propertyType": "apartment",
        "purpose": "investment",
    }
    record.update(overrides)
    return record


def valid_launch(**overrides):
    record = {
        "title": "Oceanfront Towers",
        "developer": "Emaar Properties",
        "description": "Beachfront apartments",
        "content": "Long form content",
        "image": "launch-main",
        "location": "New Cairo",
        "propertyType": "Apartment",
        "status": "Available",
        "currency": "EGP",
        "areaUnit": "sqm",
        "startingPrice": 1500000,
        "area": 120,
        "launchDate": "2025-03-01",
    }
    record.update(overrides)
    return record


def messages(report, index=0):
    entry = next(error for error in report.errors if error.index == index)
    return entry.errors


# --- Users ---
async def test_valid_user_passes(db):
    report = await validate_users(db, [valid_user()])
    assert report.errors == [] and report.skipped == []


async def test_user_field_errors(db):
    report = await validate_users(db, [valid_user(email="bad", phone="0123", password="123", role="owner", name="")])
    errors = messages(report)
    assert "Name is required" in errors
    assert "Invalid email format" in errors
    assert "Invalid phone format" in errors
    assert "Password is required and must be at least 6 characters" in errors
    assert any(message.startswith("Role must be one of") for message in errors)


async def test_user_duplicates_in_batch_and_storage(db, make_user):
    await make_user("taken@example.com")
    records = [
        valid_user(email="new@example.com"),
        valid_user(email="NEW@example.com"),
        valid_user(email="Taken@Example.com"),
    ]

    report = await validate_users(db, records)

    assert [entry.index for entry in report.skipped] == [1, 2]
    assert "Duplicate email" in report.skipped[0].reason
    assert "already exists" in report.skipped[1].reason
    assert report.errors == []


async def test_errors_and_skips_are_mutually_exclusive(db):
    # The duplicate is also invalid; it is only reported as skipped
    records = [valid_user(), valid_user(password="1")]

    report = await validate_users(db, records)

    assert {entry.index for entry in report.skipped} == {1}
    assert report.errors == []


# --- Developers / governorates ---
async def test_developer_requires_name(db):
    report = await validate_developers(db, [{"logo": "x"}])
    assert messages(report) == ["Name is required"]


async def test_governorate_in_batch_duplicate_is_case_insensitive(db):
    records = [
        {"name": "Cairo", "annualAppreciationRate": 7.5},
        {"name": "cairo", "annualAppreciationRate": 8},
    ]
    report = await validate_governorates(db, records)
    assert len(report.skipped) == 1 and report.skipped[0].index == 1
    assert report.errors == []


async def test_governorate_existing_is_skipped(db, make_governorate):
    await make_governorate("Giza")
    report = await validate_governorates(db, [{"name": "GIZA", "annualAppreciationRate": 5}])
    assert report.skipped[0].reason == 'Governorate "GIZA" already exists'


@pytest.mark.parametrize("rate", [None, -1, 101, "7", True])
async def test_governorate_rate_range(db, rate):
    report = await validate_governorates(db, [{"name": "Cairo", "annualAppreciationRate": rate}])
    assert messages(report) == ["Annual appreciation rate is required and must be a number between 0 and 100"]


# --- Cities / areas ---
async def test_city_with_unresolved_governorate(db):
    record = {"name": "Sheikh Zayed", "governorate": "Giza", "annualAppreciationRate": 7.2}

    strict = await validate_cities(db, [record], [{"governorate_ref": None}], auto_create=False)
    lenient = await validate_cities(db, [record], [{"governorate_ref": None}], auto_create=True)

    assert messages(strict) == ['Governorate "Giza" could not be resolved']
    assert messages(lenient) == ['Governorate "Giza" could not be resolved or created']


async def test_city_with_unresolved_governorate_ref(db):
    record = {"name": "Sheikh Zayed", "governorate_ref": "Giza", "annualAppreciationRate": 7.2}
    report = await validate_cities(db, [record], [{"governorate_ref": None}])
    assert messages(report) == ['Governorate "Giza" could not be resolved']


async def test_city_name_duplicates_ignore_city_suffix(db, make_city):
    await make_city("New Cairo")
    records = [
        {"name": "New Cairo City", "annualAppreciationRate": 5},
        {"name": "Hurghada", "annualAppreciationRate": 4},
        {"name": "hurghada  city", "annualAppreciationRate": 4},
    ]

    report = await validate_cities(db, records, [{}, {}, {}])

    assert [entry.index for entry in report.skipped] == [0, 2]
    assert report.skipped[0].reason == 'City "New Cairo City" already exists'
    assert "same as record 1" in report.skipped[1].reason


async def test_city_explicit_slug_collisions(db):
    records = [
        {"name": "Zayed", "slug": "zayed", "annualAppreciationRate": 7},
        {"name": "Sheikh Zayed", "slug": "ZAYED", "annualAppreciationRate": 7},
        {"name": "October", "annualAppreciationRate": 7},
    ]

    report = await validate_cities(db, records, [{}, {}, {}])

    assert [entry.index for entry in report.skipped] == [1]
    assert report.skipped[0].reason.startswith("Duplicate slug in upload batch")


async def test_city_without_governorate_is_fine(db):
    report = await validate_cities(db, [{"name": "Hurghada", "annualAppreciationRate": 4}], [{}])
    assert report.errors == []


async def test_area_needs_resolved_city(db):
    records = [
        {"name": "Fifth Settlement", "annualAppreciationRate": 9},
        {"name": "Maadi Degla", "city": "Maadi", "annualAppreciationRate": 6.5},
    ]
    report = await validate_areas(db, records, [{}, {"city_ref": None}])

    assert messages(report, 0) == ["City is required"]
    assert messages(report, 1) == ['City "Maadi" could not be resolved']


async def test_area_with_unresolved_city_ref(db):
    record = {"name": "Maadi Degla", "city_ref": "Maadi", "annualAppreciationRate": 6.5}
    report = await validate_areas(db, [record], [{"city_ref": None}])
    assert messages(report) == ['City "Maadi" could not be resolved']


async def test_area_duplicates_are_scoped_by_city(db):
    first_city, second_city = uuid4(), uuid4()
    records = [
        {"name": "Downtown", "city": "A", "annualAppreciationRate": 5},
        {"name": "downtown", "city": "B", "annualAppreciationRate": 5},
        {"name": "DOWNTOWN", "city": "A", "annualAppreciationRate": 5},
    ]
    resolved = [{"city_ref": first_city}, {"city_ref": second_city}, {"city_ref": first_city}]

    report = await validate_areas(db, records, resolved)

    assert [entry.index for entry in report.skipped] == [2]


async def test_governorate_slug_collisions_are_skipped(db, make_governorate):
    await make_governorate("Giza")
    records = [
        {"name": "New Cairo", "annualAppreciationRate": 7},
        {"name": "New-Cairo", "annualAppreciationRate": 7},
        {"name": "Giza Governorate", "slug": "giza", "annualAppreciationRate": 6},
    ]

    report = await validate_governorates(db, records)

    assert report.errors == []
    assert [(entry.index, entry.reason) for entry in report.skipped] == [
        (1, "Duplicate slug in upload batch (same as record 0)"),
        (2, 'Governorate with slug "giza" already exists'),
    ]


# --- Properties ---
async def test_valid_legacy_property_passes(db):
    report = await validate_properties(db, [valid_property()])
    assert report.errors == []


async def test_property_without_any_location(db):
    record = valid_property(location={"address": "Somewhere"})
    errors = messages(await validate_properties(db, [record]))
    assert errors == ["Location city is required", "Location state is required"]


async def test_property_partial_hierarchical_refs(db):
    record = valid_property(location={"address": "123 Main"}, governorate_ref="Cairo", city_ref="New Cairo")
    resolved = [{"governorate_ref": uuid4(), "city_ref": uuid4()}]

    errors = messages(await validate_properties(db, [record], resolved, auto_create=True))

    assert errors == ["Area is required when using governorate/city/area references"]


async def test_property_hierarchical_refs_need_address(db):
    record = valid_property(location={}, governorate_ref="Cairo", city_ref="New Cairo", area_ref="Fifth")
    resolved = [{"governorate_ref": uuid4(), "city_ref": uuid4(), "area_ref": None}]

    errors = messages(await validate_properties(db, [record], resolved, auto_create=True))

    assert 'Area "Fifth" could not be resolved or created' in errors
    assert "Location address is required" in errors


async def test_property_enum_spellings_are_accepted(db):
    record = valid_property(type="Twin_Villa", status="FOR_SALE", developerStatus="Off Plan", currency="usd")
    assert (await validate_properties(db, [record])).errors == []


async def test_property_numbers(db):
    record = valid_property(price=True, specifications={"area": 0}, type="castle")
    errors = messages(await validate_properties(db, [record]))
    assert "Price is required and must be a positive number" in errors
    assert "Specifications area is required and must be a positive number" in errors
    assert any(message.startswith("Type must be one of") for message in errors)


async def test_property_unresolved_developer_and_creator(db):
    record = valid_property(developer="Nobody", createdBy="ghost@example.com")
    resolved = [{"developer": None, "createdBy": None}]
    errors = messages(await validate_properties(db, [record], resolved, auto_create=True))
    assert 'Developer "Nobody" could not be resolved or created' in errors
    assert 'User "ghost@example.com" could not be resolved' in errors


@pytest.mark.parametrize("price", [float("inf"), float("nan")])
async def test_property_price_must_be_finite(db, price):
    errors = messages(await validate_properties(db, [valid_property(price=price)]))
    assert errors == ["Price is required and must be a positive number"]


# --- Leads ---
async def test_lead_invalid_email(db):
    errors = messages(await validate_leads(db, [valid_lead(email="not-an-email")]))
    assert errors == ["Invalid email format"]


async def test_lead_budget_rules(db):
    record = valid_lead(budget={"min": 3000000, "max": 2000000, "currency": "GBP"})
    errors = messages(await validate_leads(db, [record]))
    assert "Budget minimum cannot be greater than maximum" in errors
    assert any(message.startswith("Budget currency must be one of") for message in errors)


async def test_lead_negative_budget_and_bad_dates(db):
    record = valid_lead(budget={"min": -5}, followUpDate="someday", source="chat-ai")
    errors = messages(await validate_leads(db, [record]))
    assert errors == ["Budget minimum must be a non-negative number", "Follow-up date must be a valid date"]


async def test_lead_unresolved_assignee(db):
    record = valid_lead(assignedTo="nobody@example.com")
    errors = messages(await validate_leads(db, [record], [{"assignedTo": None}]))
    assert errors == ['Assigned user "nobody@example.com" could not be resolved']


# --- Launches ---
async def test_valid_launch_passes(db):
    assert (await validate_launches(db, [valid_launch(status="coming soon")])).errors == []


async def test_launch_starting_price_must_be_finite(db):
    errors = messages(await validate_launches(db, [valid_launch(startingPrice=float("inf"))]))
    assert errors == ["Starting price is required and must be a positive number"]


async def test_launch_required_fields(db):
    record = valid_launch(image="", launchDate="soon", startingPrice=-1, areaUnit=None)
    errors = messages(await validate_launches(db, [record]))
    assert "Image is required" in errors
    assert "Launch date must be a valid date" in errors
    assert "Starting price is required and must be a positive number" in errors
    assert any(message.startswith("Area unit is required") for message in errors)
