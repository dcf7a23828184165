from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import User, Developer, Governorate, City, Area
from app.models.enums import (
    USER_ROLES, PROPERTY_TYPES, PROPERTY_STATUSES, DEVELOPER_STATUSES, CURRENCIES,
    LEAD_SERVICES, LEAD_PURPOSES, LEAD_TIMELINES, LEAD_STATUSES, LEAD_PRIORITIES, LEAD_SOURCES,
    LAUNCH_PROPERTY_TYPES, LAUNCH_STATUSES, LAUNCH_CURRENCIES, AREA_UNITS,
)
from app.schemas.bulk_upload import RecordError, SkippedRecord
from app.utils.dates import parse_datetime
from app.utils.concurrency import chunked
from app.utils.enum_mapping import EnumLookup
from app.utils.text import (
    get_path, is_blank, is_number, is_valid_email, is_valid_phone, normalize_name_for_matching, record_slug,
)


Resolved = Sequence[Dict[str, Any]]


@dataclass
class ValidationReport:
    errors: List[RecordError] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def skipped_indices(self) -> Set[int]:
        return {entry.index for entry in self.skipped}

    def error(self, index: int, record: Any, messages: List[str]) -> None:
        self.errors.append(RecordError(index=index, record=record, errors=messages))

    def skip(self, index: int, record: Any, reason: str) -> None:
        self.skipped.append(SkippedRecord(index=index, record=record, reason=reason))


# --- Small checks shared by every kind ---
def _lower(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return None


def _require(record: Dict[str, Any], key: str, label: str, errors: List[str]) -> None:
    if is_blank(record.get(key)):
        errors.append(f"{label} is required")


def _check_enum(
    value: Any,
    lookup: EnumLookup,
    label: str,
    errors: List[str],
    required: bool = False,
) -> None:
    if is_blank(value):
        if required:
            errors.append(f"{label} is required and must be one of: {lookup.choices_text()}")
        return
    if value not in lookup:
        errors.append(f"{label} must be one of: {lookup.choices_text()}")


def _check_positive(value: Any, label: str, errors: List[str]) -> None:
    if not is_number(value) or value <= 0:
        errors.append(f"{label} is required and must be a positive number")


def _check_rate(record: Dict[str, Any], errors: List[str]) -> None:
    rate = record.get("annualAppreciationRate")
    if not is_number(rate) or not 0 <= rate <= 100:
        errors.append("Annual appreciation rate is required and must be a number between 0 and 100")


def _check_date(record: Dict[str, Any], key: str, label: str, errors: List[str], required: bool = False) -> None:
    value = record.get(key)
    if is_blank(value):
        if required:
            errors.append(f"{label} is required and must be a valid date")
        return
    if parse_datetime(value) is None:
        errors.append(f"{label} must be a valid date")


def _unresolved(label: str, value: Any, auto_create: bool) -> str:
    return f'{label} "{value}" could not be resolved' + (" or created" if auto_create else "")


def _check_reference(
    record: Dict[str, Any],
    resolved: Dict[str, Any],
    key: str,
    label: str,
    errors: List[str],
    auto_create: bool = False,
) -> None:
    """A declared reference that resolved to nothing is an error."""
    value = record.get(key)
    if not is_blank(value) and resolved.get(key) is None:
        errors.append(_unresolved(label, value, auto_create))


def _resolved_for(resolved: Optional[Resolved], index: int) -> Dict[str, Any]:
    if resolved is None or index >= len(resolved):
        return {}
    return resolved[index] or {}


# --- Duplicate detection ---
NAME_QUERY_BATCH = 100


def _name_key(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return normalize_name_for_matching(value)
    return None


async def _existing_lower(db: AsyncSession, column, values: Iterable[str]) -> Set[str]:
    values = sorted(set(values))
    if not values:
        return set()
    result = await db.execute(select(func.lower(column)).where(func.lower(column).in_(values)))
    return set(result.scalars().all())


async def _stored_names(db: AsyncSession, name_column, keys: Iterable[str], *extra_columns) -> List[tuple]:
    """
    Stored rows whose normalized name is one of `keys`, as `(key, *extra_columns)`.
    Candidates are fetched by first word and normalized here, the same way the
    reference resolver matches names.
    """
    keys = set(keys)
    words = sorted({key.split()[0] for key in keys if key.split()})
    matches = []
    for batch in chunked(words, NAME_QUERY_BATCH):
        result = await db.execute(
            select(name_column, *extra_columns).where(
                or_(*(name_column.icontains(word, autoescape=True) for word in batch))
            )
        )
        for name, *extra in result.all():
            key = normalize_name_for_matching(name)
            if key in keys:
                matches.append((key, *extra))
    return matches


def _skip_duplicates(
    records: Sequence[Dict[str, Any]],
    key_of: Callable[[int, Dict[str, Any]], Optional[str]],
    existing: Set[str],
    report: ValidationReport,
    batch_reason: str,
    existing_reason: Callable[[Dict[str, Any]], str],
) -> Set[int]:
    """
    Second and later occurrences of a key inside the batch are skipped, as
    are records whose key is already stored. Returns the skipped indices.
    """
    first_seen: Dict[str, int] = {}
    skipped: Set[int] = set()
    for index, record in enumerate(records):
        key = key_of(index, record)
        if key is None:
            continue
        if key in first_seen:
            report.skip(index, record, f"{batch_reason} (same as record {first_seen[key]})")
            skipped.add(index)
            continue
        first_seen[key] = index
        if key in existing:
            report.skip(index, record, existing_reason(record))
            skipped.add(index)
    return skipped


async def _skip_existing_names(
    db: AsyncSession,
    model,
    label: str,
    records: Sequence[Dict[str, Any]],
    report: ValidationReport,
) -> Set[int]:
    keys = [key for key in (_name_key(r.get("name")) for r in records) if key]
    existing = {row[0] for row in await _stored_names(db, model.name, keys)}
    return _skip_duplicates(
        records,
        lambda _, r: _name_key(r.get("name")),
        existing,
        report,
        batch_reason="Duplicate name in upload batch",
        existing_reason=lambda r: f'{label} "{str(r.get("name")).strip()}" already exists',
    )


async def _skip_slug_collisions(
    db: AsyncSession,
    model,
    label: str,
    records: Sequence[Dict[str, Any]],
    report: ValidationReport,
    skipped: Set[int],
    from_name: bool = True,
) -> Set[int]:
    """Skip records whose slug is already stored or taken earlier in the batch."""
    def slug_of(index: int, record: Dict[str, Any]) -> Optional[str]:
        return None if index in skipped else record_slug(record, from_name)

    slugs = {slug for slug in (slug_of(i, r) for i, r in enumerate(records)) if slug}
    existing: Set[str] = set()
    if slugs:
        result = await db.execute(select(model.slug).where(model.slug.in_(sorted(slugs))))
        existing = set(result.scalars().all())

    return skipped | _skip_duplicates(
        records,
        slug_of,
        existing,
        report,
        batch_reason="Duplicate slug in upload batch",
        existing_reason=lambda r: f'{label} with slug "{record_slug(r, from_name)}" already exists',
    )


# --- Validators, one per kind ---
async def validate_users(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()
    emails = [email for email in (_lower(r.get("email")) for r in records) if email]
    existing = await _existing_lower(db, User.email, emails)
    skipped = _skip_duplicates(
        records,
        lambda _, r: _lower(r.get("email")),
        existing,
        report,
        batch_reason="Duplicate email in upload batch",
        existing_reason=lambda r: f'User with email "{str(r.get("email")).strip()}" already exists',
    )

    for index, record in enumerate(records):
        if index in skipped:
            continue
        errors: List[str] = []
        _require(record, "name", "Name", errors)

        email = record.get("email")
        if is_blank(email):
            errors.append("Email is required")
        elif not is_valid_email(email.strip() if isinstance(email, str) else email):
            errors.append("Invalid email format")

        phone = record.get("phone")
        if is_blank(phone):
            errors.append("Phone is required")
        elif not is_valid_phone(phone):
            errors.append("Invalid phone format")

        password = record.get("password")
        if not isinstance(password, str) or len(password) < 6:
            errors.append("Password is required and must be at least 6 characters")

        _check_enum(record.get("role"), USER_ROLES, "Role", errors)

        if errors:
            report.error(index, record, errors)
    return report


async def validate_developers(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()
    skipped = await _skip_existing_names(db, Developer, "Developer", records, report)
    skipped = await _skip_slug_collisions(db, Developer, "Developer", records, report, skipped)
    for index, record in enumerate(records):
        if index in skipped:
            continue
        errors: List[str] = []
        _require(record, "name", "Name", errors)
        if errors:
            report.error(index, record, errors)
    return report


async def validate_governorates(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()
    skipped = await _skip_existing_names(db, Governorate, "Governorate", records, report)
    skipped = await _skip_slug_collisions(db, Governorate, "Governorate", records, report, skipped)
    for index, record in enumerate(records):
        if index in skipped:
            continue
        errors: List[str] = []
        _require(record, "name", "Name", errors)
        _check_rate(record, errors)
        if errors:
            report.error(index, record, errors)
    return report


async def validate_cities(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()
    skipped = await _skip_existing_names(db, City, "City", records, report)
    skipped = await _skip_slug_collisions(db, City, "City", records, report, skipped, from_name=False)
    for index, record in enumerate(records):
        if index in skipped:
            continue
        refs = _resolved_for(resolved, index)
        errors: List[str] = []
        _require(record, "name", "Name", errors)
        _check_rate(record, errors)

        governorate = record.get("governorate") or record.get("governorate_ref")
        if not is_blank(governorate) and refs.get("governorate_ref") is None:
            errors.append(_unresolved("Governorate", governorate, auto_create))

        if errors:
            report.error(index, record, errors)
    return report


async def validate_areas(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()

    def area_key(index: int, record: Dict[str, Any]) -> Optional[str]:
        name = _name_key(record.get("name"))
        city_id = _resolved_for(resolved, index).get("city_ref")
        if name is None or city_id is None:
            return None
        return f"{name}|{city_id}"

    keys = [key for key in (_name_key(r.get("name")) for r in records) if key]
    existing = {f"{key}|{city_id}" for key, city_id in await _stored_names(db, Area.name, keys, Area.city_id)}

    skipped = _skip_duplicates(
        records,
        area_key,
        existing,
        report,
        batch_reason="Duplicate area name in the same city in upload batch",
        existing_reason=lambda r: f'Area "{str(r.get("name")).strip()}" already exists in this city',
    )
    skipped = await _skip_slug_collisions(db, Area, "Area", records, report, skipped, from_name=False)

    for index, record in enumerate(records):
        if index in skipped:
            continue
        refs = _resolved_for(resolved, index)
        errors: List[str] = []
        _require(record, "name", "Name", errors)

        city = record.get("city") or record.get("city_ref")
        if is_blank(city):
            errors.append("City is required")
        elif refs.get("city_ref") is None:
            errors.append(_unresolved("City", city, auto_create))

        _check_rate(record, errors)
        if errors:
            report.error(index, record, errors)
    return report


LOCATION_REFS = (
    ("governorate_ref", "Governorate"),
    ("city_ref", "City"),
    ("area_ref", "Area"),
)


async def validate_properties(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    """
    Field checks only; properties have no natural key, so nothing is skipped.

    Location accepts either the hierarchical refs (all three must resolve,
    plus `location.address`) or the legacy flat address/city/state triple.
    """
    report = ValidationReport()
    for index, record in enumerate(records):
        refs = _resolved_for(resolved, index)
        errors: List[str] = []

        _require(record, "title", "Title", errors)
        _require(record, "description", "Description", errors)
        _check_enum(record.get("type"), PROPERTY_TYPES, "Type", errors, required=True)
        _check_enum(record.get("status"), PROPERTY_STATUSES, "Status", errors, required=True)
        _check_enum(record.get("developerStatus"), DEVELOPER_STATUSES, "Developer status", errors)
        _check_enum(record.get("currency"), CURRENCIES, "Currency", errors)
        _check_positive(record.get("price"), "Price", errors)
        _check_positive(get_path(record, "specifications.area"), "Specifications area", errors)

        if any(not is_blank(record.get(key)) for key, _ in LOCATION_REFS):
            for key, label in LOCATION_REFS:
                value = record.get(key)
                if is_blank(value):
                    errors.append(f"{label} is required when using governorate/city/area references")
                elif refs.get(key) is None:
                    errors.append(_unresolved(label, value, auto_create))
            if is_blank(get_path(record, "location.address")):
                errors.append("Location address is required")
        else:
            for path, label in (
                ("location.address", "Location address"),
                ("location.city", "Location city"),
                ("location.state", "Location state"),
            ):
                if is_blank(get_path(record, path)):
                    errors.append(f"{label} is required")

        _check_reference(record, refs, "developer", "Developer", errors, auto_create)
        _check_reference(record, refs, "createdBy", "User", errors)

        if errors:
            report.error(index, record, errors)
    return report


async def validate_leads(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()
    for index, record in enumerate(records):
        refs = _resolved_for(resolved, index)
        errors: List[str] = []

        _require(record, "name", "Name", errors)

        email = record.get("email")
        if is_blank(email):
            errors.append("Email is required")
        elif not is_valid_email(email.strip() if isinstance(email, str) else email):
            errors.append("Invalid email format")

        phone = record.get("phone")
        if is_blank(phone):
            errors.append("Phone is required")
        elif not is_valid_phone(phone):
            errors.append("Invalid phone format")

        _check_enum(record.get("requiredService"), LEAD_SERVICES, "Required service", errors, required=True)
        _check_enum(record.get("propertyType"), PROPERTY_TYPES, "Property type", errors, required=True)
        _check_enum(record.get("purpose"), LEAD_PURPOSES, "Purpose", errors, required=True)
        _check_enum(record.get("timeline"), LEAD_TIMELINES, "Timeline", errors)
        _check_enum(record.get("status"), LEAD_STATUSES, "Status", errors)
        _check_enum(record.get("priority"), LEAD_PRIORITIES, "Priority", errors)
        _check_enum(record.get("source"), LEAD_SOURCES, "Source", errors)

        budget = record.get("budget")
        if budget is not None:
            if not isinstance(budget, dict):
                errors.append("Budget must be an object with min, max and currency")
            else:
                budget_min, budget_max = budget.get("min"), budget.get("max")
                if budget_min is not None and (not is_number(budget_min) or budget_min < 0):
                    errors.append("Budget minimum must be a non-negative number")
                if budget_max is not None and (not is_number(budget_max) or budget_max < 0):
                    errors.append("Budget maximum must be a non-negative number")
                if is_number(budget_min) and is_number(budget_max) and budget_min > budget_max:
                    errors.append("Budget minimum cannot be greater than maximum")
                _check_enum(budget.get("currency"), CURRENCIES, "Budget currency", errors)

        _check_date(record, "followUpDate", "Follow-up date", errors)
        _check_date(record, "lastContactDate", "Last contact date", errors)
        _check_reference(record, refs, "assignedTo", "Assigned user", errors)

        if errors:
            report.error(index, record, errors)
    return report


async def validate_launches(db: AsyncSession, records, resolved: Optional[Resolved] = None, auto_create: bool = False) -> ValidationReport:
    report = ValidationReport()
    for index, record in enumerate(records):
        refs = _resolved_for(resolved, index)
        errors: List[str] = []

        for key, label in (
            ("title", "Title"),
            ("developer", "Developer"),
            ("description", "Description"),
            ("content", "Content"),
            ("image", "Image"),
            ("location", "Location"),
        ):
            _require(record, key, label, errors)

        _check_enum(record.get("propertyType"), LAUNCH_PROPERTY_TYPES, "Property type", errors, required=True)
        _check_enum(record.get("status"), LAUNCH_STATUSES, "Status", errors, required=True)
        _check_enum(record.get("currency"), LAUNCH_CURRENCIES, "Currency", errors, required=True)
        _check_enum(record.get("areaUnit"), AREA_UNITS, "Area unit", errors, required=True)
        _check_positive(record.get("startingPrice"), "Starting price", errors)
        _check_positive(record.get("area"), "Area", errors)
        _check_date(record, "launchDate", "Launch date", errors, required=True)
        _check_date(record, "completionDate", "Completion date", errors)

        _check_reference(record, refs, "createdBy", "User", errors)
        _check_reference(record, refs, "updatedBy", "User", errors)

        if errors:
            report.error(index, record, errors)
    return report


VALIDATORS = {
    "users": validate_users,
    "developers": validate_developers,
    "governorates": validate_governorates,
    "cities": validate_cities,
    "areas": validate_areas,
    "properties": validate_properties,
    "leads": validate_leads,
    "launches": validate_launches,
}
