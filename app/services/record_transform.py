import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from app.core.security import CurrentUser, get_password_hash
from app.models.enums import (
    UserRole, PropertyType, PropertyStatus, ApprovalStatus, Currency,
    LeadTimeline, LeadStatus, LeadPriority, LeadSource,
    LaunchPropertyType, LaunchStatus, LaunchCurrency, AreaUnit,
    USER_ROLES, PROPERTY_TYPES, PROPERTY_STATUSES, DEVELOPER_STATUSES, CURRENCIES,
    LEAD_SERVICES, LEAD_PURPOSES, LEAD_TIMELINES, LEAD_STATUSES, LEAD_PRIORITIES, LEAD_SOURCES,
    LAUNCH_PROPERTY_TYPES, LAUNCH_STATUSES, LAUNCH_CURRENCIES, AREA_UNITS,
)
from app.schemas.bulk_upload import ImageWarning
from app.services.image_resolver import ImageResolver, resolve_many
from app.services.roles import build_permissions_for_role, can_auto_approve, get_hierarchy_for_role
from app.utils.dates import parse_datetime
from app.utils.enum_mapping import EnumLookup
from app.utils.text import ensure_list, is_blank, is_number, record_slug, to_decimal_or_none, unique_slug

Row = Dict[str, Any]
Prepared = Tuple[Row, List[ImageWarning]]


@dataclass
class TransformContext:
    images: ImageResolver
    current_user: CurrentUser

    @property
    def user_id(self) -> Optional[UUID]:
        try:
            return UUID(str(self.current_user.id))
        except ValueError:
            return None


# --- Field helpers ---
def _text(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value).strip()


def _enum_value(lookup: EnumLookup, value: Any, default=None) -> Optional[str]:
    member = lookup.get(value, default)
    return member.value if member is not None else None


def _flag(record: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = record.get(key)
    return value if isinstance(value, bool) else default


def _int_or_none(value: Any) -> Optional[int]:
    return int(value) if is_number(value) else None


def _dict_or_none(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _str_list(value: Any) -> List[str]:
    return [str(item).strip() for item in ensure_list(value) if str(item).strip()]


def _image_ref(image: Any) -> str:
    if isinstance(image, dict):
        return str(image.get("url") or image.get("publicId") or "")
    return str(image)


def _warning(label: Any, field: str, reference: Any) -> ImageWarning:
    return ImageWarning(
        record=str(label or "unnamed record"),
        field=field,
        reason=f'Could not resolve image reference "{reference}"',
    )


async def _resolve_single(
    ctx: TransformContext,
    reference: Any,
    label: Any,
    field: str,
    warnings: List[ImageWarning],
) -> Optional[str]:
    """Resolve one optional image field; unresolved references become None plus a warning."""
    if is_blank(reference):
        return None
    url = await ctx.images.resolve_url(reference)
    if url is None:
        warnings.append(_warning(label, field, reference))
    return url


# --- Per-kind preparation ---
async def prepare_user(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    warnings: List[ImageWarning] = []
    role = _enum_value(USER_ROLES, record.get("role"), UserRole.USER)

    hierarchy = record.get("hierarchy")
    if not (is_number(hierarchy) and 1 <= hierarchy <= 5):
        hierarchy = get_hierarchy_for_role(role)

    permissions = _dict_or_none(record.get("permissions")) or build_permissions_for_role(role)

    # bcrypt is CPU bound; keep it off the event loop
    password = await asyncio.to_thread(get_password_hash, record["password"])

    profile_image = await _resolve_single(ctx, record.get("profileImage"), record.get("email"), "profileImage", warnings)

    row = {
        "user_id": uuid4(),
        "name": _text(record.get("name")),
        "email": record["email"].strip().lower(),
        "phone": _text(record.get("phone")),
        "password": password,
        "role": role,
        "hierarchy": int(hierarchy),
        "permissions": permissions,
        "is_active": _flag(record, "isActive", True),
        "profile_image": profile_image,
        "bio": _text(record.get("bio")),
        "location": _text(record.get("location")),
        "preferences": _dict_or_none(record.get("preferences")),
        "activity_stats": _dict_or_none(record.get("activityStats")) or {},
        "is_email_verified": _flag(record, "isEmailVerified"),
        "subscribe_to_newsletter": _flag(record, "subscribeToNewsletter"),
        "last_login": parse_datetime(record.get("lastLogin")),
    }
    return row, warnings


async def prepare_developer(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    warnings: List[ImageWarning] = []
    name = _text(record.get("name"))
    logo = await _resolve_single(ctx, record.get("logo"), name, "logo", warnings)
    row = {
        "developer_id": uuid4(),
        "name": name,
        "slug": record_slug(record),
        "logo": logo,
        "description": _text(record.get("description")),
    }
    return row, warnings


async def prepare_governorate(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    name = _text(record.get("name"))
    row = {
        "governorate_id": uuid4(),
        "name": name,
        "slug": record_slug(record),
        "annual_appreciation_rate": float(record["annualAppreciationRate"]),
        "description": _text(record.get("description")),
    }
    return row, []


def _location_slug(record: Dict[str, Any], name: str) -> str:
    # Same city/area name can repeat under different parents
    return record_slug(record, from_name=False) or unique_slug(name)


async def prepare_city(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    name = _text(record.get("name"))
    row = {
        "city_id": uuid4(),
        "name": name,
        "slug": _location_slug(record, name),
        "governorate_id": refs.get("governorate_ref"),
        "annual_appreciation_rate": float(record["annualAppreciationRate"]),
        "description": _text(record.get("description")),
    }
    return row, []


async def prepare_area(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    name = _text(record.get("name"))
    row = {
        "area_id": uuid4(),
        "name": name,
        "slug": _location_slug(record, name),
        "city_id": refs["city_ref"],
        "annual_appreciation_rate": float(record["annualAppreciationRate"]),
        "description": _text(record.get("description")),
    }
    return row, []


async def prepare_property(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    """
    Build a Property row.

    - Enums are canonicalized, price becomes a 2-place Decimal.
    - Images resolve concurrently; unresolved ones are dropped with a warning.
    - An unresolved `video.thumbnail` is nulled with a warning.
    - Approval follows the uploader's authority (see `can_auto_approve`).
    """
    warnings: List[ImageWarning] = []
    title = _text(record.get("title"))

    raw_images = ensure_list(record.get("images"))
    images = []
    for original, resolved in zip(raw_images, await resolve_many(ctx.images, raw_images)):
        if resolved is None:
            warnings.append(_warning(title, "images", _image_ref(original)))
        else:
            images.append(resolved)

    video = _dict_or_none(record.get("video"))
    if video and not is_blank(video.get("thumbnail")):
        video = {**video, "thumbnail": await _resolve_single(ctx, video["thumbnail"], title, "video.thumbnail", warnings)}

    user = ctx.current_user
    user_id = ctx.user_id
    auto_approved = can_auto_approve(user.role, user.hierarchy, user.permissions)

    location = dict(_dict_or_none(record.get("location")) or {})
    location.setdefault("country", "Egypt")

    row = {
        "property_id": uuid4(),
        "title": title,
        "description": _text(record.get("description")),
        "type": _enum_value(PROPERTY_TYPES, record.get("type"), PropertyType.APARTMENT),
        "status": _enum_value(PROPERTY_STATUSES, record.get("status"), PropertyStatus.FOR_SALE),
        "developer_status": _enum_value(DEVELOPER_STATUSES, record.get("developerStatus")),
        "price": to_decimal_or_none(record.get("price")),
        "currency": _enum_value(CURRENCIES, record.get("currency"), Currency.EGP),
        "developer_id": refs.get("developer"),
        "governorate_id": refs.get("governorate_ref"),
        "city_id": refs.get("city_ref"),
        "area_id": refs.get("area_ref"),
        "use_new_location_structure": any(
            not is_blank(record.get(key)) for key in ("governorate_ref", "city_ref", "area_ref")
        ),
        "location": location,
        "specifications": _dict_or_none(record.get("specifications")) or {},
        "images": images,
        "features": _str_list(record.get("features")),
        "amenities": _str_list(record.get("amenities")),
        "video": video,
        "virtual_tour": _dict_or_none(record.get("virtualTour")),
        "floor_plan": _dict_or_none(record.get("floorPlan")),
        "master_plan": _dict_or_none(record.get("masterPlan")),
        "nearby_facilities": record.get("nearbyFacilities") if isinstance(record.get("nearbyFacilities"), (list, dict)) else None,
        "investment": _dict_or_none(record.get("investment")),
        "documents": record.get("documents") if isinstance(record.get("documents"), list) else None,
        "is_featured": _flag(record, "isFeatured"),
        "is_active": _flag(record, "isActive", True),
        "approval_status": (ApprovalStatus.APPROVED if auto_approved else ApprovalStatus.PENDING).value,
        "created_by_id": refs.get("createdBy") or user_id,
        "submitted_by_id": user_id,
        "approved_by_id": user_id if auto_approved else None,
        "approval_date": datetime.utcnow() if auto_approved else None,
    }
    return row, warnings


async def prepare_lead(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    budget = _dict_or_none(record.get("budget"))
    if budget is not None:
        budget = {
            "min": budget.get("min"),
            "max": budget.get("max"),
            "currency": _enum_value(CURRENCIES, budget.get("currency"), Currency.EGP),
        }

    notes = record.get("notes")
    if isinstance(notes, str):
        notes = [{"content": notes.strip()}] if notes.strip() else None
    elif not isinstance(notes, list):
        notes = None

    row = {
        "lead_id": uuid4(),
        "name": _text(record.get("name")),
        "email": record["email"].strip().lower(),
        "phone": _text(record.get("phone")),
        "required_service": _enum_value(LEAD_SERVICES, record.get("requiredService")),
        "property_type": _enum_value(PROPERTY_TYPES, record.get("propertyType")),
        "purpose": _enum_value(LEAD_PURPOSES, record.get("purpose")),
        "budget": budget,
        "preferred_location": _str_list(record.get("preferredLocation")),
        "location": _text(record.get("location")),
        "timeline": _enum_value(LEAD_TIMELINES, record.get("timeline"), LeadTimeline.FLEXIBLE),
        "status": _enum_value(LEAD_STATUSES, record.get("status"), LeadStatus.NEW),
        "priority": _enum_value(LEAD_PRIORITIES, record.get("priority"), LeadPriority.MEDIUM),
        "source": _enum_value(LEAD_SOURCES, record.get("source"), LeadSource.LANDING_PAGE),
        "notes": notes,
        "assigned_to_id": refs.get("assignedTo"),
        "follow_up_date": parse_datetime(record.get("followUpDate")),
        "last_contact_date": parse_datetime(record.get("lastContactDate")),
        "is_read": _flag(record, "isRead"),
        "is_archived": _flag(record, "isArchived"),
        "archived_at": parse_datetime(record.get("archivedAt")),
    }
    return row, []


async def prepare_launch(record: Dict[str, Any], refs: Dict[str, Any], ctx: TransformContext) -> Prepared:
    warnings: List[ImageWarning] = []
    title = _text(record.get("title"))

    image = await _resolve_single(ctx, record.get("image"), title, "image", warnings)

    images = []
    for reference in ensure_list(record.get("images")):
        url = await _resolve_single(ctx, _image_ref(reference), title, "images", warnings)
        if url:
            images.append(url)

    user_id = ctx.user_id
    row = {
        "launch_id": uuid4(),
        "title": title,
        "developer": _text(record.get("developer")),
        "description": _text(record.get("description")),
        "content": _text(record.get("content")),
        "image": image,
        "images": images,
        "location": _text(record.get("location")),
        "property_type": _enum_value(LAUNCH_PROPERTY_TYPES, record.get("propertyType"), LaunchPropertyType.APARTMENT),
        "status": _enum_value(LAUNCH_STATUSES, record.get("status"), LaunchStatus.AVAILABLE),
        "starting_price": to_decimal_or_none(record.get("startingPrice")),
        "currency": _enum_value(LAUNCH_CURRENCIES, record.get("currency"), LaunchCurrency.EGP),
        "launch_date": parse_datetime(record.get("launchDate")) or datetime.utcnow(),
        "completion_date": parse_datetime(record.get("completionDate")),
        "area": float(record["area"]),
        "area_unit": _enum_value(AREA_UNITS, record.get("areaUnit"), AreaUnit.SQM),
        "bedrooms": _int_or_none(record.get("bedrooms")),
        "bathrooms": _int_or_none(record.get("bathrooms")),
        "features": _str_list(record.get("features")),
        "amenities": _str_list(record.get("amenities")),
        "is_featured": _flag(record, "isFeatured"),
        "is_active": _flag(record, "isActive", True),
        "contact_info": _dict_or_none(record.get("contactInfo")),
        "coordinates": _dict_or_none(record.get("coordinates")),
        "nearby_facilities": record.get("nearbyFacilities") if isinstance(record.get("nearbyFacilities"), (list, dict)) else None,
        "payment_plans": record.get("paymentPlans") if isinstance(record.get("paymentPlans"), list) else None,
        "created_by_id": refs.get("createdBy") or user_id,
        "updated_by_id": refs.get("updatedBy") or refs.get("createdBy") or user_id,
    }
    return row, warnings


TRANSFORMERS = {
    "users": prepare_user,
    "developers": prepare_developer,
    "governorates": prepare_governorate,
    "cities": prepare_city,
    "areas": prepare_area,
    "properties": prepare_property,
    "leads": prepare_lead,
    "launches": prepare_launch,
}
