import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import ID_PATTERN
from app.models import Governorate, City, Area, Developer, User
from app.utils.text import normalize_name_for_matching, slugify, unique_slug

logger = logging.getLogger(__name__)

CANDIDATE_LIMIT = 50


@dataclass(frozen=True)
class EntitySpec:
    model: Any
    pk: str
    label: str
    parent: Optional[str] = None
    slug: Callable[[Any], str] = slugify
    defaults: Dict[str, Any] = field(default_factory=dict)


ENTITY_SPECS: Dict[str, EntitySpec] = {
    "developer": EntitySpec(Developer, "developer_id", "Developer"),
    "governorate": EntitySpec(
        Governorate, "governorate_id", "Governorate",
        defaults={"annual_appreciation_rate": 0},
    ),
    "city": EntitySpec(
        City, "city_id", "City", parent="governorate_id", slug=unique_slug,
        defaults={"annual_appreciation_rate": 0},
    ),
    "area": EntitySpec(
        Area, "area_id", "Area", parent="city_id", slug=unique_slug,
        defaults={"annual_appreciation_rate": 0},
    ),
}


@dataclass
class ResolutionCache:
    """
    Per-request memo of resolved references, one bucket per kind.
    Keys are the lower-cased input; city/area keys also carry the parent scope.
    """
    users: Dict[str, UUID] = field(default_factory=dict)
    developers: Dict[str, UUID] = field(default_factory=dict)
    governorates: Dict[str, UUID] = field(default_factory=dict)
    cities: Dict[str, UUID] = field(default_factory=dict)
    areas: Dict[str, UUID] = field(default_factory=dict)

    def bucket(self, kind: str) -> Dict[str, UUID]:
        return {
            "user": self.users,
            "developer": self.developers,
            "governorate": self.governorates,
            "city": self.cities,
            "area": self.areas,
        }[kind]

    def clear(self) -> None:
        for bucket in (self.users, self.developers, self.governorates, self.cities, self.areas):
            bucket.clear()


def cache_key(value: Any, parent_id: Optional[UUID] = None, scoped: bool = False) -> str:
    key = str(value).strip().lower()
    if scoped:
        key = f"{key}|{parent_id or 'any'}"
    return key


class ReferenceResolver:
    """
    Turns human-supplied references (primary keys, e-mails, free-text names)
    into canonical entity IDs.

    Name resolution is two-phase: exact case-insensitive match first, then a
    bounded `contains(first token)` candidate scan filtered with
    `normalize_name_for_matching`. With `auto_create`, missing governorates,
    cities, areas and developers are created; an area is never created
    without a resolved city. Failures return None instead of raising.
    """

    def __init__(self, db: AsyncSession, cache: Optional[ResolutionCache] = None, id_pattern: str = ID_PATTERN):
        self.db = db
        self.cache = cache if cache is not None else ResolutionCache()
        self._id_regex = re.compile(id_pattern)

    def looks_like_id(self, value: Any) -> bool:
        return isinstance(value, str) and self._id_regex.match(value.strip()) is not None

    async def resolve(
        self,
        kind: str,
        value: Any,
        parent_id: Optional[UUID] = None,
        auto_create: bool = False,
    ) -> Optional[UUID]:
        if kind == "user":
            return await self.resolve_user(value)
        if kind not in ENTITY_SPECS:
            raise ValueError(f"Unknown reference kind: {kind}")
        return await self._resolve_named(kind, value, parent_id, auto_create)

    # --- Users (email or id, never created) ---
    async def resolve_user(self, value: Any) -> Optional[UUID]:
        if not _usable(value):
            return None
        text = str(value).strip()
        if self.looks_like_id(text):
            return await self._get_by_id(User, "user_id", text)

        key = cache_key(text)
        if key in self.cache.users:
            return self.cache.users[key]

        result = await self.db.execute(
            select(User.user_id).where(func.lower(User.email) == text.lower())
        )
        user_id = result.scalars().first()
        if user_id is not None:
            self.cache.users[key] = user_id
        return user_id

    async def resolve_developer(self, value: Any, auto_create: bool = False) -> Optional[UUID]:
        return await self._resolve_named("developer", value, None, auto_create)

    async def resolve_governorate(self, value: Any, auto_create: bool = False) -> Optional[UUID]:
        return await self._resolve_named("governorate", value, None, auto_create)

    async def resolve_city(self, value: Any, governorate_id: Optional[UUID] = None, auto_create: bool = False) -> Optional[UUID]:
        return await self._resolve_named("city", value, governorate_id, auto_create)

    async def resolve_area(self, value: Any, city_id: Optional[UUID] = None, auto_create: bool = False) -> Optional[UUID]:
        return await self._resolve_named("area", value, city_id, auto_create)

    async def resolve_record(self, record: Dict[str, Any], kind: str, auto_create: bool = False) -> Dict[str, Optional[UUID]]:
        """
        Resolve every reference a raw record declares.
        Keys of the result mirror the input fields (`governorate_ref`, `city_ref`, ...).
        """
        resolved: Dict[str, Optional[UUID]] = {}

        # Launch developers are free text; only properties link a Developer row
        if kind == "property" and _usable(record.get("developer")):
            resolved["developer"] = await self.resolve_developer(record["developer"], auto_create)

        for user_field in ("createdBy", "updatedBy", "assignedTo"):
            if _usable(record.get(user_field)):
                resolved[user_field] = await self.resolve_user(record[user_field])

        governorate_input = record.get("governorate") or record.get("governorate_ref")
        if _usable(governorate_input):
            resolved["governorate_ref"] = await self.resolve_governorate(governorate_input, auto_create)

        city_input = record.get("city") or record.get("city_ref")
        if _usable(city_input):
            resolved["city_ref"] = await self.resolve_city(
                city_input, resolved.get("governorate_ref"), auto_create
            )

        if _usable(record.get("area_ref")):
            resolved["area_ref"] = await self.resolve_area(
                record["area_ref"], resolved.get("city_ref"), auto_create
            )

        return resolved

    # --- Internals ---
    async def _resolve_named(
        self,
        kind: str,
        value: Any,
        parent_id: Optional[UUID],
        auto_create: bool,
    ) -> Optional[UUID]:
        if not _usable(value):
            return None
        spec = ENTITY_SPECS[kind]
        text = str(value).strip()

        if self.looks_like_id(text):
            return await self._get_by_id(spec.model, spec.pk, text)

        bucket = self.cache.bucket(kind)
        key = cache_key(text, parent_id, scoped=spec.parent is not None)
        if key in bucket:
            return bucket[key]

        # Areas only exist under a city
        if kind == "area" and parent_id is None:
            logger.info(f"Skipping area '{text}': no resolved city")
            return None

        entity = await self.find_by_name(spec, text, parent_id)
        if entity is None and auto_create:
            entity = await self._create(spec, text, parent_id)

        if entity is None:
            return None

        entity_id = getattr(entity, spec.pk)
        bucket[key] = entity_id
        return entity_id

    async def find_by_name(self, spec: EntitySpec, name: str, parent_id: Optional[UUID] = None):
        model = spec.model
        trimmed = name.strip()
        normalized = normalize_name_for_matching(trimmed)

        scope = []
        if spec.parent and parent_id is not None:
            scope.append(getattr(model, spec.parent) == parent_id)

        result = await self.db.execute(
            select(model).where(*scope, func.lower(model.name) == trimmed.lower()).limit(1)
        )
        exact = result.scalars().first()
        if exact is not None:
            return exact

        tokens = trimmed.split()
        search_term = tokens[0] if tokens else trimmed
        result = await self.db.execute(
            select(model)
            .where(*scope, model.name.icontains(search_term, autoescape=True))
            .limit(CANDIDATE_LIMIT)
        )
        for candidate in result.scalars().all():
            if normalize_name_for_matching(candidate.name) == normalized:
                return candidate
        return None

    async def _create(self, spec: EntitySpec, name: str, parent_id: Optional[UUID]):
        values = {
            spec.pk: uuid4(),
            "name": name,
            "slug": spec.slug(name),
            "description": f"{spec.label}: {name}",
            **spec.defaults,
        }
        if spec.parent:
            values[spec.parent] = parent_id

        entity = spec.model(**values)
        self.db.add(entity)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Someone created the same row first (or the slug is taken); look again once
            await self.db.rollback()
            entity = await self.find_by_name(spec, name, parent_id)
            if entity is None:
                logger.error(f"Failed to auto-create {spec.label.lower()} '{name}': {e.orig}")
            return entity

        logger.info(
            f"Auto-created {spec.label.lower()}: {name}"
            + (" (linked to parent)" if spec.parent and parent_id else "")
        )
        return entity

    async def _get_by_id(self, model, pk: str, value: str) -> Optional[UUID]:
        try:
            entity_id = UUID(value)
        except ValueError:
            return None
        result = await self.db.execute(select(getattr(model, pk)).where(getattr(model, pk) == entity_id))
        return result.scalars().first()


def _usable(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, (int, float))
