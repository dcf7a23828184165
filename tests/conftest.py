from typing import Any, List, Optional
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import CurrentUser, get_current_user
from app.db.base_class import Base
from app.db.session import get_db
from app.models import Governorate, City, User
from app.services.image_resolver import ImageResolver, get_image_resolver
from app.services.roles import build_permissions_for_role
from app.utils.text import slugify


class StubImageResolver(ImageResolver):
    """Resolves every reference to a fake CDN URL, except those starting with 'missing'."""

    def __init__(self):
        self.calls: List[Any] = []

    async def resolve_url(self, reference: Any) -> Optional[str]:
        self.calls.append(reference)
        if not isinstance(reference, str) or not reference.strip():
            return None
        reference = reference.strip()
        if reference.startswith(("http://", "https://")):
            return reference
        if reference.startswith("missing"):
            return None
        return f"https://cdn.test/{reference}"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def images():
    return StubImageResolver()


@pytest.fixture
def admin_user():
    return CurrentUser(
        id=str(uuid4()),
        role="admin",
        hierarchy=1,
        permissions=build_permissions_for_role("admin"),
    )


@pytest.fixture
def agent_user():
    return CurrentUser(
        id=str(uuid4()),
        role="sales_agent",
        hierarchy=4,
        permissions=build_permissions_for_role("sales_agent"),
    )


@pytest.fixture
def make_governorate(db):
    async def make(name: str, rate: float = 5.0) -> Governorate:
        governorate = Governorate(governorate_id=uuid4(), name=name, slug=slugify(name), annual_appreciation_rate=rate)
        db.add(governorate)
        await db.commit()
        return governorate
    return make


@pytest.fixture
def make_city(db):
    async def make(name: str, governorate_id=None, rate: float = 5.0) -> City:
        city = City(
            city_id=uuid4(),
            name=name,
            slug=f"{slugify(name)}-{uuid4().hex[:8]}",
            governorate_id=governorate_id,
            annual_appreciation_rate=rate,
        )
        db.add(city)
        await db.commit()
        return city
    return make


@pytest.fixture
def make_user(db):
    async def make(email: str, role: str = "user") -> User:
        user = User(
            user_id=uuid4(),
            name=email.split("@")[0],
            email=email.lower(),
            phone="+201000000000",
            password="not-a-real-hash",
            role=role,
            hierarchy=1 if role == "admin" else 5,
        )
        db.add(user)
        await db.commit()
        return user
    return make


@pytest.fixture
async def client(db, images, admin_user):
    from app.main import app

    async def override_get_db():
        yield db

    async def override_get_image_resolver():
        yield images

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_resolver] = override_get_image_resolver
    app.dependency_overrides[get_current_user] = lambda: admin_user

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
