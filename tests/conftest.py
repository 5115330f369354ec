import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core.database import Base, build_engine
from app.core.deps import get_db
from app.core.startup import import_models
from app.main import app
from app.models.enums import Role
from app.models.provider import CarProvider
from app.models.rental import Rental
from app.models.service import RentalService
from app.models.transaction import Transaction
from app.models.user import User
from app.models.vehicle import Vehicle

import_models()


@pytest.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class Factory:
    """Seeds collaborator rows directly; rentals and credits go through the API."""

    def __init__(self, session_maker):
        self.session_maker = session_maker

    async def _save(self, obj):
        async with self.session_maker() as session:
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
        return obj

    async def user(self, role: Role = Role.user, tier: int = 0, name: str = "Test User") -> User:
        return await self._save(
            User(
                id=uuid.uuid4(),
                name=name,
                email=f"{uuid.uuid4().hex[:10]}@example.com",
                role=role.value,
                tier=tier,
                total_spend=0,
                credits=0,
            )
        )

    async def admin(self) -> User:
        return await self.user(role=Role.admin, name="Admin")

    async def provider(self, complete_rent: int = 0, verified: bool = False) -> CarProvider:
        return await self._save(
            CarProvider(
                id=uuid.uuid4(),
                name="Fast Cars",
                email=f"{uuid.uuid4().hex[:10]}@provider.com",
                credits=0,
                complete_rent=complete_rent,
                verified=verified,
            )
        )

    async def vehicle(self, provider: CarProvider, tier: int = 0, available: bool = True, type: str = "sedan") -> Vehicle:
        return await self._save(
            Vehicle(
                id=uuid.uuid4(),
                provider_id=provider.id,
                license_plate=uuid.uuid4().hex[:8].upper(),
                brand="Toyota",
                model="Camry",
                type=type,
                daily_rate=100,
                tier=tier,
                available=available,
            )
        )

    async def service(self, rate: float, daily: bool, name: str | None = None, available: bool = True) -> RentalService:
        return await self._save(
            RentalService(
                id=uuid.uuid4(),
                name=name or f"service-{uuid.uuid4().hex[:6]}",
                rate=rate,
                daily=daily,
                available=available,
            )
        )

    async def get(self, model, obj_id):
        async with self.session_maker() as session:
            return await session.get(model, uuid.UUID(str(obj_id)))

    async def transactions_for_user(self, user_id) -> list:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Transaction).where(Transaction.user_id == user_id).order_by(Transaction.created_at)
            )
            return list(result.scalars().all())

    async def rentals_for_vehicle(self, vehicle_id) -> list:
        async with self.session_maker() as session:
            result = await session.execute(select(Rental).where(Rental.vehicle_id == vehicle_id))
            return list(result.scalars().all())


@pytest.fixture
def factory(session_maker):
    return Factory(session_maker)
