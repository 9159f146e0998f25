import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cekspek import catalog
from cekspek.config import ADMIN_TOKEN
from cekspek.database import build_engine, build_sessionmaker, get_session, init_db
from cekspek.schemas import BrandInput, PhoneInput, validate


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


async def add_brand(session, name, **extra):
    return await catalog.create_brand(session, validate(BrandInput, {"name": name, **extra}))


async def add_phone(session, brand, name, **columns):
    return await catalog.create_phone(
        session, validate(PhoneInput, {"brand_id": brand.id, "name": name, **columns})
    )


@pytest_asyncio.fixture
async def seeded(session):
    """Two brands, three phones, no reviews."""
    samsung = await add_brand(session, "Samsung", country="Korea Selatan")
    xiaomi = await add_brand(session, "Xiaomi")
    a55 = await add_phone(
        session, samsung, "Galaxy A55 5G",
        price_min=5999000, chipset="Exynos 1480", ram="8 GB", nfc=True, battery_capacity=5000,
    )
    s24 = await add_phone(
        session, samsung, "Galaxy S24", price_min=13999000, chipset="Exynos 2400", is_featured=True,
    )
    redmi = await add_phone(session, xiaomi, "Redmi Note 13", chipset="Helio G99")
    return {"samsung": samsung, "xiaomi": xiaomi, "a55": a55, "s24": s24, "redmi": redmi}


@pytest_asyncio.fixture
async def client(sessionmaker):
    from cekspek.api.main import app

    async def override_session():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}
