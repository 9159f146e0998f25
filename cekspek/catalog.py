"""
Catalog operations against the relational store.

Every function takes the session it works in; nothing here builds its own
engine or session, so the API, the bot and the tests each inject theirs.
"""
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from cekspek.config import SEARCH_LIMIT
from cekspek.errors import NotFoundError, ReferentialIntegrityViolation, StoreError, ValidationError
from cekspek.models import Brand, Phone, Review
from cekspek.ratings import averages_by_phone
from cekspek.schemas import BrandInput, PhoneInput, PhoneSummary, ReviewInput
from cekspek.search import is_searchable

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors(session: AsyncSession):
    """Roll back and surface the driver's message as StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        await session.rollback()
        message = str(getattr(e, "orig", None) or e)
        logger.error(f"Store error: {message}")
        raise StoreError(message) from e


async def commit(session: AsyncSession):
    async with store_errors(session):
        await session.commit()


async def execute(session: AsyncSession, stmt):
    async with store_errors(session):
        return await session.execute(stmt)


async def load(session: AsyncSession, model, ident, **kwargs):
    async with store_errors(session):
        return await session.get(model, ident, **kwargs)


async def refresh(session: AsyncSession, instance, attribute_names=None):
    async with store_errors(session):
        await session.refresh(instance, attribute_names)


# ========================
# Brands
# ========================

async def list_brands(session: AsyncSession) -> List[Tuple[Brand, int]]:
    """All brands ordered by name, each with its phone count."""
    result = await execute(
        session,
        select(Brand, func.count(Phone.id))
        .outerjoin(Phone, Phone.brand_id == Brand.id)
        .group_by(Brand.id)
        .order_by(Brand.name)
    )
    return [(brand, count) for brand, count in result.all()]


async def get_brand(session: AsyncSession, brand_id: int) -> Brand:
    brand = await load(session, Brand, brand_id)
    if not brand:
        raise NotFoundError("Brand tidak ditemukan")
    return brand


async def find_brand_by_name(session: AsyncSession, name: str) -> Optional[Brand]:
    result = await execute(
        session,
        select(Brand).where(func.lower(Brand.name) == name.strip().lower())
    )
    return result.scalar_one_or_none()


async def _ensure_unique_name(session: AsyncSession, name: str, exclude_id: Optional[int] = None):
    stmt = select(Brand.id).where(func.lower(Brand.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Brand.id != exclude_id)
    existing = await execute(session, stmt)
    if existing.first():
        raise ValidationError(f"Brand '{name}' sudah ada")


async def create_brand(session: AsyncSession, data: BrandInput) -> Brand:
    await _ensure_unique_name(session, data.name)
    brand = Brand(**data.model_dump())
    session.add(brand)
    await commit(session)
    logger.info(f"Brand created: {brand.name} (ID: {brand.id})")
    return brand


async def update_brand(session: AsyncSession, brand_id: int, data: BrandInput) -> Brand:
    brand = await get_brand(session, brand_id)
    await _ensure_unique_name(session, data.name, exclude_id=brand_id)
    for key, value in data.model_dump().items():
        setattr(brand, key, value)
    await commit(session)
    return brand


async def count_brand_phones(session: AsyncSession, brand_id: int) -> int:
    result = await execute(session, select(func.count(Phone.id)).where(Phone.brand_id == brand_id))
    return result.scalar()


async def delete_brand(session: AsyncSession, brand_id: int) -> str:
    """Delete a brand that no phone references; returns its name."""
    brand = await get_brand(session, brand_id)
    phone_count = await count_brand_phones(session, brand_id)
    if phone_count > 0:
        logger.warning(f"Refusing to delete brand {brand.name}: {phone_count} phones")
        raise ReferentialIntegrityViolation(
            f'Tidak bisa menghapus "{brand.name}" karena masih ada {phone_count} smartphone terkait.'
        )
    name = brand.name
    await session.delete(brand)
    await commit(session)
    logger.info(f"Brand deleted: {name} (ID: {brand_id})")
    return name


# ========================
# Phones
# ========================

async def list_phones(
        session: AsyncSession,
        brand_slug: Optional[str] = None,
        featured: Optional[bool] = None,
        order: str = "newest",
        limit: Optional[int] = None,
) -> List[Phone]:
    stmt = select(Phone).options(joinedload(Phone.brand))
    if brand_slug:
        stmt = stmt.join(Brand, Phone.brand_id == Brand.id).where(Brand.slug == brand_slug)
    if featured is not None:
        stmt = stmt.where(Phone.is_featured == featured)
    if order == "name":
        stmt = stmt.order_by(func.lower(Phone.name), Phone.name)
    else:
        stmt = stmt.order_by(Phone.created_at.desc(), Phone.id.desc())
    if limit:
        stmt = stmt.limit(limit)
    result = await execute(session, stmt)
    return list(result.scalars().all())


async def get_phone(session: AsyncSession, phone_id: int) -> Phone:
    phone = await load(session, Phone, phone_id, options=[joinedload(Phone.brand)])
    if not phone:
        raise NotFoundError("Smartphone tidak ditemukan")
    return phone


async def get_phone_by_slug(session: AsyncSession, slug: str) -> Phone:
    result = await execute(
        session,
        select(Phone).options(joinedload(Phone.brand)).where(Phone.slug == slug)
    )
    phone = result.scalar_one_or_none()
    if not phone:
        raise NotFoundError("Smartphone tidak ditemukan")
    return phone


async def find_phone_by_name(session: AsyncSession, name: str) -> Optional[Phone]:
    result = await execute(
        session,
        select(Phone)
        .options(joinedload(Phone.brand))
        .where(func.lower(Phone.name) == name.strip().lower())
        .order_by(Phone.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_phones(session: AsyncSession, phone_ids: Sequence[int]) -> List[Phone]:
    """Phones in the order of ``phone_ids``."""
    result = await execute(
        session,
        select(Phone).options(joinedload(Phone.brand)).where(Phone.id.in_(phone_ids))
    )
    by_id = {phone.id: phone for phone in result.scalars().all()}
    missing = [phone_id for phone_id in phone_ids if phone_id not in by_id]
    if missing:
        raise NotFoundError(f"Smartphone tidak ditemukan: {', '.join(map(str, missing))}")
    return [by_id[phone_id] for phone_id in phone_ids]


async def create_phone(session: AsyncSession, data: PhoneInput) -> Phone:
    await get_brand(session, data.brand_id)
    phone = Phone(**data.to_columns())
    session.add(phone)
    await commit(session)
    await refresh(session, phone, ["brand"])
    return phone


async def update_phone(session: AsyncSession, phone_id: int, data: PhoneInput) -> Phone:
    phone = await get_phone(session, phone_id)
    if data.brand_id != phone.brand_id:
        await get_brand(session, data.brand_id)
    for key, value in data.to_columns().items():
        setattr(phone, key, value)
    await commit(session)
    await refresh(session, phone, ["brand"])
    return phone


async def delete_phone(session: AsyncSession, phone_id: int) -> str:
    """Delete a phone together with its reviews; returns its name."""
    phone = await get_phone(session, phone_id)
    name = phone.name
    await session.delete(phone)
    await commit(session)
    logger.info(f"Phone deleted: {name} (ID: {phone_id})")
    return name


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_phones(session: AsyncSession, query: str, limit: int = SEARCH_LIMIT) -> List[PhoneSummary]:
    # Short queries never reach the store
    if not is_searchable(query):
        return []
    pattern = f"%{_escape_like(query.strip())}%"
    result = await execute(
        session,
        select(Phone)
        .options(joinedload(Phone.brand))
        .where(or_(Phone.name.ilike(pattern, escape="\\"), Phone.chipset.ilike(pattern, escape="\\")))
        .order_by(func.lower(Phone.name), Phone.name)
        .limit(limit)
    )
    return [PhoneSummary.from_phone(phone) for phone in result.scalars().all()]


# ========================
# Reviews
# ========================

async def list_reviews(session: AsyncSession, phone_id: Optional[int] = None) -> List[Review]:
    stmt = (
        select(Review)
        .options(joinedload(Review.phone).joinedload(Phone.brand))
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    if phone_id is not None:
        stmt = stmt.where(Review.phone_id == phone_id)
    result = await execute(session, stmt)
    return list(result.scalars().all())


async def count_phone_reviews(session: AsyncSession, phone_id: int) -> int:
    result = await execute(session, select(func.count(Review.id)).where(Review.phone_id == phone_id))
    return result.scalar()


async def add_review(session: AsyncSession, phone_id: int, data: ReviewInput) -> Review:
    await get_phone(session, phone_id)
    review = Review(phone_id=phone_id, **data.model_dump())
    session.add(review)
    await commit(session)
    logger.info(f"Review added for phone {phone_id}: {review.rating}/5")
    return review


async def delete_review(session: AsyncSession, review_id: int):
    review = await load(session, Review, review_id)
    if not review:
        raise NotFoundError("Review tidak ditemukan")
    await session.delete(review)
    await commit(session)


async def rating_averages(session: AsyncSession, phone_ids: Optional[Sequence[int]] = None) -> Dict[int, float]:
    stmt = select(Review.phone_id, Review.rating)
    if phone_ids is not None:
        stmt = stmt.where(Review.phone_id.in_(phone_ids))
    result = await execute(session, stmt)
    return averages_by_phone(
        {"phone_id": phone_id, "rating": rating} for phone_id, rating in result.all()
    )


async def dashboard_counts(session: AsyncSession) -> Dict[str, int]:
    counts = {}
    for key, model in (("phones", Phone), ("brands", Brand), ("reviews", Review)):
        result = await execute(session, select(func.count()).select_from(model))
        counts[key] = result.scalar()
    return counts
