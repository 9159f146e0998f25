import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cekspek import catalog
from cekspek.api.serializers import brand_to_dict, phone_to_dict, review_to_dict, to_plain
from cekspek.config import ADMIN_TOKEN
from cekspek.database import get_session
from cekspek.importer import import_phones, parse_batch
from cekspek.ratings import summarize
from cekspek.schemas import BrandInput, PhoneInput, validate

logger = logging.getLogger(__name__)


def require_admin(x_admin_token: Optional[str] = Header(None)):
    if not x_admin_token or not secrets.compare_digest(x_admin_token, ADMIN_TOKEN):
        logger.warning("Rejected admin request with missing or invalid token")
        raise HTTPException(status_code=401, detail="Admin only")


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/stats")
async def get_stats(session: AsyncSession = Depends(get_session)):
    return await catalog.dashboard_counts(session)


# ========================
# Brands
# ========================

@router.post("/brands", status_code=201)
async def add_brand(payload: Dict[str, Any] = Body(...), session: AsyncSession = Depends(get_session)):
    brand = await catalog.create_brand(session, validate(BrandInput, payload))
    return brand_to_dict(brand)


@router.put("/brands/{brand_id}")
async def edit_brand(brand_id: int, payload: Dict[str, Any] = Body(...), session: AsyncSession = Depends(get_session)):
    brand = await catalog.update_brand(session, brand_id, validate(BrandInput, payload))
    return brand_to_dict(brand)


@router.delete("/brands/{brand_id}")
async def remove_brand(brand_id: int, session: AsyncSession = Depends(get_session)):
    name = await catalog.delete_brand(session, brand_id)
    return {"deleted": True, "name": name}


# ========================
# Phones
# ========================

@router.post("/phones", status_code=201)
async def add_phone(payload: Dict[str, Any] = Body(...), session: AsyncSession = Depends(get_session)):
    phone = await catalog.create_phone(session, validate(PhoneInput, payload))
    return phone_to_dict(phone)


@router.put("/phones/{phone_id}")
async def edit_phone(phone_id: int, payload: Dict[str, Any] = Body(...), session: AsyncSession = Depends(get_session)):
    phone = await catalog.update_phone(session, phone_id, validate(PhoneInput, payload))
    return phone_to_dict(phone)


@router.delete("/phones/{phone_id}")
async def remove_phone(phone_id: int, session: AsyncSession = Depends(get_session)):
    name = await catalog.delete_phone(session, phone_id)
    return {"deleted": True, "name": name}


# ========================
# Reviews
# ========================

@router.get("/reviews")
async def get_reviews(session: AsyncSession = Depends(get_session)):
    reviews = await catalog.list_reviews(session)
    return {
        "stats": to_plain(summarize(reviews)),
        "reviews": [review_to_dict(r, with_phone=True) for r in reviews],
    }


@router.delete("/reviews/{review_id}")
async def remove_review(review_id: int, session: AsyncSession = Depends(get_session)):
    await catalog.delete_review(session, review_id)
    return {"deleted": True}


# ========================
# Import
# ========================

@router.post("/import")
async def import_json(request: Request, session: AsyncSession = Depends(get_session)):
    """Body is the raw JSON array, as pasted by the admin."""
    items = parse_batch(await request.body())
    brands = [brand for brand, _ in await catalog.list_brands(session)]
    result = await import_phones(session, items, brands)
    return to_plain(result)
