import logging
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cekspek import catalog
from cekspek.api.admin import router as admin_router
from cekspek.api.serializers import brand_to_dict, phone_to_dict, review_to_dict, to_plain
from cekspek.compare import MAX_PHONES, MIN_PHONES, compare
from cekspek.config import LOG_LEVEL
from cekspek.database import get_session, init_db
from cekspek.errors import (
    CatalogError, NotFoundError, ReferentialIntegrityViolation, StoreError, ValidationError,
)
from cekspek.ratings import summarize
from cekspek.schemas import ReviewInput, validate

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="CekSpek.id API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router)

ERROR_STATUS = (
    (NotFoundError, 404),
    (ReferentialIntegrityViolation, 409),
    (ValidationError, 400),
    (StoreError, 500),
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    if status >= 500:
        logger.error(f"Database error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    message = str(getattr(exc, "orig", None) or exc)
    logger.error(f"Database error on {request.url.path}: {message}")
    return JSONResponse(status_code=500, content={"detail": message})


@app.on_event("startup")
async def startup():
    await init_db()
    logger.info("API started")


@app.get("/api/health")
def health():
    return {"ok": True}


@app.get("/api/brands")
async def get_brands(session: AsyncSession = Depends(get_session)):
    brands = await catalog.list_brands(session)
    return [brand_to_dict(brand, count) for brand, count in brands]


@app.get("/api/phones")
async def get_phones(
        brand: Optional[str] = None,
        featured: Optional[bool] = None,
        sort: str = "newest",
        session: AsyncSession = Depends(get_session),
):
    phones = await catalog.list_phones(session, brand_slug=brand, featured=featured, order=sort)
    return [phone_to_dict(p) for p in phones]


@app.get("/api/phones/{slug}")
async def phone_detail(slug: str, session: AsyncSession = Depends(get_session)):
    phone = await catalog.get_phone_by_slug(session, slug)
    reviews = await catalog.list_reviews(session, phone_id=phone.id)
    return {
        "phone": phone_to_dict(phone),
        "reviews": [review_to_dict(r) for r in reviews],
        "rating": to_plain(summarize(reviews)),
    }


@app.post("/api/phones/{slug}/reviews", status_code=201)
async def submit_review(
        slug: str,
        payload: Dict[str, Any] = Body(...),
        session: AsyncSession = Depends(get_session),
):
    data = validate(ReviewInput, payload)
    phone = await catalog.get_phone_by_slug(session, slug)
    review = await catalog.add_review(session, phone.id, data)
    return review_to_dict(review)


@app.get("/api/search")
async def search(q: str = "", session: AsyncSession = Depends(get_session)):
    results = await catalog.search_phones(session, q)
    return [r.model_dump() for r in results]


@app.get("/api/compare")
async def compare_phones(ids: List[int] = Query(default=[]), session: AsyncSession = Depends(get_session)):
    if not MIN_PHONES <= len(ids) <= MAX_PHONES:
        raise ValidationError(f"Pilih {MIN_PHONES}-{MAX_PHONES} smartphone untuk dibandingkan")
    if len(set(ids)) != len(ids):
        raise ValidationError("Smartphone yang sama tidak bisa dibandingkan dua kali")
    phones = await catalog.get_phones(session, ids)
    ratings = await catalog.rating_averages(session, ids)
    return {
        "phones": [
            {
                "id": p.id,
                "name": p.name,
                "slug": p.slug,
                "image_url": p.image_url,
                "brand_name": p.brand.name if p.brand else None,
            }
            for p in phones
        ],
        "sections": [to_plain(section) for section in compare(phones, ratings)],
    }


if __name__ == "__main__":
    import os

    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
