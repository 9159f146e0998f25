from dataclasses import asdict
from typing import Any, Dict, Optional

from cekspek.models import Brand, Phone, Review


def brand_to_dict(brand: Brand, phone_count: Optional[int] = None) -> Dict[str, Any]:
    data = {
        "id": brand.id,
        "name": brand.name,
        "slug": brand.slug,
        "logo_url": brand.logo_url,
        "country": brand.country,
    }
    if phone_count is not None:
        data["phone_count"] = phone_count
    return data


def phone_to_dict(phone: Phone) -> Dict[str, Any]:
    data = {column.name: getattr(phone, column.name) for column in Phone.__table__.columns}
    data["brand"] = {"name": phone.brand.name, "slug": phone.brand.slug} if phone.brand else None
    return data


def review_to_dict(review: Review, with_phone: bool = False) -> Dict[str, Any]:
    data = {
        "id": review.id,
        "phone_id": review.phone_id,
        "reviewer_name": review.reviewer_name,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": review.created_at,
    }
    if with_phone and review.phone:
        data["phone"] = {
            "id": review.phone.id,
            "name": review.phone.name,
            "slug": review.phone.slug,
            "brand_name": review.phone.brand.name if review.phone.brand else None,
        }
    return data


def to_plain(obj) -> Dict[str, Any]:
    return asdict(obj)
