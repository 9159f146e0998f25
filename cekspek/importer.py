"""
Bulk import of phones from a JSON array.

Two phases. ``parse_batch`` rejects the whole batch (ParseError) before
anything is written. ``import_phones`` then persists row by row, each row in
its own transaction; a failing row is recorded and the batch carries on.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from sqlalchemy.ext.asyncio import AsyncSession

from cekspek import catalog
from cekspek.errors import NotFoundError, ParseError, RowError, StoreError, ValidationError
from cekspek.schemas import PhoneInput, validate

logger = logging.getLogger(__name__)

SAMPLE_ROW = {
    "brand": "Samsung",
    "name": "Galaxy A55 5G",
    "price_min": 5999000,
    "price_max": 6499000,
    "release_date": "2024-03-11",
    "display_size": 6.6,
    "display_type": "Super AMOLED",
    "display_refresh_rate": 120,
    "chipset": "Exynos 1480",
    "ram": "8 GB / 12 GB",
    "storage": "128GB / 256GB",
    "antutu_score": 621000,
    "camera_main": "50 MP (wide) + 12 MP (ultrawide) + 5 MP (macro)",
    "camera_front": "32 MP",
    "battery_capacity": 5000,
    "battery_charging": "25W wired",
    "network": "5G",
    "nfc": True,
    "audio_jack": False,
    "body_weight": 213,
    "face_unlock": True,
    "os": "Android 14",
    "ui": "One UI 6.1",
    "is_featured": False,
}


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def parse_batch(raw: Any) -> List[Dict[str, Any]]:
    """Decode and check a batch; accepts JSON text or an already-decoded value."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ParseError("JSON tidak valid") from e

    if not isinstance(raw, list):
        raise ParseError("Data harus berupa array []")
    if not raw:
        raise ParseError("Array tidak boleh kosong")

    for index, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise ParseError(f"Item {index}: harus berupa object")
        for key in ("name", "brand"):
            value = item.get(key)
            if not value or (isinstance(value, str) and not value.strip()):
                raise ParseError(f'Item {index}: "{key}" wajib diisi')
    return raw


def brand_index(brands: Iterable[Any]) -> Dict[str, int]:
    """Lowercased brand name -> brand id."""
    return {brand.name.lower(): brand.id for brand in brands}


def build_row(item: Dict[str, Any], brand_ids: Dict[str, int]) -> PhoneInput:
    name = str(item["name"])
    brand_name = str(item["brand"])
    brand_id = brand_ids.get(brand_name.lower())
    if brand_id is None:
        raise RowError(name, f'Brand "{brand_name}" tidak ditemukan')

    # The importer always derives the slug from the name
    columns = {key: value for key, value in item.items() if key not in ("brand", "slug")}
    columns["brand_id"] = brand_id
    try:
        return validate(PhoneInput, columns)
    except ValidationError as e:
        raise RowError(name, e.message) from e


async def import_phones(session: AsyncSession, items: List[Dict[str, Any]], brands: Iterable[Any]) -> ImportResult:
    brand_ids = brand_index(brands)
    result = ImportResult()

    for item in items:
        try:
            row = build_row(item, brand_ids)
            try:
                await catalog.create_phone(session, row)
            except (StoreError, NotFoundError) as e:
                raise RowError(str(item["name"]), e.message) from e
        except RowError as e:
            result.failed += 1
            result.errors.append(e.message)
            continue
        result.success += 1

    logger.info(f"Import finished: {result.success} ok, {result.failed} failed")
    return result
