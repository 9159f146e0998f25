import pytest
from sqlalchemy import text

from cekspek import catalog
from cekspek.errors import NotFoundError, ReferentialIntegrityViolation, StoreError, ValidationError
from cekspek.schemas import BrandInput, PhoneInput, ReviewInput, validate


def review(rating, comment="Performa kencang dan awet"):
    return validate(ReviewInput, {"rating": rating, "comment": comment})


async def test_list_brands_with_counts(session, seeded):
    brands = await catalog.list_brands(session)
    assert [(brand.name, count) for brand, count in brands] == [("Samsung", 2), ("Xiaomi", 1)]


async def test_brand_name_unique_case_insensitive(session, seeded):
    with pytest.raises(ValidationError):
        await catalog.create_brand(session, validate(BrandInput, {"name": "samsung"}))


async def test_brand_with_phones_cannot_be_deleted(session, seeded):
    with pytest.raises(ReferentialIntegrityViolation) as exc:
        await catalog.delete_brand(session, seeded["samsung"].id)
    assert exc.value.message == (
        'Tidak bisa menghapus "Samsung" karena masih ada 2 smartphone terkait.'
    )
    assert await catalog.count_brand_phones(session, seeded["samsung"].id) == 2


async def test_empty_brand_can_be_deleted(session, seeded):
    brand = await catalog.create_brand(session, validate(BrandInput, {"name": "Nothing"}))
    assert await catalog.delete_brand(session, brand.id) == "Nothing"
    with pytest.raises(NotFoundError):
        await catalog.get_brand(session, brand.id)


async def test_list_phones_filters(session, seeded):
    samsung = await catalog.list_phones(session, brand_slug="samsung", order="name")
    assert [p.name for p in samsung] == ["Galaxy A55 5G", "Galaxy S24"]
    featured = await catalog.list_phones(session, featured=True)
    assert [p.name for p in featured] == ["Galaxy S24"]


async def test_phone_lookups(session, seeded):
    phone = await catalog.get_phone_by_slug(session, "galaxy-a55-5g")
    assert phone.brand.name == "Samsung"
    assert (await catalog.find_phone_by_name(session, "redmi note 13")).id == seeded["redmi"].id
    with pytest.raises(NotFoundError):
        await catalog.get_phone_by_slug(session, "nope")


async def test_get_phones_keeps_order(session, seeded):
    ids = [seeded["redmi"].id, seeded["a55"].id]
    assert [p.id for p in await catalog.get_phones(session, ids)] == ids
    with pytest.raises(NotFoundError):
        await catalog.get_phones(session, [seeded["a55"].id, 9999])


async def test_create_phone_unknown_brand(session, seeded):
    with pytest.raises(NotFoundError):
        await catalog.create_phone(session, validate(PhoneInput, {"brand_id": 9999, "name": "Ghost"}))


async def test_duplicate_slug_is_store_error(session, seeded):
    data = validate(PhoneInput, {"brand_id": seeded["xiaomi"].id, "name": "Galaxy S24"})
    with pytest.raises(StoreError):
        await catalog.create_phone(session, data)


async def test_update_phone(session, seeded):
    data = validate(PhoneInput, {
        "brand_id": seeded["xiaomi"].id, "name": "Redmi Note 13 Pro", "price_min": 3999000,
    })
    phone = await catalog.update_phone(session, seeded["redmi"].id, data)
    assert phone.slug == "redmi-note-13-pro"
    assert phone.price_min == 3999000
    assert phone.chipset is None


async def test_delete_phone_removes_its_reviews(session, seeded):
    phone_id = seeded["a55"].id
    await catalog.add_review(session, phone_id, review(5))
    await catalog.add_review(session, phone_id, review(3))
    assert await catalog.count_phone_reviews(session, phone_id) == 2

    assert await catalog.delete_phone(session, phone_id) == "Galaxy A55 5G"
    assert await catalog.list_reviews(session) == []
    with pytest.raises(NotFoundError):
        await catalog.get_phone(session, phone_id)


async def test_review_for_missing_phone(session, seeded):
    with pytest.raises(NotFoundError):
        await catalog.add_review(session, 9999, review(4))


async def test_reviews_and_averages(session, seeded):
    await catalog.add_review(session, seeded["a55"].id, review(5))
    await catalog.add_review(session, seeded["a55"].id, review(4))
    await catalog.add_review(session, seeded["redmi"].id, review(2))

    reviews = await catalog.list_reviews(session, phone_id=seeded["a55"].id)
    assert len(reviews) == 2
    assert reviews[0].reviewer_name == "Anonim"
    averages = await catalog.rating_averages(session, [seeded["a55"].id, seeded["s24"].id])
    assert averages == {seeded["a55"].id: 4.5}


async def test_delete_review(session, seeded):
    created = await catalog.add_review(session, seeded["s24"].id, review(1))
    await catalog.delete_review(session, created.id)
    with pytest.raises(NotFoundError):
        await catalog.delete_review(session, created.id)


async def test_search_phones(session, seeded):
    results = await catalog.search_phones(session, "exynos")
    assert [r.name for r in results] == ["Galaxy A55 5G", "Galaxy S24"]
    assert results[0].brand_name == "Samsung"
    assert await catalog.search_phones(session, "e") == []
    assert await catalog.search_phones(session, "100%") == []


async def test_search_respects_limit(session, seeded):
    assert len(await catalog.search_phones(session, "galaxy", limit=1)) == 1


async def test_dashboard_counts(session, seeded):
    await catalog.add_review(session, seeded["s24"].id, review(5))
    assert await catalog.dashboard_counts(session) == {"phones": 3, "brands": 2, "reviews": 1}


async def test_name_order_ignores_case(session, seeded):
    for name in ("Pixel 8 Pro", "iPhone 15 Pro"):
        await catalog.create_phone(
            session, validate(PhoneInput, {"brand_id": seeded["xiaomi"].id, "name": name})
        )
    results = await catalog.search_phones(session, "pro")
    assert [r.name for r in results] == ["iPhone 15 Pro", "Pixel 8 Pro"]
    phones = await catalog.list_phones(session, order="name")
    assert [p.name for p in phones][:3] == ["Galaxy A55 5G", "Galaxy S24", "iPhone 15 Pro"]


async def test_read_failure_is_store_error(engine, session, seeded):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE reviews"))
    with pytest.raises(StoreError, match="no such table: reviews"):
        await catalog.list_reviews(session)
    with pytest.raises(StoreError):
        await catalog.rating_averages(session, [seeded["a55"].id])
