import json
from types import SimpleNamespace

import pytest
from sqlalchemy import text

from cekspek import catalog
from cekspek.errors import ParseError, RowError
from cekspek.importer import SAMPLE_ROW, brand_index, build_row, import_phones, parse_batch


@pytest.mark.parametrize("raw, message", [
    ("{not json", "JSON tidak valid"),
    ('{"name": "X"}', "Data harus berupa array []"),
    ("[]", "Array tidak boleh kosong"),
    ('[{"brand": "Samsung"}]', 'Item 1: "name" wajib diisi'),
    ('[{"name": "A", "brand": "Samsung"}, {"name": "B"}]', 'Item 2: "brand" wajib diisi'),
    ('[1, 2]', "Item 1: harus berupa object"),
    ('[{"name": "   ", "brand": "Samsung"}]', 'Item 1: "name" wajib diisi'),
    ('[{"name": "A", "brand": "Samsung"}, {"name": "B", "brand": " "}]', 'Item 2: "brand" wajib diisi'),
])
def test_parse_batch_rejects_whole_batch(raw, message):
    with pytest.raises(ParseError) as exc:
        parse_batch(raw)
    assert exc.value.message == message


def test_parse_batch_accepts_bytes_and_decoded():
    assert parse_batch(b'[{"name": "A", "brand": "B"}]') == [{"name": "A", "brand": "B"}]
    assert parse_batch([{"name": "A", "brand": "B"}]) == [{"name": "A", "brand": "B"}]


def test_sample_row_is_importable():
    assert parse_batch(json.dumps([SAMPLE_ROW])) == [SAMPLE_ROW]
    row = build_row(SAMPLE_ROW, {"samsung": 7})
    assert row.brand_id == 7
    assert row.slug == "galaxy-a55-5g"


def test_build_row_brand_is_case_insensitive():
    assert build_row({"name": "Redmi 13", "brand": "XIAOMI"}, {"xiaomi": 2}).brand_id == 2


def test_build_row_ignores_given_slug():
    assert build_row({"name": "Redmi 13", "brand": "Xiaomi", "slug": "custom"}, {"xiaomi": 2}).slug == "redmi-13"


def test_build_row_unknown_brand():
    with pytest.raises(RowError) as exc:
        build_row({"name": "Find X7", "brand": "Oppo"}, {"xiaomi": 2})
    assert exc.value.message == '"Find X7": Brand "Oppo" tidak ditemukan'


async def test_import_isolates_failing_rows(session, seeded):
    brands = [brand for brand, _ in await catalog.list_brands(session)]
    items = parse_batch(json.dumps([
        {"name": "Galaxy A35", "brand": "samsung", "price_min": 4999000, "nfc": True},
        {"name": "Find X7", "brand": "Oppo"},
        {"name": "Galaxy S24", "brand": "Samsung"},
        {"name": "Redmi 13", "brand": "Xiaomi", "display_size": "lebar"},
        {"name": "Xiaomi 14T", "brand": "Xiaomi", "battery_capacity": 5000},
    ]))

    result = await import_phones(session, items, brands)

    assert result.success == 2
    assert result.failed == 3
    assert result.errors[0] == '"Find X7": Brand "Oppo" tidak ditemukan'
    assert result.errors[1].startswith('"Galaxy S24": ')
    assert result.errors[2].startswith('"Redmi 13": display_size')

    a35 = await catalog.get_phone_by_slug(session, "galaxy-a35")
    assert a35.brand.name == "Samsung"
    assert a35.nfc is True
    assert (await catalog.get_phone_by_slug(session, "xiaomi-14t")).battery_capacity == 5000
    assert (await catalog.dashboard_counts(session))["phones"] == 5


def test_brand_index():
    class B:
        def __init__(self, id, name):
            self.id, self.name = id, name

    assert brand_index([B(1, "Samsung"), B(2, "POCO")]) == {"samsung": 1, "poco": 2}


async def test_unknown_brand_row(session):
    result = await import_phones(session, parse_batch('[{"name": "X", "brand": "Unknown"}]'), [])
    assert (result.success, result.failed) == (0, 1)
    assert result.errors == ['"X": Brand "Unknown" tidak ditemukan']


async def test_store_read_failure_is_row_error(engine, session):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE brands"))
    brands = [SimpleNamespace(id=1, name="Samsung")]
    items = parse_batch('[{"name": "A", "brand": "Samsung"}, {"name": "B", "brand": "Samsung"}]')

    result = await import_phones(session, items, brands)

    assert (result.success, result.failed) == (0, 2)
    assert result.errors[0].startswith('"A": no such table: brands')
    assert result.errors[1].startswith('"B": ')
