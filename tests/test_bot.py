from types import SimpleNamespace
from unittest.mock import AsyncMock

from cekspek.bot.admin import format_import_result, format_rating_stats, page_from
from cekspek.bot.search import _searches, debouncer_for, inline_search, summary_to_article
from cekspek.importer import ImportResult
from cekspek.schemas import PhoneSummary


def test_page_from_callback_data():
    assert page_from(SimpleNamespace(data="page:brands:2")) == 2
    assert page_from(SimpleNamespace(data="view_brands")) == 0


def test_import_report():
    ok = format_import_result(ImportResult(success=3))
    assert ok.startswith("✅ Import berhasil!")
    assert "Errors" not in ok

    partial = format_import_result(ImportResult(success=1, failed=1, errors=['"X": Brand "Y" tidak ditemukan']))
    assert partial.startswith("⚠️")
    assert '• "X": Brand "Y" tidak ditemukan' in partial


def test_rating_stats_text():
    text = format_rating_stats([{"rating": 5}, {"rating": 3}])
    assert "Total: 2" in text
    assert "Rata-rata: ⭐ 4.0" in text
    assert "5⭐: 1" in text


def test_summary_to_article():
    summary = PhoneSummary(
        id=7, name="Galaxy S24", slug="galaxy-s24", brand_name="Samsung",
        chipset="Exynos 2400", price_min=13999000,
    )
    article = summary_to_article(summary)
    assert article.id == "7"
    assert article.title == "Galaxy S24"
    assert article.description == "Samsung · Exynos 2400 · Rp 13.999.000"
    assert article.input_message_content.message_text.endswith("/phones/galaxy-s24")


def test_one_debouncer_per_user():
    assert debouncer_for(1) is debouncer_for(1)
    assert debouncer_for(1) is not debouncer_for(2)


async def test_inline_search_forgets_idle_user():
    query = SimpleNamespace(from_user=SimpleNamespace(id=4242), query="a", answer=AsyncMock())
    await inline_search(query)
    query.answer.assert_awaited_once_with([], cache_time=5)
    assert 4242 not in _searches
