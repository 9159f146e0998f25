import asyncio

from cekspek.search import DebouncedSearch, filter_phones, is_searchable

PHONES = [
    {"name": "Redmi Note 13", "chipset": "Helio G99"},
    {"name": "Galaxy S24", "chipset": "Exynos 2400"},
    {"name": "Galaxy A55 5G", "chipset": "Exynos 1480"},
    {"name": "POCO F6", "chipset": "Snapdragon 8s Gen 3"},
]


def test_short_queries_are_not_searchable():
    assert not is_searchable("")
    assert not is_searchable(" a ")
    assert is_searchable("s2")


def test_filter_matches_name_or_chipset_sorted():
    assert [p["name"] for p in filter_phones("galaxy", PHONES)] == ["Galaxy A55 5G", "Galaxy S24"]
    assert [p["name"] for p in filter_phones("EXYNOS", PHONES)] == ["Galaxy A55 5G", "Galaxy S24"]
    assert [p["name"] for p in filter_phones("snapdragon", PHONES)] == ["POCO F6"]


def test_filter_short_query_returns_nothing():
    assert filter_phones("g", PHONES) == []


class FakeStore:
    def __init__(self, delay=0.0):
        self.calls = []
        self.delay = delay

    async def __call__(self, query):
        self.calls.append(query)
        await asyncio.sleep(self.delay)
        return filter_phones(query, PHONES)


async def test_debounce_keeps_only_last_query():
    store = FakeStore()
    debounced = DebouncedSearch(store, delay=0.02)
    results = await asyncio.gather(
        debounced.search("ga"),
        debounced.search("gal"),
        debounced.search("galaxy s"),
    )
    assert results[0] is None
    assert results[1] is None
    assert [p["name"] for p in results[2]] == ["Galaxy S24"]
    assert store.calls == ["galaxy s"]


async def test_stale_results_are_dropped():
    store = FakeStore(delay=0.05)
    debounced = DebouncedSearch(store, delay=0.01)
    first = asyncio.create_task(debounced.search("galaxy"))
    # Let the first query reach the store before the next keystroke
    await asyncio.sleep(0.03)
    second = await debounced.search("redmi")
    assert await first is None
    assert [p["name"] for p in second] == ["Redmi Note 13"]
    assert store.calls == ["galaxy", "redmi"]


async def test_short_query_skips_store():
    store = FakeStore()
    debounced = DebouncedSearch(store, delay=0)
    assert await debounced.search("a") == []
    assert store.calls == []


def test_filter_is_case_insensitive():
    phones = [{"name": "Samsung Galaxy A55"}, {"name": "iPhone 15"}]
    assert filter_phones("sam", phones) == [{"name": "Samsung Galaxy A55"}]
    assert filter_phones("SAM", phones) == [{"name": "Samsung Galaxy A55"}]
    assert filter_phones("s", phones) == []


async def test_idle_after_search_completes():
    debounced = DebouncedSearch(FakeStore(), delay=0.01)
    assert debounced.idle
    pending = asyncio.create_task(debounced.search("galaxy"))
    await asyncio.sleep(0)
    assert not debounced.idle
    await pending
    assert debounced.idle
