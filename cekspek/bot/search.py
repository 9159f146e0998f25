import logging
from typing import Dict

from aiogram import Router
from aiogram.types import InlineQuery, InlineQueryResultArticle, InputTextMessageContent

from cekspek import catalog
from cekspek.compare import format_price
from cekspek.config import WEBAPP_URL
from cekspek.database import AsyncSessionLocal
from cekspek.search import DebouncedSearch

router = Router()
logger = logging.getLogger(__name__)

# One debouncer per user; aiogram runs every update in its own task
_searches: Dict[int, DebouncedSearch] = {}


async def _search_store(query: str):
    async with AsyncSessionLocal() as session:
        return await catalog.search_phones(session, query)


def debouncer_for(user_id: int) -> DebouncedSearch:
    if user_id not in _searches:
        _searches[user_id] = DebouncedSearch(_search_store)
    return _searches[user_id]


def summary_to_article(summary) -> InlineQueryResultArticle:
    details = " · ".join(
        part for part in (summary.brand_name, summary.chipset, summary.ram, format_price(summary.price_min))
        if part and part != "-"
    )
    url = f"{WEBAPP_URL.rstrip('/')}/phones/{summary.slug}"
    return InlineQueryResultArticle(
        id=str(summary.id),
        title=summary.name,
        description=details or None,
        thumbnail_url=summary.image_url or None,
        input_message_content=InputTextMessageContent(message_text=f"📱 {summary.name}\n{url}"),
    )


@router.inline_query()
async def inline_search(inline_query: InlineQuery):
    user_id = inline_query.from_user.id
    debouncer = debouncer_for(user_id)
    try:
        results = await debouncer.search(inline_query.query)
    finally:
        # Forget users with nothing in flight
        if debouncer.idle and _searches.get(user_id) is debouncer:
            del _searches[user_id]
    if results is None:
        # A newer query from this user takes over
        return
    logger.info(f"Inline search {inline_query.query!r}: {len(results)} results")
    await inline_query.answer(
        [summary_to_article(summary) for summary in results],
        cache_time=5,
    )
