import asyncio
import logging

from aiogram import Bot, Dispatcher, types
from aiogram.filters import Command
from aiogram.utils.keyboard import ReplyKeyboardBuilder

from cekspek.bot.admin import router as admin_router
from cekspek.bot.search import router as search_router
from cekspek.config import BOT_TOKEN, LOG_LEVEL, WEBAPP_URL
from cekspek.database import init_db

logger = logging.getLogger(__name__)


async def on_startup():
    logger.info("Initialising database...")
    await init_db()
    logger.info("Database ready")


async def start(message: types.Message):
    web_app = types.WebAppInfo(url=WEBAPP_URL)
    builder = ReplyKeyboardBuilder()
    builder.button(text="📱 Buka CekSpek", web_app=web_app)
    await message.answer(
        "Cari, bandingkan dan review spesifikasi smartphone:",
        reply_markup=builder.as_markup(resize_keyboard=True)
    )


def build_dispatcher() -> Dispatcher:
    dp = Dispatcher()
    dp.include_router(admin_router)
    dp.include_router(search_router)
    dp.message.register(start, Command("start"))
    return dp


async def main():
    if not BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is not set")
    bot = Bot(token=BOT_TOKEN)
    dp = build_dispatcher()

    await on_startup()
    await dp.start_polling(bot)


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    asyncio.run(main())
