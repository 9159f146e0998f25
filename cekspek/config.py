import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./cekspek.db")

BOT_TOKEN = os.getenv("BOT_TOKEN")
WEBAPP_URL = os.getenv("WEBAPP_URL", "https://cekspek.id")

# Telegram ids allowed into the admin panel
ADMIN_IDS = [int(x) for x in os.getenv("ADMIN_IDS", "").split(",") if x.strip()]
# Shared secret for the HTTP admin router
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "dev-admin-token-change-me")

SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.3"))
SEARCH_LIMIT = int(os.getenv("SEARCH_LIMIT", "20"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
