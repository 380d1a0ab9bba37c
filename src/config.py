import os
from dotenv import load_dotenv

load_dotenv()

POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")
POSTGRES_DB = os.getenv("POSTGRES_DB_URL")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_DB}",
)

# A tournament left open longer than this is finalized on next access
AUTO_FINALIZE_HOURS = float(os.getenv("AUTO_FINALIZE_HOURS", "24"))
JOIN_TIMEOUT_SECONDS = float(os.getenv("JOIN_TIMEOUT_SECONDS", "90"))
TOURNAMENT_TIMEZONE = os.getenv("TOURNAMENT_TIMEZONE", "America/Los_Angeles")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PORT = int(os.getenv("PORT", "4000"))
