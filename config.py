import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

COUNTRIES_API = os.getenv(
    "COUNTRIES_API",
    "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
)
EXCHANGE_RATE_API = os.getenv("EXCHANGE_RATE_API", "https://open.er-api.com/v6/latest/USD")

# seconds, applied to each source fetch independently
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "10"))

CACHE_DIR = Path(os.getenv("CACHE_DIR", "cache"))
SUMMARY_IMAGE_PATH = CACHE_DIR / "summary.png"
SUMMARY_TOP_N = int(os.getenv("SUMMARY_TOP_N", "5"))

UPSERT_BATCH_SIZE = int(os.getenv("UPSERT_BATCH_SIZE", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
