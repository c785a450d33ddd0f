import os

from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL")
REDIS_TIMEOUT = float(os.getenv("REDIS_TIMEOUT", "2.0"))

CODE_LENGTH = int(os.getenv("CODE_LENGTH", "6"))

RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "100"))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))
GUARD_REDIRECTS = os.getenv("GUARD_REDIRECTS", "false").lower() == "true"

UNIQUE_VISITORS_TTL = int(os.getenv("UNIQUE_VISITORS_TTL", str(24 * 60 * 60)))
CLICK_LOG_SIZE = int(os.getenv("CLICK_LOG_SIZE", "1000"))

DASHBOARD_URL_LIMIT = int(os.getenv("DASHBOARD_URL_LIMIT", "50"))
DASHBOARD_CLICK_LIMIT = int(os.getenv("DASHBOARD_CLICK_LIMIT", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
