# config/app_config.py
import os

from dotenv import load_dotenv

load_dotenv()

_DEFAULT_ORIGINS = "http://localhost:3000"

CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", _DEFAULT_ORIGINS).split(",") if o.strip()
]

RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
HEALTH_SCORE_RATE_LIMIT = os.getenv("HEALTH_SCORE_RATE_LIMIT", "30/minute")
RATE_LIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")

HEALTH_SCORE_DEFAULT_LANGUAGE = os.getenv("HEALTH_SCORE_DEFAULT_LANGUAGE", "en")  # en|es
if HEALTH_SCORE_DEFAULT_LANGUAGE not in ("en", "es"):
    raise RuntimeError("HEALTH_SCORE_DEFAULT_LANGUAGE must be 'en' or 'es'")
