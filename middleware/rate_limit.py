# middleware/rate_limit.py
"""
Rate limiting configuration using slowapi.

Usage in route files:
    from middleware.rate_limit import limiter

    @router.post("/health-score")
    @limiter.limit(HEALTH_SCORE_RATE_LIMIT)
    async def my_endpoint(request: Request):
        ...

Callers are bucketed by client address. Auth lives in the calling
application, so there is no user claim to key on. Client-supplied
X-Forwarded-For is never read here; behind a proxy, run uvicorn with
--proxy-headers --forwarded-allow-ips=<proxy ip> so the trusted proxy sets
the client address.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from config.app_config import RATE_LIMIT_DEFAULT, RATE_LIMIT_STORAGE_URI

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri=RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
)
