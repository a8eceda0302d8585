# main.py
import os
if os.getenv("DEBUGPY", "0") == "1":
    import debugpy
    debugpy.listen(("0.0.0.0", 5678))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config.app_config import CORS_ORIGINS
from config.logging_config import configure_logging
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.portfolio_routes import router as portfolio_router

configure_logging()

app = FastAPI(title="Finanwas Portfolio Health")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(portfolio_router, prefix="/api/portfolio")


@app.get("/health")
@limiter.exempt
def health():
    return {"status": "ok"}
