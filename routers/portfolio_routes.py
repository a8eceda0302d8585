# routers/portfolio_routes.py
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from config.app_config import HEALTH_SCORE_DEFAULT_LANGUAGE, HEALTH_SCORE_RATE_LIMIT
from middleware.rate_limit import limiter
from schemas.portfolio_health_score import AssetClassInfo, HealthScoreRequest, HealthScoreResult
from services.portfolio.asset_classes import asset_class_catalog
from services.portfolio.portfolio_health_score_service import compute_health_score

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/health-score", response_model=HealthScoreResult)
@limiter.limit(HEALTH_SCORE_RATE_LIMIT)
async def portfolio_health_score(request: Request, payload: HealthScoreRequest):
    """
    Score a holdings snapshot supplied by the caller.

    The caller owns persistence and market data; this endpoint only runs the
    scoring over what it is sent.
    """
    try:
        return compute_health_score(
            payload.holdings,
            payload.risk_profile,
            as_of=payload.as_of,
            language=payload.language or HEALTH_SCORE_DEFAULT_LANGUAGE,
        )
    except Exception:
        logger.exception("health_score_failed holdings=%d", len(payload.holdings))
        raise HTTPException(status_code=500, detail="Failed to compute portfolio health score")


@router.get("/asset-classes", response_model=List[AssetClassInfo])
def list_asset_classes(language: Optional[Literal["en", "es"]] = Query(None)):
    return asset_class_catalog(language or HEALTH_SCORE_DEFAULT_LANGUAGE)
