# services/portfolio/portfolio_health_score_service.py
"""
Portfolio health score (0-100).

Four weighted sub-scores, each blended from 0-100 signals and scaled by its
weight before summing:

- diversification   35%
- risk management   30%
- performance       20%
- best practices    15%

Pure function of its inputs: no I/O, no shared state. Pass `as_of` to make
the recent-activity check reproducible.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from schemas.portfolio_health_score import (
    BestPracticesDetails,
    BestPracticesScore,
    DiversificationDetails,
    DiversificationScore,
    HealthScoreBreakdown,
    HealthScoreResult,
    Holding,
    PerformanceDetails,
    PerformanceScore,
    RiskManagementDetails,
    RiskManagementScore,
    RiskProfile,
)
from services.portfolio.asset_classes import AssetClass, RiskTolerance, sector_for, volatility_for

logger = logging.getLogger(__name__)

DIVERSIFICATION_WEIGHT = 0.35
RISK_WEIGHT = 0.30
PERFORMANCE_WEIGHT = 0.20
BEST_PRACTICES_WEIGHT = 0.15

RECENT_ACTIVITY_DAYS = 30
MAX_RECOMMENDATIONS = 5

# Expected weighted-average volatility per risk tolerance (min, max).
EXPECTED_VOLATILITY: Dict[RiskTolerance, Tuple[float, float]] = {
    RiskTolerance.CONSERVATIVE: (0.0, 1.5),
    RiskTolerance.MODERATE: (1.0, 3.0),
    RiskTolerance.AGGRESSIVE: (2.0, 5.0),
}

RATINGS: Dict[str, List[Tuple[int, str, str]]] = {
    "en": [
        (90, "Excellent", "green"),
        (75, "Very Good", "lightgreen"),
        (60, "Good", "yellow"),
        (40, "Fair", "orange"),
        (0, "Needs Improvement", "red"),
    ],
    "es": [
        (90, "Excelente", "green"),
        (75, "Muy Bueno", "lightgreen"),
        (60, "Bueno", "yellow"),
        (40, "Regular", "orange"),
        (0, "Necesita Mejoras", "red"),
    ],
}

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "few_assets": "Consider adding more holdings to your portfolio. A minimum of 5-10 assets helps reduce risk.",
        "concentration": "Your largest holding is {pct}% of the portfolio. Consider rebalancing to reduce concentration.",
        "few_sectors": "Diversify across more sectors to reduce sector risk. Aim for 3-5 different sectors.",
        "few_asset_types": "Consider diversifying across asset types (stocks, ETFs, bonds) for better balance.",
        "no_risk_profile": "Complete your investor profile to get personalized risk recommendations.",
        "risk_misaligned": "Your portfolio may not be aligned with your risk tolerance. Review your investments.",
        "mostly_losing": "More than half of your holdings are at a loss. Consider reviewing your investment strategy.",
        "negative_return": "Your portfolio has negative returns. Evaluate whether your current investments are still appropriate.",
        "no_dividends": "Consider adding assets that generate passive income through dividends.",
        "no_emergency_fund": "Build an emergency fund before investing aggressively. 3-6 months of expenses is recommended.",
        "no_recent_activity": "You have not updated your portfolio recently. Review and adjust your investments regularly.",
        "rebalance": "Rebalance your portfolio to keep a better asset distribution.",
        "well_balanced": "Excellent! Your portfolio is well diversified and balanced. Keep monitoring it regularly.",
    },
    "es": {
        "few_assets": "Considera agregar más activos a tu portafolio. Un mínimo de 5-10 activos ayuda a reducir el riesgo.",
        "concentration": "Tu activo más grande representa {pct}% del portafolio. Considera rebalancear para reducir la concentración.",
        "few_sectors": "Diversifica en más sectores para reducir el riesgo sectorial. Apunta a 3-5 sectores diferentes.",
        "few_asset_types": "Considera diversificar en diferentes tipos de activos (acciones, ETFs, bonos) para mejor balance.",
        "no_risk_profile": "Completa tu perfil de inversor para recibir recomendaciones personalizadas sobre riesgo.",
        "risk_misaligned": "Tu portafolio puede no estar alineado con tu tolerancia al riesgo. Revisa tus inversiones.",
        "mostly_losing": "Más del 50% de tus activos están en pérdida. Considera revisar tu estrategia de inversión.",
        "negative_return": "Tu portafolio tiene retornos negativos. Evalúa si tus inversiones actuales siguen siendo apropiadas.",
        "no_dividends": "Considera añadir activos que generen ingresos pasivos a través de dividendos.",
        "no_emergency_fund": "Establece un fondo de emergencia antes de invertir agresivamente. Se recomienda 3-6 meses de gastos.",
        "no_recent_activity": "No has actualizado tu portafolio recientemente. Considera revisar y ajustar tus inversiones regularmente.",
        "rebalance": "Rebalancea tu portafolio para mantener una mejor distribución de activos.",
        "well_balanced": "¡Excelente! Tu portafolio está bien diversificado y balanceado. Continúa monitoreando regularmente.",
    },
}


def _round_half_up(x: float, digits: int = 0) -> float:
    # Python's round() is banker's rounding; scores round .5 upwards.
    if not math.isfinite(x):
        return 0.0
    factor = 10 ** digits
    return math.floor(x * factor + 0.5) / factor


def _round_int(x: float) -> int:
    return int(_round_half_up(x))


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _finite_or_zero(x: float) -> float:
    # Portfolio totals can overflow to inf even when every holding is finite.
    return x if math.isfinite(x) else 0.0


def _total_value(holdings: Sequence[Holding]) -> float:
    return sum(h.market_value for h in holdings)


def _max_allocation_pct(holdings: Sequence[Holding], total_value: float) -> float:
    if not holdings or total_value <= 0:
        return 0.0
    return max(h.market_value / total_value * 100.0 for h in holdings)


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# -----------------------
# Step functions
# -----------------------

def _asset_count_score(n: int) -> int:
    if n == 0:
        return 0
    if n < 3:
        return 20
    if n < 5:
        return 40
    if n < 8:
        return 60
    if n <= 20:
        return 100
    # Over-diversified portfolios get harder to manage.
    return max(80, 100 - (n - 20) * 2)


def _sector_diversity_score(n: int) -> int:
    return {0: 0, 1: 20, 2: 40, 3: 60, 4: 80}.get(n, 100)


def _asset_type_diversity_score(n: int) -> int:
    return {0: 0, 1: 30, 2: 60, 3: 80}.get(n, 100)


def _concentration_score(max_pct: float) -> int:
    if max_pct > 50:
        return 0
    if max_pct > 40:
        return 30
    if max_pct > 30:
        return 60
    if max_pct > 20:
        return 80
    return 100


def _total_return_score(r: float) -> float:
    if r >= 20:
        return 100.0
    if r >= 10:
        return 85.0
    if r >= 5:
        return 70.0
    if r >= 0:
        return 50.0 + r * 4
    if r >= -5:
        return 50.0 + r * 5
    if r >= -10:
        return 25.0
    return max(0.0, 25.0 + (r + 10))


def _dividend_yield_score(avg_yield: float) -> int:
    if avg_yield >= 5:
        return 100
    if avg_yield >= 3:
        return 80
    if avg_yield >= 2:
        return 60
    if avg_yield >= 1:
        return 40
    if avg_yield > 0:
        return 20
    return 0


def _risk_alignment_score(avg_volatility: float, tolerance: Optional[RiskTolerance]) -> float:
    if tolerance is None:
        return 50.0
    lo, hi = EXPECTED_VOLATILITY[tolerance]
    if lo <= avg_volatility <= hi:
        return 100.0
    if avg_volatility < lo:
        # too conservative for the stated tolerance
        return max(60.0, 100.0 - (lo - avg_volatility) * 15)
    return max(30.0, 100.0 - (avg_volatility - hi) * 20)


# -----------------------
# Sub-scores
# -----------------------

def _score_diversification(holdings: Sequence[Holding]) -> DiversificationScore:
    asset_count = len(holdings)
    asset_count_score = _asset_count_score(asset_count)

    sector_count = len({sector_for(h.asset_class, h.ticker_symbol) for h in holdings})
    sector_diversity_score = _sector_diversity_score(sector_count)

    asset_type_count = len({h.asset_class for h in holdings})
    asset_type_diversity_score = _asset_type_diversity_score(asset_type_count)

    total_value = _total_value(holdings)
    if total_value > 0:
        max_concentration = _max_allocation_pct(holdings, total_value)
        concentration_score = _concentration_score(max_concentration)
    else:
        max_concentration = 0.0
        concentration_score = 0

    score = (
        asset_count_score * 0.4
        + sector_diversity_score * 0.3
        + asset_type_diversity_score * 0.2
        + concentration_score * 0.1
    ) * DIVERSIFICATION_WEIGHT

    return DiversificationScore(
        score=_round_int(score),
        details=DiversificationDetails(
            asset_count=asset_count,
            asset_count_score=asset_count_score,
            sector_count=sector_count,
            sector_diversity_score=sector_diversity_score,
            asset_type_count=asset_type_count,
            asset_type_diversity_score=asset_type_diversity_score,
            max_concentration=_round_half_up(max_concentration, 1),
            concentration_score=concentration_score,
        ),
    )


def _score_risk(holdings: Sequence[Holding], risk_profile: Optional[RiskProfile]) -> RiskManagementScore:
    total_value = 0.0
    weighted_volatility = 0.0
    for h in holdings:
        v = h.market_value
        total_value += v
        weighted_volatility += v * volatility_for(h.asset_class)

    avg_volatility = _finite_or_zero(weighted_volatility / total_value) if total_value > 0 else 0.0
    volatility_score = _clamp(100.0 - avg_volatility * 20, 0.0, 100.0)

    tolerance = risk_profile.risk_tolerance if risk_profile else None
    risk_alignment_score = _risk_alignment_score(avg_volatility, tolerance)

    score = (volatility_score * 0.5 + risk_alignment_score * 0.5) * RISK_WEIGHT

    return RiskManagementScore(
        score=_round_int(score),
        details=RiskManagementDetails(
            volatility_score=_round_int(volatility_score),
            risk_alignment_score=_round_int(risk_alignment_score),
            has_risk_profile=tolerance is not None,
            avg_volatility=_round_half_up(avg_volatility, 2),
        ),
    )


def _score_performance(holdings: Sequence[Holding]) -> PerformanceScore:
    positive_assets_count = 0
    total_invested = 0.0
    total_current = 0.0
    for h in holdings:
        cost = h.cost_basis
        value = h.market_value
        total_invested += cost
        total_current += value
        if value > cost:
            positive_assets_count += 1

    positive_returns_ratio = positive_assets_count / len(holdings) * 100.0
    total_return_pct = _finite_or_zero(
        (total_current - total_invested) / total_invested * 100.0 if total_invested > 0 else 0.0
    )
    total_return_score = _total_return_score(total_return_pct)

    yields = [h.dividend_yield_percent for h in holdings if h.dividend_yield_percent and h.dividend_yield_percent > 0]
    avg_dividend_yield = sum(yields) / len(yields) if yields else 0.0
    dividend_yield_score = _dividend_yield_score(avg_dividend_yield)

    score = (
        positive_returns_ratio * 0.4
        + total_return_score * 0.3
        + dividend_yield_score * 0.3
    ) * PERFORMANCE_WEIGHT

    return PerformanceScore(
        score=_round_int(score),
        details=PerformanceDetails(
            positive_assets_count=positive_assets_count,
            total_assets_count=len(holdings),
            positive_returns_ratio=_round_half_up(positive_returns_ratio, 1),
            total_return_percentage=_round_half_up(total_return_pct, 2),
            total_return_score=_round_int(total_return_score),
            avg_dividend_yield=_round_half_up(avg_dividend_yield, 2),
            dividend_yield_score=dividend_yield_score,
        ),
    )


def _score_best_practices(
    holdings: Sequence[Holding],
    risk_profile: Optional[RiskProfile],
    as_of: datetime,
) -> BestPracticesScore:
    has_emergency_fund = any(
        h.asset_class == AssetClass.CASH and h.quantity_held > 0 for h in holdings
    ) or bool(risk_profile and risk_profile.has_emergency_fund)
    emergency_fund_score = 100 if has_emergency_fund else 0

    cutoff = as_of - timedelta(days=RECENT_ACTIVITY_DAYS)
    has_recent_activity = any(_utc(h.last_updated_at) >= cutoff for h in holdings)
    contribution_score = 100 if has_recent_activity else 50

    diversification_meets_target = True
    rebalancing_score = 100
    max_allocation = _max_allocation_pct(holdings, _total_value(holdings))
    if max_allocation > 40:
        diversification_meets_target = False
        rebalancing_score = 50
    elif max_allocation > 30:
        diversification_meets_target = False
        rebalancing_score = 75

    score = (
        emergency_fund_score * 0.4
        + contribution_score * 0.3
        + rebalancing_score * 0.3
    ) * BEST_PRACTICES_WEIGHT

    return BestPracticesScore(
        score=_round_int(score),
        details=BestPracticesDetails(
            has_emergency_fund=has_emergency_fund,
            emergency_fund_score=emergency_fund_score,
            has_recent_activity=has_recent_activity,
            contribution_score=contribution_score,
            diversification_meets_target=diversification_meets_target,
            rebalancing_score=rebalancing_score,
        ),
    )


def _empty_breakdown(risk_profile: Optional[RiskProfile]) -> HealthScoreBreakdown:
    # Every score is zeroed; profile flags are kept so recommendations stay truthful.
    return HealthScoreBreakdown(
        diversification=DiversificationScore(
            score=0,
            details=DiversificationDetails(
                asset_count=0,
                asset_count_score=0,
                sector_count=0,
                sector_diversity_score=0,
                asset_type_count=0,
                asset_type_diversity_score=0,
                max_concentration=0.0,
                concentration_score=0,
            ),
        ),
        risk_management=RiskManagementScore(
            score=0,
            details=RiskManagementDetails(
                volatility_score=0,
                risk_alignment_score=0,
                has_risk_profile=bool(risk_profile and risk_profile.risk_tolerance),
                avg_volatility=0.0,
            ),
        ),
        performance=PerformanceScore(
            score=0,
            details=PerformanceDetails(
                positive_assets_count=0,
                total_assets_count=0,
                positive_returns_ratio=0.0,
                total_return_percentage=0.0,
                total_return_score=0,
                avg_dividend_yield=0.0,
                dividend_yield_score=0,
            ),
        ),
        best_practices=BestPracticesScore(
            score=0,
            details=BestPracticesDetails(
                has_emergency_fund=bool(risk_profile and risk_profile.has_emergency_fund),
                emergency_fund_score=0,
                has_recent_activity=False,
                contribution_score=0,
                diversification_meets_target=True,
                rebalancing_score=0,
            ),
        ),
    )


# -----------------------
# Rating + recommendations
# -----------------------

def rating_for(score: int, language: str = "en") -> Tuple[str, str]:
    """Return (rating, color_tag) for a 0-100 total score."""
    for threshold, rating, color in RATINGS.get(language, RATINGS["en"]):
        if score >= threshold:
            return rating, color
    return RATINGS["en"][-1][1], RATINGS["en"][-1][2]


def build_recommendations(breakdown: HealthScoreBreakdown, language: str = "en") -> List[str]:
    msgs = MESSAGES.get(language, MESSAGES["en"])
    div = breakdown.diversification.details
    risk = breakdown.risk_management.details
    perf = breakdown.performance.details
    bp = breakdown.best_practices.details

    out: List[str] = []
    if div.asset_count < 5:
        out.append(msgs["few_assets"])
    if div.max_concentration > 30:
        out.append(msgs["concentration"].format(pct=f"{div.max_concentration:g}"))
    if div.sector_count < 3:
        out.append(msgs["few_sectors"])
    if div.asset_type_count < 2:
        out.append(msgs["few_asset_types"])

    if not risk.has_risk_profile:
        out.append(msgs["no_risk_profile"])
    if risk.risk_alignment_score < 70:
        out.append(msgs["risk_misaligned"])

    if perf.positive_returns_ratio < 50:
        out.append(msgs["mostly_losing"])
    if perf.total_return_percentage < 0:
        out.append(msgs["negative_return"])
    if perf.avg_dividend_yield == 0 and perf.total_assets_count > 0:
        out.append(msgs["no_dividends"])

    if not bp.has_emergency_fund:
        out.append(msgs["no_emergency_fund"])
    if not bp.has_recent_activity:
        out.append(msgs["no_recent_activity"])
    if not bp.diversification_meets_target:
        out.append(msgs["rebalance"])

    if not out:
        out.append(msgs["well_balanced"])

    return out[:MAX_RECOMMENDATIONS]


def compute_health_score(
    holdings: Sequence[Holding],
    risk_profile: Optional[RiskProfile] = None,
    *,
    as_of: Optional[datetime] = None,
    language: str = "en",
) -> HealthScoreResult:
    """
    Score a portfolio snapshot. Never raises for validated inputs; an empty
    portfolio yields an all-zero breakdown with "add holdings" guidance.
    """
    holdings = list(holdings)
    as_of = _utc(as_of) if as_of is not None else datetime.now(timezone.utc)

    if not holdings:
        breakdown = _empty_breakdown(risk_profile)
    else:
        breakdown = HealthScoreBreakdown(
            diversification=_score_diversification(holdings),
            risk_management=_score_risk(holdings, risk_profile),
            performance=_score_performance(holdings),
            best_practices=_score_best_practices(holdings, risk_profile, as_of),
        )

    total = _round_int(
        breakdown.diversification.score
        + breakdown.risk_management.score
        + breakdown.performance.score
        + breakdown.best_practices.score
    )
    total = int(_clamp(total, 0, 100))
    rating, color = rating_for(total, language)

    logger.debug(
        "health_score_computed holdings=%d total=%d has_profile=%s",
        len(holdings),
        total,
        breakdown.risk_management.details.has_risk_profile,
    )

    return HealthScoreResult(
        total_score=total,
        rating=rating,
        color_tag=color,
        breakdown=breakdown,
        recommendations=build_recommendations(breakdown, language),
    )
