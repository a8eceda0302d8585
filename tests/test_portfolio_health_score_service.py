import unittest
from datetime import datetime, timedelta, timezone

from schemas.portfolio_health_score import Holding, RiskProfile
from services.portfolio.portfolio_health_score_service import (
    MESSAGES,
    _asset_count_score,
    _risk_alignment_score,
    _round_half_up,
    _total_return_score,
    build_recommendations,
    compute_health_score,
    rating_for,
)
from services.portfolio.asset_classes import RiskTolerance

AS_OF = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
EN = MESSAGES["en"]


def _holding(asset_class="equity", ticker=None, qty=10, buy=100.0, cur=None, dy=None, updated=AS_OF):
    return Holding(
        asset_class=asset_class,
        ticker_symbol=ticker,
        quantity_held=qty,
        purchase_unit_price=buy,
        current_unit_price=cur,
        dividend_yield_percent=dy,
        last_updated_at=updated,
    )


class TestCanonicalFixture(unittest.TestCase):
    def setUp(self):
        self.result = compute_health_score(
            [_holding("equity", "AAPL", qty=10, buy=150, cur=175)], None, as_of=AS_OF
        )

    def test_diversification(self):
        div = self.result.breakdown.diversification
        self.assertEqual(div.score, 7)
        self.assertEqual(div.details.asset_count, 1)
        self.assertEqual(div.details.asset_count_score, 20)
        self.assertEqual(div.details.sector_count, 1)
        self.assertEqual(div.details.sector_diversity_score, 20)
        self.assertEqual(div.details.asset_type_count, 1)
        self.assertEqual(div.details.asset_type_diversity_score, 30)
        self.assertEqual(div.details.max_concentration, 100.0)
        self.assertEqual(div.details.concentration_score, 0)

    def test_risk_management(self):
        risk = self.result.breakdown.risk_management
        self.assertEqual(risk.score, 14)
        self.assertEqual(risk.details.volatility_score, 40)
        self.assertEqual(risk.details.risk_alignment_score, 50)
        self.assertFalse(risk.details.has_risk_profile)
        self.assertEqual(risk.details.avg_volatility, 3.0)

    def test_performance(self):
        perf = self.result.breakdown.performance
        self.assertEqual(perf.score, 13)
        self.assertEqual(perf.details.positive_assets_count, 1)
        self.assertEqual(perf.details.total_assets_count, 1)
        self.assertEqual(perf.details.positive_returns_ratio, 100.0)
        self.assertEqual(perf.details.total_return_percentage, 16.67)
        self.assertEqual(perf.details.total_return_score, 85)
        self.assertEqual(perf.details.avg_dividend_yield, 0.0)
        self.assertEqual(perf.details.dividend_yield_score, 0)

    def test_best_practices(self):
        bp = self.result.breakdown.best_practices
        self.assertEqual(bp.score, 7)
        self.assertFalse(bp.details.has_emergency_fund)
        self.assertEqual(bp.details.emergency_fund_score, 0)
        self.assertTrue(bp.details.has_recent_activity)
        self.assertEqual(bp.details.contribution_score, 100)
        self.assertFalse(bp.details.diversification_meets_target)
        self.assertEqual(bp.details.rebalancing_score, 50)

    def test_total_and_rating(self):
        self.assertEqual(self.result.total_score, 41)
        self.assertEqual(self.result.rating, "Fair")
        self.assertEqual(self.result.color_tag, "orange")

    def test_recommendations(self):
        self.assertEqual(
            self.result.recommendations,
            [
                EN["few_assets"],
                EN["concentration"].format(pct="100"),
                EN["few_sectors"],
                EN["few_asset_types"],
                EN["no_risk_profile"],
            ],
        )

    def test_spanish_copy(self):
        res = compute_health_score(
            [_holding("equity", "AAPL", qty=10, buy=150, cur=175)], None, as_of=AS_OF, language="es"
        )
        self.assertEqual(res.total_score, 41)
        self.assertEqual(res.rating, "Regular")
        self.assertTrue(res.recommendations[1].startswith("Tu activo más grande representa 100%"))


class TestDiversifiedPortfolio(unittest.TestCase):
    def test_well_balanced_portfolio(self):
        holdings = [
            _holding("equity", "AAPL", cur=110, dy=0.5),
            _holding("equity", "JPM", cur=110, dy=3),
            _holding("equity", "JNJ", cur=110, dy=3),
            _holding("equity", "XOM", cur=110, dy=4),
            _holding("bond", None, cur=105, dy=4),
            _holding("cash", None, qty=1000, buy=1.0),
        ]
        res = compute_health_score(
            holdings, RiskProfile(risk_tolerance="moderate"), as_of=AS_OF
        )

        self.assertEqual(res.breakdown.diversification.score, 28)
        self.assertEqual(res.breakdown.diversification.details.sector_count, 6)
        self.assertEqual(res.breakdown.diversification.details.max_concentration, 17.1)
        self.assertEqual(res.breakdown.risk_management.score, 23)
        self.assertEqual(res.breakdown.risk_management.details.risk_alignment_score, 100)
        self.assertEqual(res.breakdown.risk_management.details.volatility_score, 56)
        self.assertEqual(res.breakdown.performance.score, 14)
        self.assertEqual(res.breakdown.performance.details.total_return_score, 70)
        self.assertEqual(res.breakdown.performance.details.avg_dividend_yield, 2.9)
        self.assertEqual(res.breakdown.best_practices.score, 15)
        self.assertEqual(res.total_score, 80)
        self.assertEqual(res.rating, "Very Good")
        self.assertEqual(res.recommendations, [EN["well_balanced"]])


class TestEdgeCases(unittest.TestCase):
    def test_empty_portfolio_is_all_zero(self):
        res = compute_health_score([], None, as_of=AS_OF)
        self.assertEqual(res.total_score, 0)
        self.assertEqual(res.rating, "Needs Improvement")
        self.assertEqual(res.color_tag, "red")
        for section in (
            res.breakdown.diversification,
            res.breakdown.risk_management,
            res.breakdown.performance,
            res.breakdown.best_practices,
        ):
            self.assertEqual(section.score, 0)
        self.assertEqual(res.recommendations[0], EN["few_assets"])
        self.assertTrue(1 <= len(res.recommendations) <= 5)

    def test_empty_portfolio_respects_profile_flags(self):
        profile = RiskProfile(risk_tolerance="aggressive", has_emergency_fund=True)
        res = compute_health_score([], profile, as_of=AS_OF)
        self.assertEqual(res.total_score, 0)
        self.assertTrue(res.breakdown.risk_management.details.has_risk_profile)
        self.assertTrue(res.breakdown.best_practices.details.has_emergency_fund)
        self.assertNotIn(EN["no_risk_profile"], res.recommendations)

    def test_zero_market_value(self):
        res = compute_health_score([_holding("equity", "MSFT", cur=0)], None, as_of=AS_OF)
        div = res.breakdown.diversification.details
        self.assertEqual(div.max_concentration, 0.0)
        self.assertEqual(div.concentration_score, 0)
        self.assertEqual(res.breakdown.risk_management.details.volatility_score, 100)
        self.assertTrue(res.breakdown.best_practices.details.diversification_meets_target)
        self.assertEqual(res.breakdown.performance.details.total_return_percentage, -100.0)
        self.assertEqual(res.breakdown.performance.details.total_return_score, 0)

    def test_current_price_falls_back_to_purchase_price(self):
        res = compute_health_score([_holding("etf", "SPY", cur=None)], None, as_of=AS_OF)
        perf = res.breakdown.performance.details
        self.assertEqual(perf.total_return_percentage, 0.0)
        self.assertEqual(perf.total_return_score, 50)
        self.assertEqual(perf.positive_assets_count, 0)

    def test_single_holding_has_zero_concentration_score(self):
        res = compute_health_score([_holding("crypto", "BTC", cur=200)], None, as_of=AS_OF)
        self.assertEqual(res.breakdown.diversification.details.concentration_score, 0)

    def test_score_bounds(self):
        portfolios = [
            [],
            [_holding("crypto", "BTC", cur=1)],
            [_holding("cash", qty=500, buy=1.0)],
            [_holding("equity", t, cur=500, dy=8) for t in ("AAPL", "JPM", "JNJ", "XOM", "NEE", "BA", "T", "LIN")],
            [_holding("other", f"X{i}", cur=90) for i in range(40)],
        ]
        for holdings in portfolios:
            for profile in (None, RiskProfile(risk_tolerance="conservative", has_emergency_fund=True)):
                res = compute_health_score(holdings, profile, as_of=AS_OF)
                self.assertGreaterEqual(res.total_score, 0)
                self.assertLessEqual(res.total_score, 100)
                self.assertTrue(1 <= len(res.recommendations) <= 5)

    def test_deterministic(self):
        holdings = [_holding("equity", "AAPL", cur=120), _holding("bond", cur=95, dy=2.5)]
        profile = RiskProfile(risk_tolerance="moderate")
        a = compute_health_score(holdings, profile, as_of=AS_OF)
        b = compute_health_score(holdings, profile, as_of=AS_OF)
        self.assertEqual(a.model_dump_json(), b.model_dump_json())

    def test_stale_portfolio(self):
        old = AS_OF - timedelta(days=31)
        res = compute_health_score([_holding("equity", "AAPL", updated=old)], None, as_of=AS_OF)
        bp = res.breakdown.best_practices.details
        self.assertFalse(bp.has_recent_activity)
        self.assertEqual(bp.contribution_score, 50)

    def test_portfolio_total_overflow_does_not_raise(self):
        # Each holding is finite (1e308) but their sum overflows.
        holdings = [
            _holding("equity", "AAPL", qty=1e154, buy=1e154, cur=1e154),
            _holding("bond", None, qty=1e154, buy=1e154, cur=1e154),
        ]
        res = compute_health_score(holdings, RiskProfile(risk_tolerance="moderate"), as_of=AS_OF)
        self.assertGreaterEqual(res.total_score, 0)
        self.assertLessEqual(res.total_score, 100)
        self.assertEqual(res.breakdown.risk_management.details.avg_volatility, 0.0)
        self.assertEqual(res.breakdown.performance.details.total_return_percentage, 0.0)
        res.model_dump_json()

    def test_naive_timestamps_are_utc(self):
        updated = datetime(2026, 2, 20, 9, 0)
        res = compute_health_score([_holding("equity", "AAPL", updated=updated)], None, as_of=AS_OF)
        self.assertTrue(res.breakdown.best_practices.details.has_recent_activity)


class TestSubScores(unittest.TestCase):
    def test_asset_count_score_steps(self):
        self.assertEqual(_asset_count_score(0), 0)
        self.assertEqual(_asset_count_score(2), 20)
        self.assertEqual(_asset_count_score(4), 40)
        self.assertEqual(_asset_count_score(7), 60)
        self.assertEqual(_asset_count_score(20), 100)
        self.assertEqual(_asset_count_score(25), 90)
        self.assertEqual(_asset_count_score(40), 80)

    def test_adding_sectors_never_lowers_sector_score(self):
        tickers = ["AAPL", "JPM", "JNJ", "XOM", "NEE", "BA", "T"]
        last = -1
        for n in range(1, len(tickers) + 1):
            holdings = [_holding("equity", t) for t in tickers[:n]]
            res = compute_health_score(holdings, None, as_of=AS_OF)
            score = res.breakdown.diversification.details.sector_diversity_score
            self.assertGreaterEqual(score, last)
            if n <= 5:
                self.assertGreater(score, last)
            last = score
        self.assertEqual(last, 100)

    def test_unknown_ticker_uses_asset_class(self):
        holdings = [_holding("equity", "ZZZZ"), _holding("equity", "YYYY")]
        res = compute_health_score(holdings, None, as_of=AS_OF)
        self.assertEqual(res.breakdown.diversification.details.sector_count, 1)

    def test_total_return_score_is_monotonic_in_price(self):
        last = -1
        for cur in range(50, 200, 1):
            res = compute_health_score([_holding("equity", "AAPL", cur=float(cur))], None, as_of=AS_OF)
            score = res.breakdown.performance.details.total_return_score
            self.assertGreaterEqual(score, last)
            last = score

    def test_total_return_score_pieces(self):
        self.assertEqual(_total_return_score(25), 100)
        self.assertEqual(_total_return_score(10), 85)
        self.assertEqual(_total_return_score(5), 70)
        self.assertEqual(_total_return_score(2.5), 60)
        self.assertEqual(_total_return_score(0), 50)
        self.assertEqual(_total_return_score(-2), 40)
        self.assertEqual(_total_return_score(-7), 25)
        self.assertEqual(_total_return_score(-20), 15)
        self.assertEqual(_total_return_score(-50), 0)

    def test_risk_alignment(self):
        self.assertEqual(_risk_alignment_score(2.0, None), 50)
        self.assertEqual(_risk_alignment_score(2.0, RiskTolerance.MODERATE), 100)
        self.assertEqual(_risk_alignment_score(0.5, RiskTolerance.MODERATE), 92.5)
        self.assertEqual(_risk_alignment_score(0.0, RiskTolerance.AGGRESSIVE), 70)
        self.assertEqual(_risk_alignment_score(3.0, RiskTolerance.CONSERVATIVE), 70)
        self.assertEqual(_risk_alignment_score(5.0, RiskTolerance.CONSERVATIVE), 30)

    def test_cash_has_no_volatility(self):
        res = compute_health_score(
            [_holding("cash", qty=1000, buy=1.0)],
            RiskProfile(risk_tolerance="conservative"),
            as_of=AS_OF,
        )
        risk = res.breakdown.risk_management.details
        self.assertEqual(risk.avg_volatility, 0.0)
        self.assertEqual(risk.volatility_score, 100)
        self.assertEqual(risk.risk_alignment_score, 100)

    def test_emergency_fund_from_profile(self):
        res = compute_health_score(
            [_holding("equity", "AAPL")], RiskProfile(has_emergency_fund=True), as_of=AS_OF
        )
        self.assertTrue(res.breakdown.best_practices.details.has_emergency_fund)
        self.assertFalse(res.breakdown.risk_management.details.has_risk_profile)

    def test_rebalancing_thresholds(self):
        # 35% largest position
        holdings = [_holding("equity", "AAPL", qty=35)] + [
            _holding("equity", t, qty=13) for t in ("JPM", "JNJ", "XOM", "NEE", "BA")
        ]
        bp = compute_health_score(holdings, None, as_of=AS_OF).breakdown.best_practices.details
        self.assertFalse(bp.diversification_meets_target)
        self.assertEqual(bp.rebalancing_score, 75)

    def test_round_half_up(self):
        self.assertEqual(_round_half_up(13.5), 14)
        self.assertEqual(_round_half_up(6.75), 7)
        self.assertEqual(_round_half_up(16.6666, 2), 16.67)
        self.assertEqual(_round_half_up(float("nan")), 0.0)
        self.assertEqual(_round_half_up(float("inf"), 1), 0.0)


class TestRating(unittest.TestCase):
    def test_thresholds(self):
        cases = {
            100: "Excellent",
            90: "Excellent",
            89: "Very Good",
            75: "Very Good",
            74: "Good",
            60: "Good",
            59: "Fair",
            40: "Fair",
            39: "Needs Improvement",
            0: "Needs Improvement",
        }
        for score, rating in cases.items():
            self.assertEqual(rating_for(score)[0], rating, score)

    def test_colors(self):
        self.assertEqual(rating_for(95)[1], "green")
        self.assertEqual(rating_for(80)[1], "lightgreen")
        self.assertEqual(rating_for(65)[1], "yellow")
        self.assertEqual(rating_for(45)[1], "orange")
        self.assertEqual(rating_for(10)[1], "red")

    def test_unknown_language_falls_back_to_english(self):
        self.assertEqual(rating_for(90, "fr"), ("Excellent", "green"))


class TestRecommendations(unittest.TestCase):
    def test_truncated_in_check_order(self):
        res = compute_health_score(
            [_holding("crypto", "BTC", cur=50, updated=AS_OF - timedelta(days=90))],
            RiskProfile(risk_tolerance="conservative"),
            as_of=AS_OF,
        )
        self.assertEqual(len(res.recommendations), 5)
        self.assertEqual(res.recommendations[0], EN["few_assets"])
        self.assertEqual(res.recommendations[4], EN["risk_misaligned"])
        self.assertNotIn(EN["no_recent_activity"], res.recommendations)

    def test_well_balanced_only_when_nothing_triggers(self):
        res = compute_health_score([], None, as_of=AS_OF)
        self.assertNotIn(EN["well_balanced"], build_recommendations(res.breakdown))


if __name__ == "__main__":
    unittest.main()
