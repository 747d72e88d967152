"""Card-fee proration across the lines of a sale batch."""

from decimal import ROUND_HALF_EVEN, Decimal

import pytest

from fair_engines.proration import FeeProrationEngine, ProrationTarget


def _targets(*weights):
    return [ProrationTarget(i, Decimal(w)) for i, w in enumerate(weights)]


class TestFeeProration:
    def test_exact_split(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("10"),
            targets=_targets("300", "200", "500"),
        )
        assert result.shares == (Decimal("3.00"), Decimal("2.00"), Decimal("5.00"))
        assert sum(result.shares) == Decimal("10")
        assert result.rounding_adjustment == Decimal("0")

    def test_shares_follow_rounded_running_total(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("1"),
            targets=_targets("1", "1", "1"),
        )
        # Running totals 0.33, 0.67, 1
        assert result.shares == (Decimal("0.33"), Decimal("0.34"), Decimal("0.33"))
        assert sum(result.shares) == Decimal("1")
        assert result.rounding_adjustment == Decimal("0")

    def test_last_line_takes_remainder(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("0.01"),
            targets=_targets("1", "3"),
        )
        assert result.shares == (Decimal("0.00"), Decimal("0.01"))

    def test_many_round_ups_do_not_overdraw_fee(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("0.05"), targets=_targets(*["10"] * 7)
        )
        assert result.shares == (
            Decimal("0.01"), Decimal("0.00"), Decimal("0.01"), Decimal("0.01"),
            Decimal("0.01"), Decimal("0.00"), Decimal("0.01"),
        )

    def test_total_finer_than_precision(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("0.009"), targets=_targets("9", "1")
        )
        # 0.0081 rounds to 0.01, above the fee; the running total is capped
        assert result.shares == (Decimal("0.009"), Decimal("0"))
        assert sum(result.shares) == Decimal("0.009")

    @pytest.mark.parametrize(
        "total, weights",
        [
            ("7.77", ["19.99", "0.01", "45.50", "3"]),
            ("0.05", ["10", "10", "10", "10", "10", "10", "10"]),
            ("123.45", ["1"]),
            ("0", ["5", "6"]),
        ],
    )
    def test_shares_always_sum_to_total(self, total, weights):
        result = FeeProrationEngine().prorate(
            total=Decimal(total), targets=_targets(*weights)
        )
        assert sum(result.shares) == Decimal(total)
        assert all(share >= 0 for share in result.shares)
        assert len(result.lines) == len(weights)

    def test_share_for_target(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("10"),
            targets=[
                ProrationTarget("mug", Decimal("300")),
                ProrationTarget("bowl", Decimal("700")),
            ],
        )
        assert result.share_for("bowl") == Decimal("7.00")
        with pytest.raises(KeyError):
            result.share_for("plate")

    def test_zero_weight_line_gets_zero_share(self):
        result = FeeProrationEngine().prorate(
            total=Decimal("4"), targets=_targets("0", "100")
        )
        assert result.shares == (Decimal("0.00"), Decimal("4"))

    def test_configured_rounding(self):
        engine = FeeProrationEngine(decimal_places=0, rounding=ROUND_HALF_EVEN)
        result = engine.prorate(total=Decimal("5"), targets=_targets("1", "1"))
        # 2.5 rounds half-even to 2; the last line takes 3
        assert result.shares == (Decimal("2"), Decimal("3"))

    def test_deterministic(self):
        engine = FeeProrationEngine()
        first = engine.prorate(total=Decimal("9.99"), targets=_targets("3", "7", "11"))
        second = engine.prorate(total=Decimal("9.99"), targets=_targets("3", "7", "11"))
        assert first == second


class TestProrationErrors:
    def test_negative_total(self):
        with pytest.raises(ValueError, match="negative"):
            FeeProrationEngine().prorate(total=Decimal("-1"), targets=_targets("1"))

    def test_no_targets(self):
        with pytest.raises(ValueError, match="zero targets"):
            FeeProrationEngine().prorate(total=Decimal("1"), targets=[])

    def test_zero_total_weight(self):
        with pytest.raises(ValueError, match="sum to zero"):
            FeeProrationEngine().prorate(total=Decimal("1"), targets=_targets("0", "0"))

    def test_negative_weight(self):
        with pytest.raises(ValueError, match="negative"):
            ProrationTarget("x", Decimal("-5"))

    def test_trace_emitted(self, captured_logs):
        FeeProrationEngine().prorate(total=Decimal("10"), targets=_targets("1", "1"))
        traces = [r for r in captured_logs() if r["message"] == "FAIR_ENGINE_TRACE"]
        assert traces
        assert traces[0]["engine_name"] == "proration"
        assert len(traces[0]["input_fingerprint"]) == 16
