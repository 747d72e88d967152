"""
Property-based tests using Hypothesis.

Properties:
- Stock fold equals Σ ENTRADA - Σ SALIDA for any ledger, in any order.
- Card-fee proration conserves the fee exactly and never gives a line a
  negative share.
- The commission split always reconciles: commissions + fees + net == total.
"""

from decimal import Decimal
from types import SimpleNamespace

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from fair_engines.commission import CommissionEngine
from fair_engines.proration import FeeProrationEngine, ProrationTarget
from fair_kernel.domain.enums import MovementType
from fair_kernel.domain.stock import fold_stock

movements = st.lists(
    st.builds(
        SimpleNamespace,
        type=st.sampled_from([MovementType.ENTRADA, MovementType.SALIDA]),
        quantity=st.integers(min_value=1, max_value=1000),
    ),
    max_size=40,
)

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("99999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

percent = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestStockFoldProperties:
    @given(ledger=movements, data=st.data())
    @settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_fold_matches_sums_in_any_order(self, ledger, data):
        entries = sum(m.quantity for m in ledger if m.type == MovementType.ENTRADA)
        exits = sum(m.quantity for m in ledger if m.type == MovementType.SALIDA)

        shuffled = data.draw(st.permutations(ledger))
        assert fold_stock(ledger) == fold_stock(shuffled) == entries - exits


class TestProrationProperties:
    @given(fee=money, values=st.lists(money, min_size=1, max_size=12))
    @settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_fee_is_conserved(self, fee, values):
        targets = [ProrationTarget(i, value) for i, value in enumerate(values)]
        result = FeeProrationEngine().prorate(fee, targets)

        assert sum(result.shares) == fee
        assert all(share >= 0 for share in result.shares)
        assert len(result.lines) == len(values)
        assert [line.target_id for line in result.lines] == list(range(len(values)))

    @given(fee=money, values=st.lists(money, min_size=1, max_size=12))
    @settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_proration_is_deterministic(self, fee, values):
        targets = [ProrationTarget(i, value) for i, value in enumerate(values)]
        engine = FeeProrationEngine()
        assert engine.prorate(fee, targets) == engine.prorate(fee, targets)


class TestCommissionProperties:
    @given(total=money, association=percent, seller=percent, fees=money)
    @settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_split_reconciles(self, total, association, seller, fees):
        split = CommissionEngine().split(
            total_sold=total,
            card_fees=fees,
            association_percent=association,
            seller_percent=seller,
        )
        assert (
            split.commission_association + split.commission_seller
            + split.card_fees + split.net_received
        ) == split.total_sold
