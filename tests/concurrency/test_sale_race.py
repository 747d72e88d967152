"""
Concurrent sales against scarce stock.

Each worker thread opens its own session and transaction through
session_scope().  A Barrier releases them together so both stock checks
race for the same product.

Expected Behavior:
- Stock 1, two single-unit sales: exactly one succeeds, the other raises
  InsufficientStockError, and stock ends at 0 (never -1).
- Two batches locking the same products in opposite request order never
  deadlock.
- Two exchanges of the same sale: exactly one succeeds, the other raises
  SaleNotActiveError.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
from threading import Barrier

import pytest

from fair_kernel.db.engine import session_scope
from fair_kernel.domain.dtos import SaleItem
from fair_kernel.domain.enums import PaymentMethod
from fair_kernel.exceptions import InsufficientStockError, SaleNotActiveError
from fair_kernel.selectors.repository import Repository
from fair_kernel.services.catalog_service import ArtisanService, ProductService
from fair_kernel.services.event_service import EventService
from fair_kernel.services.inventory_ledger import InventoryLedger
from fair_kernel.services.sale_recorder import SaleRecorder

pytestmark = [pytest.mark.slow_locks]

WORKERS = 2


def setup_fair(clock, stocks):
    """Commit an active event, an artisan and one product per stock level."""
    with session_scope() as session:
        repository = Repository(session)
        artisan = ArtisanService(repository, clock).register("Rosa", "24680")
        start = clock.now() - timedelta(hours=1)
        event = EventService(repository, clock).create_event(
            "Feria Concurrente", "Plaza", start, start + timedelta(hours=9),
            Decimal("10"), Decimal("5"),
        )
        products = ProductService(repository, clock)
        product_ids = [
            products.create_product(
                event.id, artisan.id, f"Pieza {i}", Decimal("20"), "wood", initial_stock=stock
            ).id
            for i, stock in enumerate(stocks)
        ]
        return event.id, artisan.id, product_ids


def current_stock(clock, product_id):
    with session_scope() as session:
        return InventoryLedger(Repository(session), clock).current_stock(product_id)


def run_concurrently(workers):
    """Run callables in parallel; return ("ok", value) or ("error", exc) per worker."""
    barrier = Barrier(len(workers))

    def _run(worker):
        barrier.wait()
        try:
            return ("ok", worker())
        except (InsufficientStockError, SaleNotActiveError) as exc:
            return ("error", exc)

    with ThreadPoolExecutor(max_workers=len(workers)) as pool:
        return list(pool.map(_run, workers))


class TestConcurrentSales:
    def test_last_unit_sold_once(self, db_engine, clock):
        event_id, artisan_id, (product_id,) = setup_fair(clock, [1])

        def sell():
            with session_scope() as session:
                return SaleRecorder(Repository(session), clock).record_sale(
                    event_id, PaymentMethod.CASH, [SaleItem(product_id, artisan_id, 1)]
                )

        outcomes = run_concurrently([sell] * WORKERS)

        successes = [value for status, value in outcomes if status == "ok"]
        failures = [value for status, value in outcomes if status == "error"]
        assert len(successes) == 1
        assert len(failures) == WORKERS - 1
        assert all(isinstance(f, InsufficientStockError) for f in failures)
        assert failures[0].available == 0
        assert current_stock(clock, product_id) == 0

    def test_opposite_lock_order_does_not_deadlock(self, db_engine, clock):
        event_id, artisan_id, (first, second) = setup_fair(clock, [1, 1])

        def sell(product_ids):
            def _sell():
                with session_scope() as session:
                    return SaleRecorder(Repository(session), clock).record_sale(
                        event_id,
                        PaymentMethod.CARD,
                        [SaleItem(pid, artisan_id, 1) for pid in product_ids],
                        card_fee_total=Decimal("0.80"),
                    )
            return _sell

        outcomes = run_concurrently([sell([first, second]), sell([second, first])])

        assert [status for status, _ in outcomes].count("ok") == 1
        assert current_stock(clock, first) == 0
        assert current_stock(clock, second) == 0


class TestConcurrentExchanges:
    def test_sale_exchanged_once(self, db_engine, clock):
        event_id, artisan_id, (sold, spare) = setup_fair(clock, [1, 5])
        with session_scope() as session:
            sale_id = SaleRecorder(Repository(session), clock).record_sale(
                event_id, PaymentMethod.CASH, [SaleItem(sold, artisan_id, 1)]
            ).sales[0].id

        def exchange():
            with session_scope() as session:
                return SaleRecorder(Repository(session), clock).record_exchange(
                    sale_id, sold, spare, 1
                )

        outcomes = run_concurrently([exchange] * WORKERS)

        failures = [value for status, value in outcomes if status == "error"]
        assert [status for status, _ in outcomes].count("ok") == 1
        assert all(isinstance(f, SaleNotActiveError) for f in failures)
        assert current_stock(clock, spare) == 4
