"""
SummaryService -- accounting summaries per artisan and per event.

Responsibility:
    Load the counted sales and exchanges of an event through the kernel
    Repository, turn them into SummaryLine values and hand them to the
    CommissionEngine.

Architecture position:
    Services -- orchestration over fair_kernel reads and fair_engines.
    Read-only: never adds, flushes or commits.

Invariants enforced:
    - Counted sales are ACTIVE and CHANGED; CANCELLED sales are excluded.
    - Only exchanges of counted sales contribute.
    - Lines are ordered sales first, then exchanges, each by time; that
      order decides top-product and top-artisan ties.
    - Product summaries take stock from the movement fold and units sold
      from counted sales.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from fair_engines.commission import (
    ArtisanProductSummary,
    ArtisanRef,
    ArtisanSummary,
    CommissionEngine,
    EventAccountingSummary,
    EventSummary,
    EventTerms,
    LineKind,
    ProductSalesLine,
    SummaryLine,
    TopSellingProduct,
)
from fair_kernel.db.types import ZERO, round_money
from fair_kernel.domain.enums import PaymentMethod, SaleState
from fair_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from fair_kernel.domain.stock import fold_stock_by_product
from fair_kernel.exceptions import (
    ArtisanNotFoundError,
    EventNotFoundError,
    ValidationError,
)
from fair_kernel.logging_config import LogContext, get_logger
from fair_kernel.models.artisan import Artisan
from fair_kernel.models.event import Event
from fair_kernel.models.product import Product
from fair_kernel.models.product_change import ProductChange
from fair_kernel.models.sale import Sale
from fair_kernel.selectors.repository import Repository

logger = get_logger("services.summary")

_COUNTED_STATES = (SaleState.ACTIVE.value, SaleState.CHANGED.value)


class SummaryService:
    """Read-side accounting for events."""

    def __init__(self, repository: Repository, policy: LedgerPolicy | None = None):
        self.repository = repository
        self.policy = policy or DEFAULT_POLICY
        self.engine = CommissionEngine(
            decimal_places=self.policy.money_decimal_places,
            rounding=self.policy.rounding,
        )

    def artisan_summary(self, event_id: UUID, artisan_id: UUID) -> ArtisanSummary:
        """Summary of one artisan at one event (zero totals if nothing sold)."""
        with LogContext.bind(event_id=event_id, artisan_id=artisan_id):
            event = self._event(event_id)
            artisan = self.repository.find_by_id(Artisan, artisan_id)
            if artisan is None:
                raise ArtisanNotFoundError(str(artisan_id))
            lines = [
                line for line in self._lines(event) if line.artisan_id == artisan_id
            ]
            return self.engine.artisan_summary(_ref(artisan), lines, _terms(event))

    def event_summary(self, event_id: UUID) -> EventSummary:
        with LogContext.bind(event_id=event_id):
            event = self._event(event_id)
            lines = self._lines(event)
            return self.engine.event_summary(_terms(event), lines, self._artisans(lines))

    def event_accounting_summary(self, event_id: UUID) -> EventAccountingSummary:
        with LogContext.bind(event_id=event_id):
            event = self._event(event_id)
            lines = self._lines(event)
            return self.engine.accounting_summary(
                _terms(event), lines, self._artisans(lines)
            )

    def artisan_product_summary(
        self, event_id: UUID, artisan_id: UUID
    ) -> ArtisanProductSummary:
        """
        Stock and units sold of each of an artisan's products at an event.

        Stock is the ledger fold; units sold count ACTIVE and CHANGED sales
        only, so a product handed over in an exchange is not "sold".
        Products are ordered by name.
        """
        with LogContext.bind(event_id=event_id, artisan_id=artisan_id):
            event = self._event(event_id)
            artisan = self.repository.find_by_id(Artisan, artisan_id)
            if artisan is None:
                raise ArtisanNotFoundError(str(artisan_id))

            products = self.repository.find_many(
                Product,
                Product.event_id == event.id,
                Product.artisan_id == artisan.id,
                order_by=(Product.name, Product.id),
            )
            stock = fold_stock_by_product(
                self.repository.movements_for_products(p.id for p in products)
            )
            sold: dict[UUID, int] = {}
            for sale in self._counted_sales(event, Sale.artisan_id == artisan.id):
                sold[sale.product_id] = sold.get(sale.product_id, 0) + sale.quantity_sold

            lines = [
                ProductSalesLine(
                    product_id=p.id,
                    name=p.name,
                    price=p.price,
                    stock=stock.get(p.id, 0),
                    quantity_sold=sold.get(p.id, 0),
                )
                for p in products
            ]
            summary = ArtisanProductSummary(
                event_id=event.id,
                artisan_id=artisan.id,
                artisan_name=artisan.name,
                sold_products=tuple(line for line in lines if line.quantity_sold > 0),
                unsold_products=tuple(line for line in lines if line.quantity_sold == 0),
            )
            logger.info("artisan_product_summary_built", extra={
                "sold": len(summary.sold_products),
                "unsold": len(summary.unsold_products),
            })
            return summary

    def top_selling_products(
        self, event_id: UUID, limit: int = 10
    ) -> list[TopSellingProduct]:
        """
        Products of an event ranked by units sold in counted sales.

        Ties keep the order of each product's first sale.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"limit must be a positive integer: {limit!r}", field="limit")

        with LogContext.bind(event_id=event_id):
            event = self._event(event_id)
            quantities: dict[UUID, int] = {}
            amounts: dict[UUID, Decimal] = {}
            counts: dict[UUID, int] = {}
            for sale in self._counted_sales(event):
                pid = sale.product_id
                quantities[pid] = quantities.get(pid, 0) + sale.quantity_sold
                amounts[pid] = amounts.get(pid, ZERO) + sale.value_charged
                counts[pid] = counts.get(pid, 0) + 1

            names = {
                p.id: p.name
                for p in self.repository.find_many(Product, Product.id.in_(list(quantities)))
            } if quantities else {}

            ranked = sorted(quantities, key=lambda pid: -quantities[pid])[:limit]
            return [
                TopSellingProduct(
                    product_id=pid,
                    product_name=names.get(pid, ""),
                    total_quantity_sold=quantities[pid],
                    total_amount=round_money(
                        amounts[pid],
                        self.policy.money_decimal_places,
                        self.policy.rounding,
                    ),
                    sales_count=counts[pid],
                )
                for pid in ranked
            ]

    def _event(self, event_id: UUID) -> Event:
        event = self.repository.find_by_id(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _counted_sales(self, event: Event, *criteria: Any) -> list[Sale]:
        return self.repository.find_many(
            Sale,
            Sale.event_id == event.id,
            Sale.state.in_(_COUNTED_STATES),
            *criteria,
            order_by=(Sale.sold_at, Sale.id),
        )

    def _lines(self, event: Event) -> list[SummaryLine]:
        sales = self._counted_sales(event)
        sales_by_id = {sale.id: sale for sale in sales}
        changes = []
        if sales_by_id:
            changes = self.repository.find_many(
                ProductChange,
                ProductChange.sale_id.in_(list(sales_by_id)),
                order_by=(ProductChange.created_at, ProductChange.id),
            )

        product_ids = {s.product_id for s in sales} | {c.product_delivered_id for c in changes}
        names = {
            p.id: p.name
            for p in self.repository.find_many(Product, Product.id.in_(list(product_ids)))
        } if product_ids else {}

        lines = [
            SummaryLine(
                kind=LineKind.SALE,
                sale_id=sale.id,
                artisan_id=sale.artisan_id,
                product_id=sale.product_id,
                product_name=names.get(sale.product_id, ""),
                quantity=sale.quantity_sold,
                unit_price=sale.value_charged / sale.quantity_sold,
                value_charged=sale.value_charged,
                payment_method=PaymentMethod(sale.payment_method),
                card_fee=sale.card_fee,
                occurred_at=sale.sold_at,
            )
            for sale in sales
        ]
        for change in changes:
            method = change.payment_method_difference
            lines.append(
                SummaryLine(
                    kind=LineKind.EXCHANGE,
                    sale_id=change.sale_id,
                    change_id=change.id,
                    artisan_id=sales_by_id[change.sale_id].artisan_id,
                    product_id=change.product_delivered_id,
                    product_name=names.get(change.product_delivered_id, ""),
                    quantity=change.quantity,
                    unit_price=change.delivered_product_price,
                    value_charged=change.delivered_product_price * change.quantity,
                    payment_method=PaymentMethod(method) if method else None,
                    card_fee=change.card_fee_difference,
                    occurred_at=change.created_at,
                    value_difference=change.value_difference,
                )
            )

        logger.debug("summary_lines_loaded", extra={
            "sales": len(sales),
            "exchanges": len(changes),
        })
        return lines

    def _artisans(self, lines: list[SummaryLine]) -> dict[UUID, ArtisanRef]:
        ids = list({line.artisan_id for line in lines})
        if not ids:
            return {}
        return {
            a.id: _ref(a)
            for a in self.repository.find_many(Artisan, Artisan.id.in_(ids))
        }


def _ref(artisan: Artisan) -> ArtisanRef:
    return ArtisanRef(
        artisan_id=artisan.id,
        name=artisan.name,
        identification=artisan.identification,
    )


def _terms(event: Event) -> EventTerms:
    return EventTerms(
        event_id=event.id,
        event_name=event.name,
        start_date=event.start_date,
        end_date=event.end_date,
        commission_association=event.commission_association,
        commission_seller=event.commission_seller,
    )
