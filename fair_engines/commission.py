"""
Module: fair_engines.commission
Responsibility:
    Fold counted sales and exchanges into per-artisan and per-event
    accounting summaries: gross, association commission, seller commission,
    card fees and artisan net.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  SummaryService loads the
    rows and turns them into SummaryLine values; this module never sees ORM
    objects or a session.

Invariants enforced:
    - total_sold = Σ value_charged (sale lines) + Σ value_difference
      (exchange lines).  A sale later exchanged still counts its original
      value_charged; the exchange adds only what was paid on top.
    - commission = total_sold x percent / 100, for each commission.
    - net = total_sold - both commissions - Σ card fees.
    - Aggregation is unrounded; amounts are rounded to the configured money
      precision only when a summary is built.
    - Callers pass only counted lines (ACTIVE and CHANGED sales, and the
      exchanges of those sales).  CANCELLED sales never reach the engine.

Failure modes:
    - ValueError on a line whose artisan is not in the artisan directory.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from fair_engines.tracer import traced_engine
from fair_kernel.db.types import DEFAULT_ROUNDING, MONEY_DECIMAL_PLACES, ZERO, round_money
from fair_kernel.domain.enums import PaymentMethod
from fair_kernel.logging_config import get_logger

logger = get_logger("engines.commission")

_HUNDRED = Decimal("100")


class LineKind(str, Enum):
    SALE = "SALE"
    EXCHANGE = "EXCHANGE"


@dataclass(frozen=True)
class SummaryLine:
    """
    One counted sale or exchange.

    For a SALE line ``value_charged`` and ``card_fee`` are the sale's own.
    For an EXCHANGE line ``value_charged`` is delivered price x quantity
    (informational) and only ``value_difference`` and ``card_fee`` (the
    card_fee_difference) enter the totals.
    """

    kind: LineKind
    sale_id: UUID
    artisan_id: UUID
    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    value_charged: Decimal
    payment_method: PaymentMethod | None
    card_fee: Decimal
    occurred_at: datetime
    value_difference: Decimal = ZERO
    change_id: UUID | None = None

    @property
    def counted_value(self) -> Decimal:
        """What this line adds to total_sold."""
        if self.kind == LineKind.EXCHANGE:
            return self.value_difference
        return self.value_charged

    def to_payload(self, decimal_places: int, rounding: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.kind.value,
            "saleId": self.sale_id,
            "date": self.occurred_at,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantitySold": self.quantity,
            "unitPrice": round_money(self.unit_price, decimal_places, rounding),
            "valueCharged": round_money(self.value_charged, decimal_places, rounding),
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "cardFee": round_money(self.card_fee, decimal_places, rounding),
        }
        if self.kind == LineKind.EXCHANGE:
            payload["changeId"] = self.change_id
            payload["valueDifference"] = round_money(
                self.value_difference, decimal_places, rounding
            )
        return payload


@dataclass(frozen=True)
class ArtisanRef:
    artisan_id: UUID
    name: str
    identification: str


@dataclass(frozen=True)
class CommissionSplit:
    """Unrounded split of a gross amount."""

    total_sold: Decimal
    card_fees: Decimal
    commission_association: Decimal
    commission_seller: Decimal
    net_received: Decimal


@dataclass(frozen=True)
class ArtisanSummary:
    """Accounting summary of one artisan at one event.  Amounts are rounded."""

    artisan_id: UUID
    artisan_name: str
    artisan_identification: str
    lines: tuple[SummaryLine, ...]
    total_sold: Decimal
    total_card_fees: Decimal
    commission_association: Decimal
    commission_seller: Decimal
    net_received: Decimal
    decimal_places: int = MONEY_DECIMAL_PLACES
    rounding: str = DEFAULT_ROUNDING

    def to_payload(self) -> dict[str, Any]:
        return {
            "artisanId": self.artisan_id,
            "artisanName": self.artisan_name,
            "artisanIdentification": self.artisan_identification,
            "sales": [
                line.to_payload(self.decimal_places, self.rounding)
                for line in self.lines
            ],
            "totalSold": self.total_sold,
            "totalCardFees": self.total_card_fees,
            "commissionAssociation": self.commission_association,
            "commissionSeller": self.commission_seller,
            "netReceived": self.net_received,
        }


@dataclass(frozen=True)
class TopProduct:
    product_id: UUID
    name: str
    quantity_sold: int


@dataclass(frozen=True)
class TopArtisan:
    artisan_id: UUID
    name: str
    total_sold: Decimal


@dataclass(frozen=True)
class ProductSalesLine:
    """Stock and units sold of one product."""

    product_id: UUID
    name: str
    price: Decimal
    stock: int
    quantity_sold: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "quantitySold": self.quantity_sold,
        }


@dataclass(frozen=True)
class ArtisanProductSummary:
    """An artisan's products at one event, split by whether any unit sold."""

    event_id: UUID
    artisan_id: UUID
    artisan_name: str
    sold_products: tuple[ProductSalesLine, ...]
    unsold_products: tuple[ProductSalesLine, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "eventId": self.event_id,
            "artisanId": self.artisan_id,
            "artisanName": self.artisan_name,
            "soldProducts": [p.to_payload() for p in self.sold_products],
            "unsoldProducts": [p.to_payload() for p in self.unsold_products],
        }


@dataclass(frozen=True)
class TopSellingProduct:
    product_id: UUID
    product_name: str
    total_quantity_sold: int
    total_amount: Decimal
    sales_count: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "totalQuantitySold": self.total_quantity_sold,
            "totalAmount": self.total_amount,
            "salesCount": self.sales_count,
        }


@dataclass(frozen=True)
class EventSummary:
    """Event-wide totals.  Amounts are rounded."""

    event_id: UUID
    event_name: str
    total_cash: Decimal
    total_card: Decimal
    total_card_fees: Decimal
    total_gross: Decimal
    total_commission_association: Decimal
    total_commission_seller: Decimal
    total_net_for_artisans: Decimal
    unique_artisans: int
    sales_count: int
    top_product: TopProduct | None = None
    top_artisan: TopArtisan | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "eventId": self.event_id,
            "eventName": self.event_name,
            "totalCash": self.total_cash,
            "totalCard": self.total_card,
            "totalCardFees": self.total_card_fees,
            "totalGross": self.total_gross,
            "totalCommissionAssociation": self.total_commission_association,
            "totalCommissionSeller": self.total_commission_seller,
            "totalNetForArtisans": self.total_net_for_artisans,
            "uniqueArtisans": self.unique_artisans,
            "salesCount": self.sales_count,
            "topProduct": None,
            "topArtisan": None,
        }
        if self.top_product is not None:
            payload["topProduct"] = {
                "productId": self.top_product.product_id,
                "name": self.top_product.name,
                "quantitySold": self.top_product.quantity_sold,
            }
        if self.top_artisan is not None:
            payload["topArtisan"] = {
                "artisanId": self.top_artisan.artisan_id,
                "name": self.top_artisan.name,
                "totalSold": self.top_artisan.total_sold,
            }
        return payload


@dataclass(frozen=True)
class EventAccountingSummary:
    """One ArtisanSummary per artisan with counted lines, plus event totals."""

    event_id: UUID
    event_name: str
    start_date: datetime
    end_date: datetime
    commission_association_percent: Decimal
    commission_seller_percent: Decimal
    artisans: tuple[ArtisanSummary, ...]
    total_sold: Decimal
    total_card_fees: Decimal
    total_commission_association: Decimal
    total_commission_seller: Decimal
    total_net_received: Decimal

    def to_payload(self) -> dict[str, Any]:
        return {
            "eventId": self.event_id,
            "eventName": self.event_name,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "commissionAssociationPercent": self.commission_association_percent,
            "commissionSellerPercent": self.commission_seller_percent,
            "artisans": [a.to_payload() for a in self.artisans],
            "totalSold": self.total_sold,
            "totalCardFees": self.total_card_fees,
            "totalCommissionAssociation": self.total_commission_association,
            "totalCommissionSeller": self.total_commission_seller,
            "totalNetReceived": self.total_net_received,
        }


@dataclass(frozen=True)
class EventTerms:
    """The event fields the engine needs."""

    event_id: UUID
    event_name: str
    start_date: datetime
    end_date: datetime
    commission_association: Decimal
    commission_seller: Decimal


class CommissionEngine:
    """
    Compute commission splits and summaries.

    Contract:
        Pure functions over SummaryLine sequences.  Line order is preserved
        in the output and decides ties (first occurrence wins).
    """

    def __init__(
        self,
        decimal_places: int = MONEY_DECIMAL_PLACES,
        rounding: str = DEFAULT_ROUNDING,
    ):
        self.decimal_places = decimal_places
        self.rounding = rounding

    def _round(self, amount: Decimal) -> Decimal:
        return round_money(amount, self.decimal_places, self.rounding)

    @traced_engine(
        "commission", "1.0",
        fingerprint_fields=("total_sold", "card_fees", "association_percent", "seller_percent"),
    )
    def split(
        self,
        total_sold: Decimal,
        card_fees: Decimal,
        association_percent: Decimal,
        seller_percent: Decimal,
    ) -> CommissionSplit:
        """Split a gross amount into commissions, fees and net.  Unrounded."""
        commission_association = total_sold * association_percent / _HUNDRED
        commission_seller = total_sold * seller_percent / _HUNDRED
        return CommissionSplit(
            total_sold=total_sold,
            card_fees=card_fees,
            commission_association=commission_association,
            commission_seller=commission_seller,
            net_received=total_sold - commission_association - commission_seller - card_fees,
        )

    def _split_lines(self, lines: Sequence[SummaryLine], terms: EventTerms) -> CommissionSplit:
        return self.split(
            total_sold=sum((line.counted_value for line in lines), ZERO),
            card_fees=sum((line.card_fee for line in lines), ZERO),
            association_percent=terms.commission_association,
            seller_percent=terms.commission_seller,
        )

    def artisan_summary(
        self,
        artisan: ArtisanRef,
        lines: Sequence[SummaryLine],
        terms: EventTerms,
    ) -> ArtisanSummary:
        """Summary of one artisan's lines.  An artisan with no lines sums to zero."""
        split = self._split_lines(lines, terms)
        return ArtisanSummary(
            artisan_id=artisan.artisan_id,
            artisan_name=artisan.name,
            artisan_identification=artisan.identification,
            lines=tuple(lines),
            total_sold=self._round(split.total_sold),
            total_card_fees=self._round(split.card_fees),
            commission_association=self._round(split.commission_association),
            commission_seller=self._round(split.commission_seller),
            net_received=self._round(split.net_received),
            decimal_places=self.decimal_places,
            rounding=self.rounding,
        )

    def accounting_summary(
        self,
        terms: EventTerms,
        lines: Sequence[SummaryLine],
        artisans: Mapping[UUID, ArtisanRef],
    ) -> EventAccountingSummary:
        """Per-artisan summaries in order of each artisan's first line, plus totals."""
        by_artisan = _group_by_artisan(lines)
        summaries = tuple(
            self.artisan_summary(_artisan(artisans, artisan_id), artisan_lines, terms)
            for artisan_id, artisan_lines in by_artisan.items()
        )
        total = self._split_lines(lines, terms)
        return EventAccountingSummary(
            event_id=terms.event_id,
            event_name=terms.event_name,
            start_date=terms.start_date,
            end_date=terms.end_date,
            commission_association_percent=terms.commission_association,
            commission_seller_percent=terms.commission_seller,
            artisans=summaries,
            total_sold=self._round(total.total_sold),
            total_card_fees=self._round(total.card_fees),
            total_commission_association=self._round(total.commission_association),
            total_commission_seller=self._round(total.commission_seller),
            total_net_received=self._round(total.net_received),
        )

    def event_summary(
        self,
        terms: EventTerms,
        lines: Sequence[SummaryLine],
        artisans: Mapping[UUID, ArtisanRef],
    ) -> EventSummary:
        """Event totals, payment-method split, and the top product and artisan."""
        total = self._split_lines(lines, terms)

        total_cash = ZERO
        total_card = ZERO
        for line in lines:
            if line.payment_method == PaymentMethod.CASH:
                total_cash += line.counted_value
            elif line.payment_method == PaymentMethod.CARD:
                total_card += line.counted_value

        sale_lines = [line for line in lines if line.kind == LineKind.SALE]
        by_artisan = _group_by_artisan(lines)

        summary = EventSummary(
            event_id=terms.event_id,
            event_name=terms.event_name,
            total_cash=self._round(total_cash),
            total_card=self._round(total_card),
            total_card_fees=self._round(total.card_fees),
            total_gross=self._round(total.total_sold),
            total_commission_association=self._round(total.commission_association),
            total_commission_seller=self._round(total.commission_seller),
            total_net_for_artisans=self._round(total.net_received),
            unique_artisans=len({line.artisan_id for line in sale_lines}),
            sales_count=len(sale_lines),
            top_product=_top_product(sale_lines),
            top_artisan=self._top_artisan(by_artisan, artisans),
        )

        logger.info("event_summary_computed", extra={
            "event_id": str(terms.event_id),
            "line_count": len(lines),
            "sales_count": summary.sales_count,
            "total_gross": str(summary.total_gross),
        })
        return summary

    def _top_artisan(
        self,
        by_artisan: Mapping[UUID, list[SummaryLine]],
        artisans: Mapping[UUID, ArtisanRef],
    ) -> TopArtisan | None:
        top: TopArtisan | None = None
        for artisan_id, artisan_lines in by_artisan.items():
            total_sold = sum((line.counted_value for line in artisan_lines), ZERO)
            if top is None or total_sold > top.total_sold:
                top = TopArtisan(artisan_id, _artisan(artisans, artisan_id).name, total_sold)
        if top is None:
            return None
        return TopArtisan(top.artisan_id, top.name, self._round(top.total_sold))


def _group_by_artisan(lines: Sequence[SummaryLine]) -> dict[UUID, list[SummaryLine]]:
    grouped: dict[UUID, list[SummaryLine]] = {}
    for line in lines:
        grouped.setdefault(line.artisan_id, []).append(line)
    return grouped


def _artisan(artisans: Mapping[UUID, ArtisanRef], artisan_id: UUID) -> ArtisanRef:
    try:
        return artisans[artisan_id]
    except KeyError:
        raise ValueError(f"Artisan {artisan_id} missing from artisan directory") from None


def _top_product(sale_lines: Sequence[SummaryLine]) -> TopProduct | None:
    quantities: dict[UUID, int] = {}
    names: dict[UUID, str] = {}
    for line in sale_lines:
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
        names.setdefault(line.product_id, line.product_name)

    top: TopProduct | None = None
    for product_id, quantity in quantities.items():
        if top is None or quantity > top.quantity_sold:
            top = TopProduct(product_id, names[product_id], quantity)
    return top
