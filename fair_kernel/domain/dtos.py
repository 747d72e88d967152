"""
DTOs -- immutable data crossing the kernel boundary.

Responsibility:
    Request objects parsed from camelCase payloads (SaleBatchRequest,
    ExchangeRequest) and read-only snapshots of persisted rows (EventInfo,
    MovementInfo, SaleInfo, ProductChangeInfo, ProductStock).

Architecture position:
    Kernel > Domain -- zero I/O.  from_model() class methods are boundary
    converters called only from services and selectors.

Failure modes:
    - PayloadValidationError from from_payload(), listing every bad field
      at once rather than stopping at the first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fair_kernel.domain.enums import (
    EventState,
    MovementType,
    PaymentMethod,
    SaleState,
)
from fair_kernel.exceptions import PayloadValidationError

if TYPE_CHECKING:
    from fair_kernel.models.event import Event as EventModel
    from fair_kernel.models.inventory_movement import (
        InventoryMovement as InventoryMovementModel,
    )
    from fair_kernel.models.product_change import (
        ProductChange as ProductChangeModel,
    )
    from fair_kernel.models.sale import Sale as SaleModel


# ---------------------------------------------------------------------------
# Payload parsing helpers
# ---------------------------------------------------------------------------


class _FieldErrors:
    """Collects field errors while a payload is parsed."""

    def __init__(self) -> None:
        self.errors: list[dict[str, str]] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def raise_if_any(self, payload_type: str) -> None:
        if self.errors:
            raise PayloadValidationError(payload_type, self.errors)


def _uuid(payload: dict, key: str, errors: _FieldErrors, path: str = "") -> UUID | None:
    field = f"{path}{key}"
    value = payload.get(key)
    if value is None:
        errors.add(field, "is required")
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        errors.add(field, "must be a UUID")
        return None


def _positive_int(payload: dict, key: str, errors: _FieldErrors, path: str = "") -> int | None:
    field = f"{path}{key}"
    value = payload.get(key)
    if value is None:
        errors.add(field, "is required")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        errors.add(field, "must be an integer")
        return None
    if value < 1:
        errors.add(field, "must be >= 1")
        return None
    return value


def _payment_method(
    payload: dict, key: str, errors: _FieldErrors, required: bool
) -> PaymentMethod | None:
    value = payload.get(key)
    if value is None:
        if required:
            errors.add(key, "is required")
        return None
    try:
        return PaymentMethod(value)
    except ValueError:
        errors.add(key, f"must be one of {[m.value for m in PaymentMethod]}")
        return None


def _non_negative_amount(payload: dict, key: str, errors: _FieldErrors) -> Decimal | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        errors.add(key, "must be a number")
        return None
    try:
        # JSON numbers arrive as int/float; str() keeps the literal digits
        amount = Decimal(str(value))
    except InvalidOperation:
        errors.add(key, "must be a number")
        return None
    if not amount.is_finite():
        errors.add(key, "must be a number")
        return None
    if amount < 0:
        errors.add(key, "must be >= 0")
        return None
    return amount


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SaleItem:
    product_id: UUID
    artisan_id: UUID
    quantity_sold: int


@dataclass(frozen=True)
class SaleBatchRequest:
    """
    One point-of-sale transaction: several lines paid together.

    Payload shape::

        {eventId, paymentMethod, cardFeeTotal?,
         items: [{productId, artisanId, quantitySold}]}
    """

    event_id: UUID
    payment_method: PaymentMethod
    items: tuple[SaleItem, ...]
    card_fee_total: Decimal | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SaleBatchRequest:
        errors = _FieldErrors()
        if not isinstance(payload, dict):
            errors.add("", "payload must be an object")
            errors.raise_if_any("SaleBatchRequest")

        event_id = _uuid(payload, "eventId", errors)
        payment_method = _payment_method(payload, "paymentMethod", errors, required=True)
        card_fee_total = _non_negative_amount(payload, "cardFeeTotal", errors)

        items: list[SaleItem] = []
        raw_items = payload.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            errors.add("items", "must be a non-empty list")
        else:
            for index, raw in enumerate(raw_items):
                path = f"items[{index}]."
                if not isinstance(raw, dict):
                    errors.add(f"items[{index}]", "must be an object")
                    continue
                product_id = _uuid(raw, "productId", errors, path)
                artisan_id = _uuid(raw, "artisanId", errors, path)
                quantity = _positive_int(raw, "quantitySold", errors, path)
                if product_id and artisan_id and quantity:
                    items.append(SaleItem(product_id, artisan_id, quantity))

        errors.raise_if_any("SaleBatchRequest")
        return cls(
            event_id=event_id,
            payment_method=payment_method,
            items=tuple(items),
            card_fee_total=card_fee_total,
        )


@dataclass(frozen=True)
class ExchangeRequest:
    """
    Payload shape::

        {saleId, productReturnedId, productDeliveredId, quantity,
         paymentMethodDifference?, cardFeeDifference?}
    """

    sale_id: UUID
    product_returned_id: UUID
    product_delivered_id: UUID
    quantity: int
    payment_method_difference: PaymentMethod | None = None
    card_fee_difference: Decimal | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ExchangeRequest:
        errors = _FieldErrors()
        if not isinstance(payload, dict):
            errors.add("", "payload must be an object")
            errors.raise_if_any("ExchangeRequest")

        sale_id = _uuid(payload, "saleId", errors)
        returned_id = _uuid(payload, "productReturnedId", errors)
        delivered_id = _uuid(payload, "productDeliveredId", errors)
        quantity = _positive_int(payload, "quantity", errors)
        method = _payment_method(payload, "paymentMethodDifference", errors, required=False)
        fee = _non_negative_amount(payload, "cardFeeDifference", errors)

        errors.raise_if_any("ExchangeRequest")
        return cls(
            sale_id=sale_id,
            product_returned_id=returned_id,
            product_delivered_id=delivered_id,
            quantity=quantity,
            payment_method_difference=method,
            card_fee_difference=fee,
        )


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventInfo:
    """Immutable snapshot of an event, enough for the lifecycle guard and summaries."""

    id: UUID
    name: str
    location: str
    start_date: datetime
    end_date: datetime
    commission_association: Decimal
    commission_seller: Decimal
    state: EventState

    @classmethod
    def from_model(cls, model: EventModel) -> EventInfo:
        return cls(
            id=model.id,
            name=model.name,
            location=model.location,
            start_date=model.start_date,
            end_date=model.end_date,
            commission_association=model.commission_association,
            commission_seller=model.commission_seller,
            state=EventState(model.state),
        )


@dataclass(frozen=True)
class MovementInfo:
    id: UUID
    type: MovementType
    quantity: int
    product_id: UUID
    sale_id: UUID | None
    change_id: UUID | None
    reason: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, model: InventoryMovementModel) -> MovementInfo:
        return cls(
            id=model.id,
            type=MovementType(model.type),
            quantity=model.quantity,
            product_id=model.product_id,
            sale_id=model.sale_id,
            change_id=model.change_id,
            reason=model.reason,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class SaleInfo:
    id: UUID
    batch_id: UUID
    event_id: UUID
    product_id: UUID
    artisan_id: UUID
    quantity_sold: int
    value_charged: Decimal
    payment_method: PaymentMethod
    card_fee: Decimal
    sold_at: datetime
    state: SaleState

    @classmethod
    def from_model(cls, model: SaleModel) -> SaleInfo:
        return cls(
            id=model.id,
            batch_id=model.batch_id,
            event_id=model.event_id,
            product_id=model.product_id,
            artisan_id=model.artisan_id,
            quantity_sold=model.quantity_sold,
            value_charged=model.value_charged,
            payment_method=PaymentMethod(model.payment_method),
            card_fee=model.card_fee,
            sold_at=model.sold_at,
            state=SaleState(model.state),
        )


@dataclass(frozen=True)
class SaleBatchResult:
    """Sales written by one record_sale() call, in request order."""

    batch_id: UUID
    sales: tuple[SaleInfo, ...]

    @property
    def total_charged(self) -> Decimal:
        return sum((s.value_charged for s in self.sales), Decimal("0"))

    @property
    def total_card_fee(self) -> Decimal:
        return sum((s.card_fee for s in self.sales), Decimal("0"))


@dataclass(frozen=True)
class ProductChangeInfo:
    id: UUID
    sale_id: UUID
    product_returned_id: UUID
    product_delivered_id: UUID
    quantity: int
    delivered_product_price: Decimal
    value_difference: Decimal
    payment_method_difference: PaymentMethod | None
    card_fee_difference: Decimal
    created_at: datetime

    @classmethod
    def from_model(cls, model: ProductChangeModel) -> ProductChangeInfo:
        method = model.payment_method_difference
        return cls(
            id=model.id,
            sale_id=model.sale_id,
            product_returned_id=model.product_returned_id,
            product_delivered_id=model.product_delivered_id,
            quantity=model.quantity,
            delivered_product_price=model.delivered_product_price,
            value_difference=model.value_difference,
            payment_method_difference=PaymentMethod(method) if method else None,
            card_fee_difference=model.card_fee_difference,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class ProductStock:
    """Stock projection of one product."""

    product_id: UUID
    name: str
    price: Decimal
    stock: int
