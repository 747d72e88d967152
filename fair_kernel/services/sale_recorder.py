"""
SaleRecorder -- records sale batches and exchanges.

Responsibility:
    Orchestrates the write side of selling: lifecycle gate, stock check
    under lock, value and fee computation, Sale / ProductChange rows, and
    the SALIDA movements that consume stock.

Architecture position:
    Kernel > Services -- imperative shell.  Calls the pure domain
    (event_lifecycle, exchange_validator) and the proration engine; writes
    only through the Repository and the InventoryLedger.

Invariants enforced:
    - All-or-nothing batches: every item is validated and every stock check
      passes before the first row is written.  Rows are flushed into the
      caller's transaction, which rolls back on any exception.
    - Stock for a product requested by several items of one batch is
      checked against the summed quantity.
    - Products are locked in sorted id order, so two batches touching the
      same products cannot deadlock.
    - value_charged = price x quantity_sold.
    - Card fee shares are non-negative and sum exactly to card_fee_total
      (running-total rounding, remainder on the last item).
    - An exchange writes one ProductChange, one SALIDA on the delivered
      product, and moves the sale to CHANGED.  The returned product is NOT
      restocked; a compensating ENTRADA can be appended through
      InventoryLedger.record_movement.

Failure modes:
    - ValidationError and its NotFoundError subclasses for bad input.
    - EventClosedError / EventNotActiveError from the lifecycle gate.
    - SaleNotActiveError for a second exchange of the same sale.
    - InsufficientStockError when stock does not cover the request.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable
from uuid import UUID, uuid4

from fair_engines.proration import FeeProrationEngine, ProrationTarget
from fair_kernel.db.types import ZERO, to_decimal
from fair_kernel.domain.clock import Clock
from fair_kernel.domain.dtos import (
    ExchangeRequest,
    ProductChangeInfo,
    SaleBatchRequest,
    SaleBatchResult,
    SaleInfo,
    SaleItem,
)
from fair_kernel.domain.enums import EventOperation, MovementType, PaymentMethod
from fair_kernel.domain.event_lifecycle import assert_can_mutate
from fair_kernel.domain.exchange_validator import ExchangeCheck, validate_exchange
from fair_kernel.domain.policy import LedgerPolicy
from fair_kernel.domain.stock import fold_stock
from fair_kernel.exceptions import (
    ArtisanNotFoundError,
    EventNotFoundError,
    ProductNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from fair_kernel.logging_config import LogContext, get_logger
from fair_kernel.models.artisan import Artisan
from fair_kernel.models.event import Event
from fair_kernel.models.product import Product
from fair_kernel.models.product_change import ProductChange
from fair_kernel.models.sale import Sale
from fair_kernel.selectors.repository import Repository
from fair_kernel.services.base import BaseService
from fair_kernel.services.inventory_ledger import InventoryLedger, MovementDraft

logger = get_logger("services.sale_recorder")


def _payment_method(value, field: str) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError(f"Unknown payment method: {value!r}", field=field) from None


def _decimal(value, field: str) -> Decimal:
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc), field=field) from exc


def _amount(value, field: str) -> Decimal:
    amount = _decimal(value, field)
    if amount < ZERO:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return amount


class SaleRecorder(BaseService):
    """Write side of sales and exchanges."""

    def __init__(
        self,
        repository: Repository,
        clock: Clock | None = None,
        policy: LedgerPolicy | None = None,
    ):
        super().__init__(repository, clock, policy)
        self.ledger = InventoryLedger(repository, self.clock, self.policy)
        self.proration = FeeProrationEngine(
            decimal_places=self.policy.money_decimal_places,
            rounding=self.policy.rounding,
        )

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def record_sale_request(self, request: SaleBatchRequest) -> SaleBatchResult:
        return self.record_sale(
            request.event_id,
            request.payment_method,
            request.items,
            card_fee_total=request.card_fee_total,
        )

    def record_sale(
        self,
        event_id: UUID,
        payment_method: PaymentMethod,
        items: Iterable[SaleItem],
        card_fee_total: Decimal | None = None,
    ) -> SaleBatchResult:
        """
        Record one batch of sales paid together.

        Preconditions: called inside the caller's transaction.
        Postconditions: one ACTIVE Sale and one SALIDA per item, all
            sharing a batch_id; nothing written if any check fails.
        """
        items = list(items)
        method = _payment_method(payment_method, "paymentMethod")
        fee_total = self._validate_batch(items, method, card_fee_total)

        with LogContext.bind(event_id=event_id):
            event = self.repository.find_by_id(Event, event_id)
            if event is None:
                raise EventNotFoundError(str(event_id))
            now = self.clock.now()
            assert_can_mutate(event, EventOperation.RECORD_SALE, now, self.policy)

            products = self._lock_and_check_products(event, items)
            self._check_batch_stock(items)

            values = [products[item.product_id].price * item.quantity_sold for item in items]
            fees = self._prorate_fee(fee_total, values)

            batch_id = uuid4()
            sales: list[SaleInfo] = []
            for item, value, fee in zip(items, values, fees):
                sale = self.repository.add(
                    Sale(
                        product_id=item.product_id,
                        artisan_id=item.artisan_id,
                        event_id=event.id,
                        batch_id=batch_id,
                        quantity_sold=item.quantity_sold,
                        value_charged=value,
                        payment_method=method,
                        card_fee=fee,
                        sold_at=now,
                    )
                )
                self.ledger.append(
                    MovementDraft(
                        product_id=item.product_id,
                        type=MovementType.SALIDA,
                        quantity=item.quantity_sold,
                        reason="sale",
                        sale_id=sale.id,
                    )
                )
                sales.append(SaleInfo.from_model(sale))

            result = SaleBatchResult(batch_id=batch_id, sales=tuple(sales))
            logger.info("sale_recorded", extra={
                "batch_id": str(batch_id),
                "item_count": len(sales),
                "payment_method": method.value,
                "total_charged": str(result.total_charged),
                "card_fee_total": str(fee_total),
            })
            return result

    def _validate_batch(
        self,
        items: list[SaleItem],
        method: PaymentMethod,
        card_fee_total: Decimal | None,
    ) -> Decimal:
        if not items:
            raise ValidationError("A sale needs at least one item", field="items")
        for index, item in enumerate(items):
            quantity = item.quantity_sold
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError(
                    f"quantitySold must be a positive integer, got {quantity!r}",
                    field=f"items[{index}].quantitySold",
                )

        if card_fee_total is None:
            return ZERO
        fee_total = _amount(card_fee_total, "cardFeeTotal")
        if fee_total > ZERO and method != PaymentMethod.CARD:
            raise ValidationError(
                "A card fee is only allowed for CARD payments",
                field="cardFeeTotal",
            )
        return fee_total

    def _lock_and_check_products(
        self, event: Event, items: list[SaleItem]
    ) -> dict[UUID, Product]:
        products: dict[UUID, Product] = {}
        for product_id in sorted({item.product_id for item in items}, key=str):
            product = self.repository.lock_product(product_id)
            if product is None:
                raise ProductNotFoundError(str(product_id))
            if product.event_id != event.id:
                raise ValidationError(
                    f"Product {product_id} does not belong to event {event.id}",
                    field="productId",
                )
            products[product_id] = product

        checked_artisans: set[UUID] = set()
        for item in items:
            product = products[item.product_id]
            if product.artisan_id != item.artisan_id:
                raise ValidationError(
                    f"Product {item.product_id} does not belong to artisan {item.artisan_id}",
                    field="artisanId",
                )
            if item.artisan_id in checked_artisans:
                continue
            artisan = self.repository.find_by_id(Artisan, item.artisan_id)
            if artisan is None:
                raise ArtisanNotFoundError(str(item.artisan_id))
            if not artisan.active:
                raise ValidationError(
                    f"Artisan {item.artisan_id} is inactive",
                    field="artisanId",
                )
            checked_artisans.add(item.artisan_id)
        return products

    def _check_batch_stock(self, items: list[SaleItem]) -> None:
        requested: dict[UUID, int] = defaultdict(int)
        for item in items:
            requested[item.product_id] += item.quantity_sold
        for product_id in sorted(requested, key=str):
            self.ledger.assert_stock_available(product_id, requested[product_id])

    def _prorate_fee(self, fee_total: Decimal, values: list[Decimal]) -> list[Decimal]:
        if fee_total == ZERO:
            return [ZERO] * len(values)
        result = self.proration.prorate(
            total=fee_total,
            targets=[ProrationTarget(i, value) for i, value in enumerate(values)],
        )
        return list(result.shares)

    # ------------------------------------------------------------------
    # Exchanges
    # ------------------------------------------------------------------

    def record_exchange_request(self, request: ExchangeRequest) -> ProductChangeInfo:
        return self.record_exchange(
            request.sale_id,
            request.product_returned_id,
            request.product_delivered_id,
            request.quantity,
            payment_method_difference=request.payment_method_difference,
            card_fee_difference=request.card_fee_difference,
        )

    def record_exchange(
        self,
        sale_id: UUID,
        product_returned_id: UUID,
        product_delivered_id: UUID,
        quantity: int,
        payment_method_difference: PaymentMethod | None = None,
        card_fee_difference: Decimal | None = None,
    ) -> ProductChangeInfo:
        """
        Swap part of an ACTIVE sale for another product of equal or higher price.

        Postconditions: one ProductChange, one SALIDA of ``quantity`` on the
            delivered product, and the sale is CHANGED.
        """
        with LogContext.bind(sale_id=sale_id):
            sale = self.repository.lock(Sale, sale_id)
            if sale is None:
                raise SaleNotFoundError(str(sale_id))
            returned = self._require(Product, product_returned_id, ProductNotFoundError)
            delivered = self.repository.lock_product(product_delivered_id)
            if delivered is None:
                raise ProductNotFoundError(str(product_delivered_id))
            event = self._require(Event, sale.event_id, EventNotFoundError)

            now = self.clock.now()
            assert_can_mutate(event, EventOperation.RECORD_EXCHANGE, now, self.policy)
            self._check_exchange_products(sale, returned, delivered)

            method = None
            if payment_method_difference is not None:
                method = _payment_method(payment_method_difference, "paymentMethodDifference")
            fee = None
            if card_fee_difference is not None:
                fee = _decimal(card_fee_difference, "cardFeeDifference")

            value_difference = validate_exchange(
                ExchangeCheck(
                    sale_id=sale.id,
                    sale_state=sale.state,
                    quantity_sold=sale.quantity_sold,
                    quantity=quantity,
                    returned_price=returned.price,
                    delivered_product_id=delivered.id,
                    delivered_price=delivered.price,
                    delivered_stock=fold_stock(
                        self.repository.movements_for_product(delivered.id)
                    ),
                    payment_method_difference=method,
                    card_fee_difference=fee,
                )
            )

            change = self.repository.add(
                ProductChange(
                    sale_id=sale.id,
                    product_returned_id=returned.id,
                    product_delivered_id=delivered.id,
                    quantity=quantity,
                    delivered_product_price=delivered.price,
                    value_difference=value_difference,
                    payment_method_difference=method.value if method else None,
                    card_fee_difference=fee or ZERO,
                    created_at=now,
                )
            )
            self.ledger.append(
                MovementDraft(
                    product_id=delivered.id,
                    type=MovementType.SALIDA,
                    quantity=quantity,
                    reason="exchange",
                    change_id=change.id,
                )
            )
            sale.mark_changed()
            self.repository.flush()

            logger.info("exchange_recorded", extra={
                "change_id": str(change.id),
                "product_returned_id": str(returned.id),
                "product_delivered_id": str(delivered.id),
                "quantity": quantity,
                "value_difference": str(value_difference),
            })
            return ProductChangeInfo.from_model(change)

    def _check_exchange_products(self, sale: Sale, returned: Product, delivered: Product) -> None:
        if returned.id == delivered.id:
            raise ValidationError(
                "Returned and delivered products must differ",
                field="productDeliveredId",
            )
        if returned.id != sale.product_id:
            raise ValidationError(
                f"Product {returned.id} is not the product sold in sale {sale.id}",
                field="productReturnedId",
            )
        if delivered.event_id != sale.event_id or delivered.artisan_id != sale.artisan_id:
            raise ValidationError(
                f"Product {delivered.id} must belong to the same event and artisan as the sale",
                field="productDeliveredId",
            )
