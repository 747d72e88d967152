"""
InventoryLedger -- append-only inventory movements and the stock projection.

Responsibility:
    The single write path for InventoryMovement rows and the read path for
    a product's stock.  Stock is never stored: every figure is a fold of the
    movements (fair_kernel.domain.stock).

Architecture position:
    Kernel > Services -- imperative shell.  Used directly by collaborator
    screens (manual entries/exits) and by SaleRecorder and ProductService.

Invariants enforced:
    - quantity is a positive integer.
    - A movement references a sale or a product change, never both, and
      the referenced row exists.
    - At most one movement of a type per (sale, product) and per
      (change, product).
    - Movements are never updated or deleted here (and the ORM listeners
      refuse it elsewhere).  Corrections are new, compensating movements.
    - A manual SALIDA is checked against stock while the product row is
      locked.

Failure modes:
    - ValidationError: bad quantity, reason, type or double reference.
    - ProductNotFoundError / SaleNotFoundError /
      ProductChangeNotFoundError: dangling reference.
    - DuplicateMovementError: second movement for the same sale/change.
    - EventClosedError: manual movement against a closed event.
    - InsufficientStockError: manual SALIDA larger than stock.
"""

from dataclasses import dataclass
from uuid import UUID

from fair_kernel.domain.dtos import MovementInfo, ProductStock
from fair_kernel.domain.enums import EventOperation, MovementType
from fair_kernel.domain.event_lifecycle import assert_can_mutate
from fair_kernel.domain.stock import fold_stock, fold_stock_by_product
from fair_kernel.exceptions import (
    DuplicateMovementError,
    EventNotFoundError,
    InsufficientStockError,
    ProductChangeNotFoundError,
    ProductNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from fair_kernel.logging_config import get_logger
from fair_kernel.models.event import Event
from fair_kernel.models.inventory_movement import InventoryMovement
from fair_kernel.models.product import Product
from fair_kernel.models.product_change import ProductChange
from fair_kernel.models.sale import Sale
from fair_kernel.services.base import BaseService

logger = get_logger("services.inventory_ledger")


@dataclass(frozen=True)
class MovementDraft:
    """A movement not yet written to the ledger."""

    product_id: UUID
    type: MovementType
    quantity: int
    reason: str | None = None
    sale_id: UUID | None = None
    change_id: UUID | None = None


class InventoryLedger(BaseService):
    """Append-only access to the inventory ledger."""

    def append(self, draft: MovementDraft) -> MovementInfo:
        """
        Validate and append one movement.

        Preconditions: for a SALIDA, the caller has already checked stock
            under lock_product() when the movement must not oversell.
        Postconditions: one InventoryMovement row is flushed.
        """
        movement_type = self._validate_shape(draft)

        if self.repository.find_by_id(Product, draft.product_id) is None:
            raise ProductNotFoundError(str(draft.product_id))

        reference = None
        duplicate_criteria = None
        if draft.sale_id is not None:
            if self.repository.find_by_id(Sale, draft.sale_id) is None:
                raise SaleNotFoundError(str(draft.sale_id))
            reference = f"sale {draft.sale_id}"
            duplicate_criteria = InventoryMovement.sale_id == draft.sale_id
        elif draft.change_id is not None:
            if self.repository.find_by_id(ProductChange, draft.change_id) is None:
                raise ProductChangeNotFoundError(str(draft.change_id))
            reference = f"product change {draft.change_id}"
            duplicate_criteria = InventoryMovement.change_id == draft.change_id

        if duplicate_criteria is not None and self.repository.exists(
            InventoryMovement,
            duplicate_criteria,
            InventoryMovement.product_id == draft.product_id,
            InventoryMovement.type == movement_type.value,
        ):
            logger.warning("movement_duplicate_rejected", extra={
                "product_id": str(draft.product_id),
                "movement_type": movement_type.value,
                "reference": reference,
            })
            raise DuplicateMovementError(
                str(draft.product_id), movement_type.value, reference
            )

        movement = self.repository.add(
            InventoryMovement(
                type=movement_type,
                quantity=draft.quantity,
                reason=draft.reason,
                product_id=draft.product_id,
                sale_id=draft.sale_id,
                change_id=draft.change_id,
                created_at=self.clock.now(),
            )
        )

        logger.info("movement_appended", extra={
            "movement_id": str(movement.id),
            "product_id": str(draft.product_id),
            "movement_type": movement_type.value,
            "quantity": draft.quantity,
            "sale_id": str(draft.sale_id) if draft.sale_id else None,
            "change_id": str(draft.change_id) if draft.change_id else None,
        })
        return MovementInfo.from_model(movement)

    def _validate_shape(self, draft: MovementDraft) -> MovementType:
        try:
            movement_type = MovementType(draft.type)
        except ValueError:
            raise ValidationError(
                f"Unknown movement type: {draft.type!r}", field="type"
            ) from None

        quantity = draft.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(
                f"Movement quantity must be a positive integer, got {quantity!r}",
                field="quantity",
            )

        max_length = self.policy.movement_reason_max_length
        if draft.reason is not None and len(draft.reason) > max_length:
            raise ValidationError(
                f"Reason is longer than {max_length} characters",
                field="reason",
            )

        if draft.sale_id is not None and draft.change_id is not None:
            raise ValidationError(
                "A movement cannot reference both a sale and a product change",
                field="changeId",
            )
        return movement_type

    def query(self, product_id: UUID) -> list[MovementInfo]:
        """All movements of a product, oldest first."""
        return [
            MovementInfo.from_model(m)
            for m in self.repository.movements_for_product(product_id)
        ]

    def movements_for_sale(self, sale_id: UUID) -> list[MovementInfo]:
        rows = self.repository.find_many(
            InventoryMovement,
            InventoryMovement.sale_id == sale_id,
            order_by=(InventoryMovement.created_at, InventoryMovement.id),
        )
        return [MovementInfo.from_model(m) for m in rows]

    def movements_for_change(self, change_id: UUID) -> list[MovementInfo]:
        rows = self.repository.find_many(
            InventoryMovement,
            InventoryMovement.change_id == change_id,
            order_by=(InventoryMovement.created_at, InventoryMovement.id),
        )
        return [MovementInfo.from_model(m) for m in rows]

    def current_stock(self, product_id: UUID) -> int:
        """Σ ENTRADA - Σ SALIDA for the product.  May be negative."""
        if self.repository.find_by_id(Product, product_id) is None:
            raise ProductNotFoundError(str(product_id))
        return fold_stock(self.repository.movements_for_product(product_id))

    def event_stock(self, event_id: UUID) -> list[ProductStock]:
        """Stock of every product of an event, ordered by product name."""
        if self.repository.find_by_id(Event, event_id) is None:
            raise EventNotFoundError(str(event_id))
        products = self.repository.find_many(
            Product,
            Product.event_id == event_id,
            order_by=(Product.name, Product.id),
        )
        stock = fold_stock_by_product(
            self.repository.movements_for_products(p.id for p in products)
        )
        return [
            ProductStock(
                product_id=p.id,
                name=p.name,
                price=p.price,
                stock=stock.get(p.id, 0),
            )
            for p in products
        ]

    def record_movement(
        self,
        product_id: UUID,
        movement_type: MovementType,
        quantity: int,
        reason: str | None = None,
    ) -> MovementInfo:
        """
        Manual entry or exit of stock.

        The product row is locked first so that a SALIDA cannot race a sale.
        """
        product = self.repository.lock_product(product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))

        event = self.repository.find_by_id(Event, product.event_id)
        assert_can_mutate(event, EventOperation.MANUAL_MOVEMENT, self.clock.now(), self.policy)

        draft = MovementDraft(
            product_id=product_id,
            type=movement_type,
            quantity=quantity,
            reason=reason,
        )
        if self._validate_shape(draft) == MovementType.SALIDA:
            self.assert_stock_available(product_id, quantity)

        return self.append(draft)

    def assert_stock_available(self, product_id: UUID, requested: int) -> int:
        """
        Raise InsufficientStockError unless stock covers ``requested``.

        Preconditions: the product row is locked by the caller.
        Returns: the stock before the caller's SALIDA.
        """
        available = fold_stock(self.repository.movements_for_product(product_id))
        if available < requested:
            logger.warning("insufficient_stock", extra={
                "product_id": str(product_id),
                "available": available,
                "requested": requested,
            })
            raise InsufficientStockError(str(product_id), available, requested)
        return available
