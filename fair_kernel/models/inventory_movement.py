"""
Module: fair_kernel.models.inventory_movement
Responsibility: ORM persistence for the append-only inventory ledger.  Every
    change in a product's stock is one row here; there is no stock counter.
Architecture position: Kernel > Models.  May import from db/ and domain/enums
    only.

Invariants enforced:
    - quantity > 0 (ck_movement_quantity_positive).
    - A movement references a sale or a product change, never both
      (ck_movement_single_reference).
    - Rows are immutable once inserted: UPDATE and DELETE are rejected by
      the ORM listeners in fair_kernel.db.immutability.
    - At most one movement of a given type per (sale, product) and per
      (change, product) (checked by InventoryLedger.append).

Failure modes:
    - ImmutabilityViolationError on any update or delete through the ORM.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fair_kernel.db.base import CreatedAtBase, UUIDString
from fair_kernel.domain.enums import MovementType


class InventoryMovement(CreatedAtBase):
    """One ENTRADA (stock in) or SALIDA (stock out) of a product."""

    __tablename__ = "inventory_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        CheckConstraint(
            "sale_id IS NULL OR change_id IS NULL",
            name="ck_movement_single_reference",
        ),
        Index("idx_movement_product", "product_id"),
        Index("idx_movement_sale", "sale_id"),
        Index("idx_movement_change", "change_id"),
    )

    type: Mapped[MovementType] = mapped_column(String(10), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    sale_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id"),
        nullable=True,
    )

    change_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("product_changes.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<InventoryMovement {self.type} x{self.quantity} product={self.product_id}>"

    @property
    def signed_quantity(self) -> int:
        """Quantity with the sign of its effect on stock."""
        if self.type == MovementType.SALIDA:
            return -self.quantity
        return self.quantity
