"""
Module: fair_kernel.models.product_change
Responsibility: ORM persistence for exchanges: part of a sale's quantity
    swapped for a different product of equal or higher price.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - quantity > 0 (ck_change_quantity_positive).
    - product_returned_id != product_delivered_id
      (ck_change_distinct_products).
    - delivered_product_price is a snapshot taken when the exchange is
      recorded; later price edits do not change it.
    - Rows are immutable once inserted (fair_kernel.db.immutability).
"""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fair_kernel.db.base import CreatedAtBase, UUIDString

if TYPE_CHECKING:
    from fair_kernel.models.sale import Sale


class ProductChange(CreatedAtBase):
    """An exchange recorded against an ACTIVE sale."""

    __tablename__ = "product_changes"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_change_quantity_positive"),
        CheckConstraint(
            "product_returned_id <> product_delivered_id",
            name="ck_change_distinct_products",
        ),
        Index("idx_change_sale", "sale_id"),
    )

    sale_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id"),
        nullable=False,
    )

    product_returned_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    product_delivered_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    delivered_product_price: Mapped[Decimal] = mapped_column(nullable=False)

    # (delivered price - returned price) x quantity, never negative
    value_difference: Mapped[Decimal] = mapped_column(nullable=False)

    # Required iff value_difference > 0
    payment_method_difference: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )

    card_fee_difference: Mapped[Decimal] = mapped_column(
        default=Decimal("0"),
        nullable=False,
    )

    sale: Mapped["Sale"] = relationship(foreign_keys=[sale_id])

    def __repr__(self) -> str:
        return (
            f"<ProductChange sale={self.sale_id} "
            f"{self.product_returned_id}->{self.product_delivered_id} x{self.quantity}>"
        )
