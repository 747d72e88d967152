"""
Module: fair_kernel.models.sale
Responsibility: ORM persistence for sales.  One row per sold line; the
    lines of one multi-item request share a batch_id.
Architecture position: Kernel > Models.  May import from db/ and domain/enums
    only.

Invariants enforced:
    - quantity_sold > 0 (ck_sale_quantity_positive).
    - value_charged == product price x quantity_sold at the time of sale
      (computed by SaleRecorder, never edited afterwards).
    - card_fee is 0 for CASH sales.
    - state moves ACTIVE -> CHANGED or ACTIVE -> CANCELLED exactly once and
      never back; every other column is immutable after insert.  Both are
      enforced by the ORM listeners in fair_kernel.db.immutability.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fair_kernel.db.base import Base, UUIDString
from fair_kernel.domain.enums import PaymentMethod, SaleState

if TYPE_CHECKING:
    from fair_kernel.models.product import Product


class Sale(Base):
    """A sold quantity of one product at one event."""

    __tablename__ = "sales"

    __table_args__ = (
        CheckConstraint("quantity_sold > 0", name="ck_sale_quantity_positive"),
        Index("idx_sale_event", "event_id"),
        Index("idx_sale_artisan_event", "artisan_id", "event_id"),
        Index("idx_sale_batch", "batch_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    artisan_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("artisans.id"),
        nullable=False,
    )

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("events.id"),
        nullable=False,
    )

    # Groups the lines of one record_sale() call
    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)

    value_charged: Mapped[Decimal] = mapped_column(nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(String(10), nullable=False)

    # This line's share of the batch card fee
    card_fee: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    sold_at: Mapped[datetime] = mapped_column(nullable=False)

    # active_history: the immutability listener needs the old state even
    # when the attribute was expired before being set
    state: Mapped[SaleState] = mapped_column(
        String(20),
        default=SaleState.ACTIVE,
        nullable=False,
        active_history=True,
    )

    product: Mapped["Product"] = relationship(foreign_keys=[product_id])

    def __repr__(self) -> str:
        return f"<Sale {self.id} x{self.quantity_sold} {self.state}>"

    @property
    def is_active(self) -> bool:
        return self.state == SaleState.ACTIVE

    def mark_changed(self) -> None:
        """ACTIVE -> CHANGED after an exchange is recorded."""
        if not self.is_active:
            raise ValueError(f"Sale {self.id} is {self.state}, not ACTIVE")
        self.state = SaleState.CHANGED
