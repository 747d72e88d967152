"""
Module: fair_kernel.models.product
Responsibility: ORM persistence for products consigned by an artisan to an
    event.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Stock is NOT a column.  It is always folded from inventory_movements
      (see fair_kernel.domain.stock).
    - name is unique per (event, artisan) (uq_product_event_artisan_name).
    - price > 0 (ck_product_price_positive, also checked by ProductService).
"""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fair_kernel.db.base import CreatedAtBase, UUIDString

if TYPE_CHECKING:
    from fair_kernel.models.artisan import Artisan
    from fair_kernel.models.event import Event


class Product(CreatedAtBase):
    """A product offered at one event by one artisan."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint(
            "event_id", "artisan_id", "name",
            name="uq_product_event_artisan_name",
        ),
        CheckConstraint("CAST(price AS NUMERIC) > 0", name="ck_product_price_positive"),
        Index("idx_product_event", "event_id"),
        Index("idx_product_artisan", "artisan_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    price: Mapped[Decimal] = mapped_column(nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    event_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("events.id"),
        nullable=False,
    )

    artisan_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("artisans.id"),
        nullable=False,
    )

    event: Mapped["Event"] = relationship(foreign_keys=[event_id])

    artisan: Mapped["Artisan"] = relationship(foreign_keys=[artisan_id])

    def __repr__(self) -> str:
        return f"<Product {self.name} @ {self.price}>"
