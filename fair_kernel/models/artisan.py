"""
Module: fair_kernel.models.artisan
Responsibility: ORM persistence for artisans, the owners of consigned
    products.
Architecture position: Kernel > Models.  May import from db/ and domain/enums
    only.

Invariants enforced:
    - identification is unique (uq_artisan_identification).
    - Deactivation and deletion rules are enforced by ArtisanService, not here.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fair_kernel.db.base import CreatedAtBase


class Artisan(CreatedAtBase):
    """An artisan who consigns products to events."""

    __tablename__ = "artisans"

    __table_args__ = (
        UniqueConstraint("identification", name="uq_artisan_identification"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # National id / tax id, 5-10 digits
    identification: Mapped[str] = mapped_column(String(10), nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Artisan {self.identification}: {self.name}>"
