"""
Stock -- fold of the inventory ledger.

Responsibility:
    A product's stock is Σ ENTRADA.quantity - Σ SALIDA.quantity over every
    movement that references it.  There is no stored counter to drift.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Accepts ORM rows or
    MovementInfo DTOs alike (anything with ``type`` and ``quantity``).

The fold is total: it reports a negative result instead of raising, so a
ledger corrupted outside the kernel is still observable.
"""

from collections import defaultdict
from typing import Iterable, Protocol
from uuid import UUID

from fair_kernel.domain.enums import MovementType


class _Movement(Protocol):
    type: MovementType
    quantity: int


class _ProductMovement(_Movement, Protocol):
    product_id: UUID


def fold_stock(movements: Iterable[_Movement]) -> int:
    """Return Σ ENTRADA - Σ SALIDA; order of movements is irrelevant."""
    stock = 0
    for movement in movements:
        if movement.type == MovementType.ENTRADA:
            stock += movement.quantity
        elif movement.type == MovementType.SALIDA:
            stock -= movement.quantity
        else:
            raise ValueError(f"Unknown movement type: {movement.type!r}")
    return stock


def fold_stock_by_product(movements: Iterable[_ProductMovement]) -> dict[UUID, int]:
    """Fold a mixed stream of movements into stock per product id."""
    grouped: dict[UUID, list[_ProductMovement]] = defaultdict(list)
    for movement in movements:
        grouped[movement.product_id].append(movement)
    return {product_id: fold_stock(rows) for product_id, rows in grouped.items()}
