"""
Module: fair_kernel.selectors.repository
Responsibility: The only persistence handle the kernel uses.  Wraps a
    caller-owned SQLAlchemy Session with lookup, query, count, add and
    row-lock primitives.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    Services receive a Repository through their constructor; nothing in the
    kernel reaches for a global session.

Invariants enforced:
    - Session ownership: the Repository never commits or rolls back.  add()
      flushes so generated ids and constraint violations surface inside the
      caller's transaction.
    - lock_product() must be called before any stock check that precedes a
      SALIDA.  On PostgreSQL it issues SELECT ... FOR UPDATE; on SQLite the
      engine already serializes writers with BEGIN IMMEDIATE, and the
      dialect renders no FOR UPDATE clause.
"""

from typing import Any, Iterable, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fair_kernel.db.base import Base
from fair_kernel.models.inventory_movement import InventoryMovement
from fair_kernel.models.product import Product

ModelType = TypeVar("ModelType", bound=Base)


class Repository:
    """
    Generic data access over a Session.

    Guarantees:
        - find_* and count never write.
        - add() and add_all() flush but never commit.
    """

    def __init__(self, session: Session):
        self.session = session

    # Generic access

    def find_by_id(self, model: type[ModelType], entity_id: UUID) -> ModelType | None:
        return self.session.get(model, entity_id)

    def find_many(
        self,
        model: type[ModelType],
        *criteria: Any,
        order_by: Iterable[Any] = (),
    ) -> list[ModelType]:
        stmt = select(model).where(*criteria)
        order = tuple(order_by)
        if order:
            stmt = stmt.order_by(*order)
        return list(self.session.scalars(stmt))

    def find_one(self, model: type[ModelType], *criteria: Any) -> ModelType | None:
        return self.session.scalars(select(model).where(*criteria).limit(1)).first()

    def count(self, model: type[ModelType], *criteria: Any) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)
        return self.session.execute(stmt).scalar_one()

    def exists(self, model: type[ModelType], *criteria: Any) -> bool:
        return self.count(model, *criteria) > 0

    def add(self, entity: ModelType) -> ModelType:
        self.session.add(entity)
        self.session.flush()
        return entity

    def add_all(self, entities: Iterable[ModelType]) -> None:
        self.session.add_all(list(entities))
        self.session.flush()

    def delete(self, entity: Base) -> None:
        self.session.delete(entity)
        self.session.flush()

    def flush(self) -> None:
        self.session.flush()

    # Locks

    def lock(self, model: type[ModelType], entity_id: UUID) -> ModelType | None:
        """
        Lock a row for the rest of the transaction.

        Returns the refreshed entity, or None if it does not exist.
        """
        stmt = (
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).first()

    def lock_product(self, product_id: UUID) -> Product | None:
        return self.lock(Product, product_id)

    # Ledger reads

    def movements_for_product(self, product_id: UUID) -> list[InventoryMovement]:
        return self.find_many(
            InventoryMovement,
            InventoryMovement.product_id == product_id,
            order_by=(InventoryMovement.created_at, InventoryMovement.id),
        )

    def movements_for_products(self, product_ids: Iterable[UUID]) -> list[InventoryMovement]:
        ids = list(product_ids)
        if not ids:
            return []
        return self.find_many(
            InventoryMovement,
            InventoryMovement.product_id.in_(ids),
        )
