"""
Catalog services -- artisans and the products they consign to events.

Responsibility:
    Registration, deactivation and deletion of artisans; creation, edit and
    deletion of products.  Every product mutation passes the event lifecycle
    gate first.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Artisan identification is 5-10 digits and unique.
    - An artisan with products in a non-closed event cannot be deactivated;
      an artisan with any product cannot be deleted.
    - Products are created while the event is SCHEDULED or ACTIVE, edited
      and deleted only while SCHEDULED, never once CLOSED.
    - price > 0; name unique per (event, artisan).
    - Initial stock is an ENTRADA in the ledger, never a column.
    - A product referenced by any movement cannot be deleted.

Failure modes:
    - ValidationError / NotFoundError subclasses for bad input.
    - EntityInUseError when references block a deactivate or delete.
    - EventClosedError / EventNotEditableError from the lifecycle gate.
"""

import re
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from fair_kernel.db.types import ZERO, to_decimal
from fair_kernel.domain.enums import EventOperation, EventState, MovementType
from fair_kernel.domain.event_lifecycle import assert_can_mutate
from fair_kernel.exceptions import (
    ArtisanNotFoundError,
    EntityInUseError,
    EventNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from fair_kernel.logging_config import LogContext, get_logger
from fair_kernel.models.artisan import Artisan
from fair_kernel.models.event import Event
from fair_kernel.models.inventory_movement import InventoryMovement
from fair_kernel.models.product import Product
from fair_kernel.services.base import BaseService
from fair_kernel.services.inventory_ledger import InventoryLedger, MovementDraft

logger = get_logger("services.catalog_service")

_IDENTIFICATION = re.compile(r"^\d{5,10}$")

_EDITABLE_PRODUCT_FIELDS = frozenset({"name", "price", "category"})


def _price(value: Any) -> Decimal:
    try:
        price = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc), field="price") from exc
    if price <= ZERO:
        raise ValidationError(f"Price must be greater than zero, got {price}", field="price")
    return price


def _required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


class ArtisanService(BaseService):
    """Artisan registration and retirement."""

    def register(self, name: str, identification: str) -> Artisan:
        name = _required_text(name, "name")
        identification = "" if identification is None else str(identification).strip()
        if not _IDENTIFICATION.match(identification):
            raise ValidationError(
                "Identification must be 5 to 10 digits",
                field="identification",
            )
        if self.repository.exists(Artisan, Artisan.identification == identification):
            raise ValidationError(
                f"An artisan with identification {identification} already exists",
                field="identification",
            )

        artisan = self.repository.add(
            Artisan(
                name=name,
                identification=identification,
                active=True,
                created_at=self.clock.now(),
            )
        )
        logger.info("artisan_registered", extra={"artisan_id": str(artisan.id)})
        return artisan

    def deactivate(self, artisan_id: UUID) -> Artisan:
        artisan = self._require(Artisan, artisan_id, ArtisanNotFoundError)
        open_products = self.repository.count(
            Product,
            Product.artisan_id == artisan_id,
            Product.event_id.in_(
                select(Event.id).where(Event.state != EventState.CLOSED.value)
            ),
        )
        if open_products:
            logger.warning("artisan_deactivate_rejected", extra={
                "artisan_id": str(artisan_id),
                "open_products": open_products,
            })
            raise EntityInUseError(
                "Artisan", str(artisan_id),
                f"{open_products} product(s) in events that are not closed",
            )
        artisan.active = False
        self.repository.flush()
        logger.info("artisan_deactivated", extra={"artisan_id": str(artisan_id)})
        return artisan

    def activate(self, artisan_id: UUID) -> Artisan:
        artisan = self._require(Artisan, artisan_id, ArtisanNotFoundError)
        artisan.active = True
        self.repository.flush()
        return artisan

    def delete(self, artisan_id: UUID) -> None:
        artisan = self._require(Artisan, artisan_id, ArtisanNotFoundError)
        products = self.repository.count(Product, Product.artisan_id == artisan_id)
        if products:
            logger.warning("artisan_delete_rejected", extra={
                "artisan_id": str(artisan_id),
                "products": products,
            })
            raise EntityInUseError("Artisan", str(artisan_id), f"{products} product(s)")
        self.repository.delete(artisan)
        logger.info("artisan_deleted", extra={"artisan_id": str(artisan_id)})


class ProductService(BaseService):
    """Products of an artisan at an event."""

    def create_product(
        self,
        event_id: UUID,
        artisan_id: UUID,
        name: str,
        price: Decimal,
        category: str,
        initial_stock: int = 0,
    ) -> Product:
        with LogContext.bind(event_id=event_id, artisan_id=artisan_id):
            event = self._require(Event, event_id, EventNotFoundError)
            assert_can_mutate(
                event, EventOperation.CREATE_PRODUCT, self.clock.now(), self.policy
            )
            artisan = self._require(Artisan, artisan_id, ArtisanNotFoundError)
            if not artisan.active:
                raise ValidationError(f"Artisan {artisan_id} is inactive", field="artisanId")

            name = _required_text(name, "name")
            category = _required_text(category, "category")
            price = _price(price)
            if isinstance(initial_stock, bool) or not isinstance(initial_stock, int) or initial_stock < 0:
                raise ValidationError(
                    f"initialStock must be a non-negative integer, got {initial_stock!r}",
                    field="initialStock",
                )
            self._check_unique_name(event_id, artisan_id, name)

            product = self.repository.add(
                Product(
                    name=name,
                    price=price,
                    category=category,
                    event_id=event_id,
                    artisan_id=artisan_id,
                    created_at=self.clock.now(),
                )
            )
            if initial_stock:
                InventoryLedger(self.repository, self.clock, self.policy).append(
                    MovementDraft(
                        product_id=product.id,
                        type=MovementType.ENTRADA,
                        quantity=initial_stock,
                        reason="initial stock",
                    )
                )

            logger.info("product_created", extra={
                "product_id": str(product.id),
                "price": str(price),
                "initial_stock": initial_stock,
            })
            return product

    def update_product(self, product_id: UUID, **fields: Any) -> Product:
        unknown = set(fields) - _EDITABLE_PRODUCT_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot edit product field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        product = self._require(Product, product_id, ProductNotFoundError)
        event = self.repository.find_by_id(Event, product.event_id)
        assert_can_mutate(event, EventOperation.EDIT_PRODUCT, self.clock.now(), self.policy)

        if "name" in fields:
            name = _required_text(fields["name"], "name")
            if name != product.name:
                self._check_unique_name(product.event_id, product.artisan_id, name)
            product.name = name
        if "category" in fields:
            product.category = _required_text(fields["category"], "category")
        if "price" in fields:
            product.price = _price(fields["price"])

        self.repository.flush()
        logger.info("product_updated", extra={
            "product_id": str(product_id),
            "fields": sorted(fields),
        })
        return product

    def delete_product(self, product_id: UUID) -> None:
        product = self._require(Product, product_id, ProductNotFoundError)
        event = self.repository.find_by_id(Event, product.event_id)
        assert_can_mutate(event, EventOperation.DELETE_PRODUCT, self.clock.now(), self.policy)

        movements = self.repository.count(
            InventoryMovement, InventoryMovement.product_id == product_id
        )
        if movements:
            logger.warning("product_delete_rejected", extra={
                "product_id": str(product_id),
                "movements": movements,
            })
            raise EntityInUseError(
                "Product", str(product_id), f"referenced by {movements} movement(s)"
            )
        self.repository.delete(product)
        logger.info("product_deleted", extra={"product_id": str(product_id)})

    def _check_unique_name(self, event_id: UUID, artisan_id: UUID, name: str) -> None:
        if self.repository.exists(
            Product,
            Product.event_id == event_id,
            Product.artisan_id == artisan_id,
            Product.name == name,
        ):
            raise ValidationError(
                f"Artisan already has a product named {name!r} in this event",
                field="name",
            )
