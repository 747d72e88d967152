"""ORM models for the fair kernel."""

from fair_kernel.models.artisan import Artisan
from fair_kernel.models.event import Event
from fair_kernel.models.inventory_movement import InventoryMovement
from fair_kernel.models.product import Product
from fair_kernel.models.product_change import ProductChange
from fair_kernel.models.sale import Sale

__all__ = [
    "Artisan",
    "Event",
    "InventoryMovement",
    "Product",
    "ProductChange",
    "Sale",
]
