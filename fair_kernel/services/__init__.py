"""Write-side services of the fair kernel."""

from fair_kernel.services.base import BaseService
from fair_kernel.services.catalog_service import ArtisanService, ProductService
from fair_kernel.services.event_service import EventService
from fair_kernel.services.inventory_ledger import InventoryLedger, MovementDraft
from fair_kernel.services.sale_recorder import SaleRecorder

__all__ = [
    "BaseService",
    "ArtisanService",
    "ProductService",
    "EventService",
    "InventoryLedger",
    "MovementDraft",
    "SaleRecorder",
]
