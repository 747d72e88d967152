"""
Module: fair_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: card-fee
    proration and the commission / summary engine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fair_kernel leaf modules (db.types, domain.enums,
    logging_config).  MUST NOT import fair_services or fair_kernel.services.

Invariants enforced:
    - Engines never read the clock; timestamps arrive as parameters.
    - Decimal-only arithmetic: floats are never used for money.
    - Determinism: identical inputs always produce identical outputs.
"""

from fair_engines.commission import (
    ArtisanProductSummary,
    ArtisanRef,
    ArtisanSummary,
    CommissionEngine,
    CommissionSplit,
    EventAccountingSummary,
    EventSummary,
    EventTerms,
    LineKind,
    ProductSalesLine,
    SummaryLine,
    TopArtisan,
    TopProduct,
    TopSellingProduct,
)
from fair_engines.proration import (
    FeeProrationEngine,
    ProrationLine,
    ProrationResult,
    ProrationTarget,
)
from fair_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "ArtisanProductSummary",
    "ArtisanRef",
    "ArtisanSummary",
    "CommissionEngine",
    "CommissionSplit",
    "EventAccountingSummary",
    "EventSummary",
    "EventTerms",
    "LineKind",
    "ProductSalesLine",
    "SummaryLine",
    "TopArtisan",
    "TopProduct",
    "TopSellingProduct",
    "FeeProrationEngine",
    "ProrationLine",
    "ProrationResult",
    "ProrationTarget",
    "compute_input_fingerprint",
    "traced_engine",
]
