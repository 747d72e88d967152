"""
fair_services -- orchestration over kernel reads and pure engines.

Dependency direction:
    fair_services -> fair_engines   (allowed)
    fair_services -> fair_kernel    (allowed)
    fair_kernel   -> fair_services  (forbidden)
    fair_engines  -> fair_services  (forbidden)
"""

from fair_services.summary_service import SummaryService

__all__ = ["SummaryService"]
