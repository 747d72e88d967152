"""Read/write data access for the fair kernel."""

from fair_kernel.selectors.repository import Repository

__all__ = ["Repository"]
