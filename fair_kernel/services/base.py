"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor for every write-side service: an injected
    Repository, Clock and LedgerPolicy.  Services persist through
    ``Repository.add`` (which flushes) and never commit.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back.  The caller (an HTTP
      handler, a script, a test) owns ``session_scope()``.
    - Time comes from the injected Clock only.

Failure modes:
    - NotFoundError subclasses from ``_require`` when a referenced row is
      missing.
"""

from abc import ABC
from typing import Callable, TypeVar
from uuid import UUID

from fair_kernel.db.base import Base
from fair_kernel.domain.clock import Clock, SystemClock
from fair_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from fair_kernel.exceptions import NotFoundError
from fair_kernel.selectors.repository import Repository

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(
        self,
        repository: Repository,
        clock: Clock | None = None,
        policy: LedgerPolicy | None = None,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.policy = policy or DEFAULT_POLICY

    def _require(
        self,
        model: type[ModelType],
        entity_id: UUID,
        not_found: Callable[[str], NotFoundError],
    ) -> ModelType:
        entity = self.repository.find_by_id(model, entity_id)
        if entity is None:
            raise not_found(str(entity_id))
        return entity
