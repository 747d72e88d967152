"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Stock is never stored; it is folded from the inventory ledger.  If a movement
could be edited or deleted, every stock figure and every accounting summary
computed from it would silently change.  The same holds for exchanges and
for the monetary fields of a sale.

SQLAlchemy fires events before UPDATE/DELETE reach the database.  The
listeners registered here intercept them:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable                    | Allowed change
--------------------|-----------------------------------|---------------------------
InventoryMovement   | ALWAYS                            | none
ProductChange       | ALWAYS                            | none
Sale                | ALWAYS (except state)             | state ACTIVE -> CHANGED
                    |                                   | state ACTIVE -> CANCELLED
Product             | delete while movements reference  | none
                    | it                                |

Bulk ``session.execute(update(...))`` bypasses mapper events; the kernel
never issues bulk statements against these tables.
===============================================================================
"""

from sqlalchemy import event, func, inspect, select
from sqlalchemy.orm.attributes import get_history

from fair_kernel.domain.enums import SaleState
from fair_kernel.exceptions import ImmutabilityViolationError
from fair_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_SALE_TRANSITIONS: dict[str, frozenset[str]] = {
    SaleState.ACTIVE.value: frozenset({SaleState.CHANGED.value, SaleState.CANCELLED.value}),
    SaleState.CHANGED.value: frozenset(),
    SaleState.CANCELLED.value: frozenset(),
}


def _blocked(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [attr.key for attr in inspect(target).attrs if attr.history.has_changes()]


def _state_value(value) -> str:
    return value.value if isinstance(value, SaleState) else str(value)


# InventoryMovement


def _check_movement_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        raise _blocked(
            "InventoryMovement", target, "UPDATE",
            "Inventory movements are append-only",
            field=changed[0],
        )


def _check_movement_delete(mapper, connection, target):
    raise _blocked(
        "InventoryMovement", target, "DELETE",
        "Inventory movements are append-only; append a compensating movement instead",
    )


# ProductChange


def _check_product_change_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        raise _blocked(
            "ProductChange", target, "UPDATE",
            "Recorded exchanges cannot be modified",
            field=changed[0],
        )


def _check_product_change_delete(mapper, connection, target):
    raise _blocked(
        "ProductChange", target, "DELETE",
        "Recorded exchanges cannot be deleted",
    )


# Sale


def _check_sale_immutability(mapper, connection, target):
    """
    Only ``state`` may change on a sale, and only forward.

    Logic:
        1. Any changed field other than state: block.
        2. state changing: the old -> new pair must be in _SALE_TRANSITIONS.
    """
    for key in _changed_fields(target):
        if key != "state":
            raise _blocked(
                "Sale", target, "UPDATE",
                f"Cannot modify field '{key}' on a recorded sale",
                field=key,
            )

    history = get_history(target, "state")
    if not history.deleted or not history.added:
        return

    old_state = _state_value(history.deleted[0])
    new_state = _state_value(history.added[0])
    if new_state not in _SALE_TRANSITIONS.get(old_state, frozenset()):
        raise _blocked(
            "Sale", target, "UPDATE",
            f"Illegal sale state transition {old_state} -> {new_state}",
            field="state",
        )


def _check_sale_delete(mapper, connection, target):
    raise _blocked("Sale", target, "DELETE", "Recorded sales cannot be deleted")


# Product


def _check_product_delete(mapper, connection, target):
    from fair_kernel.models.inventory_movement import InventoryMovement

    count = connection.execute(
        select(func.count(InventoryMovement.id)).where(
            InventoryMovement.product_id == target.id
        )
    ).scalar_one()
    if count:
        raise _blocked(
            "Product", target, "DELETE",
            f"Product is referenced by {count} inventory movement(s)",
        )


_LISTENERS = (
    ("InventoryMovement", "before_update", _check_movement_immutability),
    ("InventoryMovement", "before_delete", _check_movement_delete),
    ("ProductChange", "before_update", _check_product_change_immutability),
    ("ProductChange", "before_delete", _check_product_change_delete),
    ("Sale", "before_update", _check_sale_immutability),
    ("Sale", "before_delete", _check_sale_delete),
    ("Product", "before_delete", _check_product_delete),
)


def _model_classes() -> dict:
    from fair_kernel import models

    return {name: getattr(models, name) for name in models.__all__}


def register_immutability_listeners() -> None:
    """
    Register all immutability listeners.

    Call during application initialization, after models are importable and
    before any database operation.  Safe to call more than once.
    """
    classes = _model_classes()
    for model_name, event_name, listener in _LISTENERS:
        target = classes[model_name]
        if not event.contains(target, event_name, listener):
            event.listen(target, event_name, listener)


def unregister_immutability_listeners() -> None:
    """
    Remove the immutability listeners.

    WARNING: Only use in tests that deliberately bypass the ORM layer.
    """
    classes = _model_classes()
    for model_name, event_name, listener in _LISTENERS:
        target = classes[model_name]
        if event.contains(target, event_name, listener):
            event.remove(target, event_name, listener)
