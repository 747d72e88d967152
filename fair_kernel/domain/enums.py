"""
Enumerations shared by the ORM models and the pure domain.

Values are the wire/storage values; every enum is a ``str`` subclass so a
status column loaded back as a plain string still compares equal.
"""

from enum import Enum


class MovementType(str, Enum):
    """Direction of an inventory movement."""

    ENTRADA = "ENTRADA"  # stock in
    SALIDA = "SALIDA"  # stock out


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"


class SaleState(str, Enum):
    """Lifecycle of a sale.

    Transitions are one-way: ACTIVE -> CHANGED (exchange recorded) or
    ACTIVE -> CANCELLED (explicit cancellation).
    """

    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    CHANGED = "CHANGED"


class EventState(str, Enum):
    """Effective state of an event.

    Only SCHEDULED and CLOSED are ever stored; ACTIVE is derived from the
    clock once start_date is reached.
    """

    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class EventDisplayStatus(str, Enum):
    """What a screen shows.  FINISHED never blocks anything."""

    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"
    CLOSED = "CLOSED"


class EventOperation(str, Enum):
    """Mutating operations gated by the event lifecycle."""

    CREATE_PRODUCT = "create_product"
    EDIT_PRODUCT = "edit_product"
    DELETE_PRODUCT = "delete_product"
    RECORD_SALE = "record_sale"
    RECORD_EXCHANGE = "record_exchange"
    MANUAL_MOVEMENT = "manual_movement"
