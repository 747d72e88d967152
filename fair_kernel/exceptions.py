"""
Typed Exception Hierarchy for the Fair Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (an HTTP layer, a report job, a test) decide how to present a failure.
They must be able to do so by catching a TYPE and reading a CODE, never by
parsing a message string:

    try:
        recorder.record_sale(...)
    except InsufficientStockError as e:
        api_response(code=e.code, product=e.product_id, available=e.available)
    except ConflictError as e:
        api_response(code=e.code, status=409)

Every exception carries:
  1. A ``code`` class attribute (machine-readable, API-safe)
  2. Structured attributes with the data that caused the failure

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FairKernelError (base)
    |
    +-- ValidationError                 malformed / out-of-range input
    |   +-- PayloadValidationError      boundary payload parsing
    |   +-- NotFoundError               referenced entity absent
    |       +-- ArtisanNotFoundError
    |       +-- EventNotFoundError
    |       +-- ProductNotFoundError
    |       +-- SaleNotFoundError
    |       +-- ProductChangeNotFoundError
    |
    +-- ConflictError                   state-machine violation
    |   +-- EventClosedError
    |   +-- EventNotActiveError
    |   +-- EventNotEditableError
    |   +-- EventAlreadyClosedError
    |   +-- SaleNotActiveError
    |   +-- DuplicateMovementError
    |   +-- EntityInUseError
    |
    +-- InsufficientStockError          stock would go negative
    |
    +-- ImmutabilityViolationError      ledger rows are append-only

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                    | When Raised
--------------|-------------------------|-------------------------------------
Validation    | VALIDATION_ERROR        | Bad quantity, price, percent, fee
              | PAYLOAD_INVALID         | Boundary payload has field errors
              | NOT_FOUND               | Generic missing entity
              | ARTISAN_NOT_FOUND       | Artisan id doesn't exist
              | EVENT_NOT_FOUND         | Event id doesn't exist
              | PRODUCT_NOT_FOUND       | Product id doesn't exist
              | SALE_NOT_FOUND          | Sale id doesn't exist
              | PRODUCT_CHANGE_NOT_FOUND| Exchange id doesn't exist
--------------|-------------------------|-------------------------------------
Conflict      | EVENT_CLOSED            | Mutation against a CLOSED event
              | EVENT_NOT_ACTIVE        | Sale/exchange outside ACTIVE
              | EVENT_NOT_EDITABLE      | Product edit/delete after start
              | EVENT_ALREADY_CLOSED    | Second close of an event
              | SALE_NOT_ACTIVE         | Exchange of a CHANGED/CANCELLED sale
              | DUPLICATE_MOVEMENT      | Second movement for same sale/change
              | ENTITY_IN_USE           | Delete/deactivate of referenced row
--------------|-------------------------|-------------------------------------
Stock         | INSUFFICIENT_STOCK      | SALIDA larger than current stock
--------------|-------------------------|-------------------------------------
Immutability  | IMMUTABILITY_VIOLATION  | UPDATE/DELETE of an immutable row

===============================================================================
DESIGN DECISIONS
===============================================================================

1. NotFoundError IS A ValidationError.
   A dangling id in a request is bad input; callers that only care about
   "the request was wrong" catch ValidationError, callers that want a 404
   catch NotFoundError.

2. None of these are retried internally. The caller decides messaging.

===============================================================================
"""


class FairKernelError(Exception):
    """
    Base exception for all fair kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FAIR_KERNEL_ERROR"


# Validation


class ValidationError(FairKernelError):
    """Input is malformed or out of range."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class PayloadValidationError(ValidationError):
    """A boundary payload failed shape validation."""

    code: str = "PAYLOAD_INVALID"

    def __init__(self, payload_type: str, field_errors: list[dict]):
        self.payload_type = payload_type
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(
            f"Invalid {payload_type} payload: {len(field_errors)} error(s) ({fields})"
        )


class NotFoundError(ValidationError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ArtisanNotFoundError(NotFoundError):
    code: str = "ARTISAN_NOT_FOUND"

    def __init__(self, artisan_id: str):
        self.artisan_id = artisan_id
        super().__init__("Artisan", artisan_id)


class EventNotFoundError(NotFoundError):
    code: str = "EVENT_NOT_FOUND"

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__("Event", event_id)


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product", product_id)


class SaleNotFoundError(NotFoundError):
    code: str = "SALE_NOT_FOUND"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__("Sale", sale_id)


class ProductChangeNotFoundError(NotFoundError):
    code: str = "PRODUCT_CHANGE_NOT_FOUND"

    def __init__(self, change_id: str):
        self.change_id = change_id
        super().__init__("ProductChange", change_id)


# Conflicts


class ConflictError(FairKernelError):
    """The operation is not allowed in the current state."""

    code: str = "CONFLICT"


class EventClosedError(ConflictError):
    """Mutation attempted against a CLOSED event."""

    code: str = "EVENT_CLOSED"

    def __init__(self, event_id: str, operation: str):
        self.event_id = event_id
        self.operation = operation
        super().__init__(f"Event {event_id} is closed; {operation} is not allowed")


class EventNotActiveError(ConflictError):
    """Sale or exchange attempted while the event is not running."""

    code: str = "EVENT_NOT_ACTIVE"

    def __init__(self, event_id: str, operation: str, state: str):
        self.event_id = event_id
        self.operation = operation
        self.state = state
        super().__init__(
            f"Event {event_id} is {state}; {operation} requires an active event"
        )


class EventNotEditableError(ConflictError):
    """Product edit/delete attempted after the event started."""

    code: str = "EVENT_NOT_EDITABLE"

    def __init__(self, event_id: str, operation: str, state: str):
        self.event_id = event_id
        self.operation = operation
        self.state = state
        super().__init__(
            f"Event {event_id} is {state}; {operation} is only allowed while scheduled"
        )


class EventAlreadyClosedError(ConflictError):
    code: str = "EVENT_ALREADY_CLOSED"

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} is already closed")


class SaleNotActiveError(ConflictError):
    """Only ACTIVE sales can be exchanged."""

    code: str = "SALE_NOT_ACTIVE"

    def __init__(self, sale_id: str, state: str):
        self.sale_id = sale_id
        self.state = state
        super().__init__(f"Sale {sale_id} is {state}; only active sales can be exchanged")


class DuplicateMovementError(ConflictError):
    """A movement of this type already exists for the sale/change and product."""

    code: str = "DUPLICATE_MOVEMENT"

    def __init__(self, product_id: str, movement_type: str, reference: str):
        self.product_id = product_id
        self.movement_type = movement_type
        self.reference = reference
        super().__init__(
            f"A {movement_type} movement for product {product_id} "
            f"already exists for {reference}"
        )


class EntityInUseError(ConflictError):
    """Delete or deactivate blocked by referencing rows."""

    code: str = "ENTITY_IN_USE"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"{entity_type} {entity_id} is in use: {reason}")


# Stock


class InsufficientStockError(FairKernelError):
    """A SALIDA would take the product's stock below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"available={available}, requested={requested}"
        )


# Immutability


class ImmutabilityViolationError(FairKernelError):
    """Attempted to modify or delete an immutable ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
