"""
Exchange Validator -- pure rules for swapping a sold product for another.

Responsibility:
    Decide whether an exchange may be recorded and compute its
    value_difference.  Rules run in a fixed order and the first failure
    wins, so callers always see the same error for the same input.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  SaleRecorder reads
    the sale, both products and the delivered product's stock (under lock)
    and hands them over as an ExchangeCheck.

Rules (in order):
    1. Sale must be ACTIVE                       -> SaleNotActiveError
    2. 1 <= quantity <= sale.quantity_sold       -> ValidationError
    3. delivered stock >= quantity               -> InsufficientStockError
    4. delivered price >= returned price         -> ValidationError
    5. Settlement of the value difference:
         difference == 0: no payment method, no card fee
         difference  > 0: payment method required;
                          card fee only with CARD, never negative
                                                 -> ValidationError
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from fair_kernel.domain.enums import PaymentMethod, SaleState
from fair_kernel.exceptions import (
    InsufficientStockError,
    SaleNotActiveError,
    ValidationError,
)

_ZERO = Decimal("0")


@dataclass(frozen=True)
class ExchangeCheck:
    """Everything the validator needs, already loaded."""

    sale_id: UUID
    sale_state: SaleState
    quantity_sold: int
    quantity: int
    returned_price: Decimal
    delivered_product_id: UUID
    delivered_price: Decimal
    delivered_stock: int
    payment_method_difference: PaymentMethod | None = None
    card_fee_difference: Decimal | None = None


def validate_exchange(check: ExchangeCheck) -> Decimal:
    """
    Validate an exchange and return its value difference.

    Returns:
        (delivered_price - returned_price) * quantity, never negative.

    Raises:
        SaleNotActiveError, ValidationError, InsufficientStockError.
    """
    if check.sale_state != SaleState.ACTIVE:
        raise SaleNotActiveError(str(check.sale_id), str(_value(check.sale_state)))

    quantity = check.quantity
    if (
        isinstance(quantity, bool)
        or not isinstance(quantity, int)
        or not 1 <= quantity <= check.quantity_sold
    ):
        raise ValidationError(
            f"Exchange quantity must be between 1 and {check.quantity_sold}, "
            f"got {check.quantity}",
            field="quantity",
        )

    if check.delivered_stock < check.quantity:
        raise InsufficientStockError(
            str(check.delivered_product_id),
            available=check.delivered_stock,
            requested=check.quantity,
        )

    if check.delivered_price < check.returned_price:
        raise ValidationError(
            f"Delivered product price {check.delivered_price} is lower than "
            f"returned product price {check.returned_price}",
            field="productDeliveredId",
        )

    value_difference = (check.delivered_price - check.returned_price) * check.quantity
    _check_settlement(check, value_difference)
    return value_difference


def _check_settlement(check: ExchangeCheck, value_difference: Decimal) -> None:
    method = check.payment_method_difference
    fee = check.card_fee_difference

    if value_difference == _ZERO:
        if method is not None:
            raise ValidationError(
                "Payment method must be absent when the exchange has no value difference",
                field="paymentMethodDifference",
            )
        if fee is not None and fee != _ZERO:
            raise ValidationError(
                "Card fee must be absent when the exchange has no value difference",
                field="cardFeeDifference",
            )
        return

    if method is None:
        raise ValidationError(
            f"Payment method is required to settle a difference of {value_difference}",
            field="paymentMethodDifference",
        )
    if fee is None or fee == _ZERO:
        return
    if fee < _ZERO:
        raise ValidationError("Card fee cannot be negative", field="cardFeeDifference")
    if method != PaymentMethod.CARD:
        raise ValidationError(
            "Card fee is only allowed when the difference is paid by card",
            field="cardFeeDifference",
        )


def _value(state) -> str:
    return state.value if isinstance(state, SaleState) else state
