"""
Module: fair_kernel.db.types
Responsibility: Column types and money helpers shared by every model, domain
    function and engine.  Centralizes precision and rounding so that stored
    amounts and reported amounts are handled identically everywhere.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and fair_engines.  MUST NOT import from any of those.

Invariants enforced:
    - No floats.  Monetary amounts are Decimal end to end; on SQLite they are
      stored as text so that no float conversion ever happens.
    - Timestamps round-trip as timezone-aware UTC on every backend.
    - round_money() is the ONLY sanctioned rounding function for reported
      amounts.  Intermediate aggregation is never rounded.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.types import TypeDecorator

# Stored precision: 38 digits, 9 decimal places
STORAGE_PRECISION = 38
STORAGE_SCALE = 9

# Reported precision (currency cents)
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


class MoneyType(TypeDecorator):
    """
    Decimal column that never passes through float.

    Uses ``Numeric(38, 9)`` where the driver supports Decimal natively
    (PostgreSQL) and a text column on SQLite.
    """

    impl = Numeric(STORAGE_PRECISION, STORAGE_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(
            Numeric(STORAGE_PRECISION, STORAGE_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = to_decimal(value)
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value))


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as UTC.

    SQLite drops tzinfo on the way back; values are re-tagged as UTC on load
    so comparisons against the injected clock never mix naive and aware
    datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """
    Convert a value to Decimal without going through binary float.

    Raises:
        TypeError: if value is a float.
        ValueError: if value is not a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary values must not be {type(value).__name__}: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc


def round_money(
    amount: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round an amount to the reporting precision.

    Only call at output boundaries; sums and products feeding further
    arithmetic stay unrounded.
    """
    quantum = Decimal(10) ** -decimal_places
    return amount.quantize(quantum, rounding=rounding)
