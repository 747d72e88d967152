"""
Module: fair_engines.proration
Responsibility:
    Split one card fee, charged once for a multi-item sale batch, across the
    batch lines in proportion to each line's value_charged.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fair_kernel.db.types and the kernel logger.

Invariants enforced:
    - Conservation: the shares sum exactly to the fee.
    - Non-negative: every share is >= 0.  Shares are differences of the
      rounded running total (``decimal_places``, ROUND_HALF_UP by default),
      so rounding up on several lines can never overdraw the fee.
    - The last line takes whatever the earlier lines left.
    - Determinism: identical inputs always give identical shares.

Failure modes:
    - ValueError on a negative fee, an empty batch, a negative line value
      or a batch whose value sums to zero.

Usage:
    from fair_engines.proration import FeeProrationEngine, ProrationTarget

    result = FeeProrationEngine().prorate(
        total=Decimal("10"),
        targets=[
            ProrationTarget("a", Decimal("300")),
            ProrationTarget("b", Decimal("200")),
            ProrationTarget("c", Decimal("500")),
        ],
    )
    [line.share for line in result.lines]
    # [Decimal('3.00'), Decimal('2.00'), Decimal('5.00')]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Hashable

from fair_engines.tracer import traced_engine
from fair_kernel.db.types import DEFAULT_ROUNDING, MONEY_DECIMAL_PLACES, ZERO
from fair_kernel.logging_config import get_logger

logger = get_logger("engines.proration")


@dataclass(frozen=True)
class ProrationTarget:
    """One line of the batch.  ``weight`` is the line's value_charged."""

    target_id: Hashable
    weight: Decimal

    def __post_init__(self) -> None:
        if self.weight < ZERO:
            raise ValueError("Weight cannot be negative")


@dataclass(frozen=True)
class ProrationLine:
    target_id: Hashable
    weight: Decimal
    share: Decimal


@dataclass(frozen=True)
class ProrationResult:
    """
    Guarantees:
        - ``sum(line.share) == total``.
        - ``rounding_adjustment`` is what the last line absorbed relative to
          rounding its own ratio.
    """

    total: Decimal
    lines: tuple[ProrationLine, ...]
    rounding_adjustment: Decimal

    @property
    def shares(self) -> tuple[Decimal, ...]:
        return tuple(line.share for line in self.lines)

    def share_for(self, target_id: Hashable) -> Decimal:
        for line in self.lines:
            if line.target_id == target_id:
                return line.share
        raise KeyError(target_id)


class FeeProrationEngine:
    """
    Prorate an amount across weighted targets.

    Contract:
        Pure function with deterministic rounding.  No I/O.
    Guarantees:
        - Intermediate ratios use full precision.
        - The rounded running total never exceeds ``total``, so no share
          is negative and the last target takes the exact remainder.
    """

    def __init__(
        self,
        decimal_places: int = MONEY_DECIMAL_PLACES,
        rounding: str = DEFAULT_ROUNDING,
    ):
        self.decimal_places = decimal_places
        self.rounding = rounding

    @traced_engine("proration", "1.0", fingerprint_fields=("total", "targets"))
    def prorate(
        self,
        total: Decimal,
        targets: Sequence[ProrationTarget],
    ) -> ProrationResult:
        """
        Split ``total`` across ``targets`` proportionally to their weights.

        Raises:
            ValueError: negative total, no targets, or zero total weight.
        """
        if total < ZERO:
            raise ValueError(f"Amount to prorate cannot be negative: {total}")
        if not targets:
            raise ValueError("Cannot prorate across zero targets")

        total_weight = sum((t.weight for t in targets), ZERO)
        if total_weight == ZERO:
            raise ValueError("Cannot prorate across targets whose weights sum to zero")

        quantum = Decimal(10) ** -self.decimal_places
        last = len(targets) - 1
        lines: list[ProrationLine] = []
        cumulative_weight = ZERO
        allocated_so_far = ZERO

        for i, target in enumerate(targets):
            if i == last:
                allocated_to = total
            else:
                cumulative_weight += target.weight
                allocated_to = min(
                    (total * cumulative_weight / total_weight).quantize(
                        quantum, rounding=self.rounding
                    ),
                    total,
                )
            share = allocated_to - allocated_so_far
            allocated_so_far = allocated_to
            lines.append(ProrationLine(target.target_id, target.weight, share))

        allocated = sum((line.share for line in lines), ZERO)
        assert allocated == total, (
            f"Proration conservation violated: {allocated} != {total}"
        )
        assert all(line.share >= ZERO for line in lines), "Negative proration share"

        naive_last = (total * targets[last].weight / total_weight).quantize(
            quantum, rounding=self.rounding
        )
        rounding_adjustment = lines[last].share - naive_last

        logger.info("proration_completed", extra={
            "total": str(total),
            "line_count": len(lines),
            "rounding_adjustment": str(rounding_adjustment),
        })

        return ProrationResult(
            total=total,
            lines=tuple(lines),
            rounding_adjustment=rounding_adjustment,
        )
