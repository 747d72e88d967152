"""
fair_engines.tracer -- FAIR_ENGINE_TRACE records for engine calls.

Every proration and commission computation leaves one structured log record
carrying the engine name and version, a fingerprint of the money inputs that
decided the result, the outcome (``ok`` or the exception type) and the
elapsed time.  Two calls with the same fingerprint must produce the same
amounts, which is how a disputed fee split or commission is re-checked.

Arguments are bound through the wrapped function's signature, so a field
is fingerprinted whether the caller passed it positionally or by keyword.

Usage:
    @traced_engine("proration", "1.0", fingerprint_fields=("total", "targets"))
    def prorate(self, total, targets):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from fair_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

_FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Stable text for a fingerprinted value.  Decimals keep their exponent."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (str, int, Decimal, UUID)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _canonicalize(
            {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        )
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """SHA-256 prefix over ``field=value`` pairs; absent fields hash as null."""
    canonical = "|".join(
        f"{field}={_canonicalize(arguments.get(field))}" for field in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:_FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Emit FAIR_ENGINE_TRACE after each call of the decorated engine function.

    A call that raises is traced with ``outcome`` set to the exception type
    and the exception propagates unchanged.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            outcome = "ok"
            started = time.monotonic()
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                outcome = type(exc).__name__
                raise
            finally:
                _logger.info(
                    "FAIR_ENGINE_TRACE",
                    extra={
                        "trace_type": "FAIR_ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fingerprint,
                        "outcome": outcome,
                        "duration_ms": round((time.monotonic() - started) * 1000, 2),
                        "function": func.__qualname__,
                    },
                )

        return wrapper

    return decorator
