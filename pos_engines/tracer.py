"""
Engine call tracing (``pos_engines.tracer``).

``@traced_engine`` wraps a pure engine method and, after every call, logs
one ``POS_ENGINE_TRACE`` record carrying the engine name and version, how
long the call took, and a short fingerprint of the arguments named in
``fingerprint_fields``.  Two calls with equal fingerprinted arguments log
the same fingerprint, which makes replays easy to spot in the log.

The decorator only logs; arguments and results pass through untouched.
An exception raised by the engine propagates and no trace is written.

Usage::

    class FinancialAggregator:
        @traced_engine("aggregation", "1.0", fingerprint_fields=("start", "end"))
        def aggregate(self, ledger, start, end): ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from pos_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

FINGERPRINT_LENGTH = 16


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(map(str, value))
    return str(value)


def compute_input_fingerprint(arguments: dict[str, Any], fields: tuple[str, ...]) -> str:
    """
    Hex prefix of the sha256 of the named arguments, rendered as sorted JSON.

    Missing arguments render as ``null``.
    """
    selected = {name: arguments.get(name) for name in fields}
    canonical = json.dumps(selected, sort_keys=True, default=_plain)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable], Callable]:
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(bound.arguments, fingerprint_fields)

            started = time.perf_counter()
            result = func(*args, **kwargs)
            logger.info(
                "POS_ENGINE_TRACE",
                extra={
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "engine_call": func.__qualname__,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
