"""Async operation plumbing: normalise whatever an operation does into a result."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from .models import Err, ErrorInfo, Ok, Result

LOG = logging.getLogger(__name__)

In = TypeVar("In")
Out = TypeVar("Out")

AsyncOperationFn = Callable[[In], Awaitable[Any]]
"""Coroutine function returning ``Ok``/``Err``, a bare value, or raising."""


class OperationError(RuntimeError):
    """Raised by operations that can describe their own failure."""

    def __init__(self, info: ErrorInfo) -> None:
        super().__init__(info.message)
        self.info = info


async def run_operation(operation: AsyncOperationFn[In], value: In) -> Result[Any]:
    """Await ``operation(value)`` and return a discriminated result.

    ``OperationError`` keeps its error info, any other exception becomes an
    unknown failure and a plain return value counts as success. Cancellation
    is propagated.
    """

    try:
        outcome = await operation(value)
    except asyncio.CancelledError:
        raise
    except OperationError as exc:
        return Err(exc.info)
    except Exception as exc:
        LOG.exception("Operation raised", extra={"operation": _describe(operation)})
        return Err(ErrorInfo.unknown(str(exc) or exc.__class__.__name__))
    if isinstance(outcome, (Ok, Err)):
        return outcome
    return Ok(outcome)


def _describe(operation: Callable[..., object]) -> str:
    return getattr(operation, "__qualname__", None) or repr(operation)


__all__ = ["AsyncOperationFn", "OperationError", "run_operation"]
