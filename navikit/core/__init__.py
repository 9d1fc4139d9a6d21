"""Debounced request pipeline and view-state machinery."""

from __future__ import annotations

from .coordinator import OptimisticHook, RequestCoordinator
from .debounce import DebounceChannel, Debouncer
from .models import (
    Empty,
    Err,
    ErrorInfo,
    ErrorKind,
    Failed,
    Idle,
    Loaded,
    Loading,
    Ok,
    PendingRequest,
    Result,
    StateKind,
    ViewState,
)
from .operation import AsyncOperationFn, OperationError, run_operation
from .state import StateListener, StateTransitionError, ViewStateMachine, is_empty

__all__ = [
    "AsyncOperationFn",
    "DebounceChannel",
    "Debouncer",
    "Empty",
    "Err",
    "ErrorInfo",
    "ErrorKind",
    "Failed",
    "Idle",
    "Loaded",
    "Loading",
    "Ok",
    "OperationError",
    "OptimisticHook",
    "PendingRequest",
    "RequestCoordinator",
    "Result",
    "StateKind",
    "StateListener",
    "StateTransitionError",
    "ViewState",
    "ViewStateMachine",
    "is_empty",
    "run_operation",
]
