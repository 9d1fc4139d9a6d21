"""Core dataclasses shared by the request pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Generic, TypeVar, Union

T = TypeVar("T")
V = TypeVar("V")


class ErrorKind(str, Enum):
    """Categories of operation failure."""

    NETWORK = "network"
    SERVER = "server"
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


_RETRYABLE = frozenset({ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.TIMEOUT})


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Failure details routed into a ``Failed`` state."""

    kind: ErrorKind
    message: str

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE

    @classmethod
    def network(cls, message: str = "Could not connect to the network.") -> ErrorInfo:
        return cls(ErrorKind.NETWORK, message)

    @classmethod
    def validation(cls, message: str) -> ErrorInfo:
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def timeout(cls, seconds: float) -> ErrorInfo:
        return cls(ErrorKind.TIMEOUT, f"No response after {seconds:g}s.")

    @classmethod
    def unknown(cls, message: str = "An unknown error occurred.") -> ErrorInfo:
        return cls(ErrorKind.UNKNOWN, message)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful operation outcome."""

    value: T


@dataclass(frozen=True, slots=True)
class Err:
    """Failed operation outcome."""

    error: ErrorInfo


Result = Union[Ok[T], Err]


class StateKind(str, Enum):
    """Discriminator exposed by every view state."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Idle:
    """No operation has been attempted yet."""

    kind: ClassVar[StateKind] = StateKind.IDLE


@dataclass(frozen=True, slots=True)
class Loading(Generic[T]):
    """An operation is in flight.

    ``data`` carries the last good value during a refresh when stale data is
    kept visible; it is always ``None`` for an initial load.
    """

    is_initial: bool
    data: T | None = None

    kind: ClassVar[StateKind] = StateKind.LOADING


@dataclass(frozen=True, slots=True)
class Loaded(Generic[T]):
    """The last operation produced non-empty data."""

    data: T

    kind: ClassVar[StateKind] = StateKind.LOADED


@dataclass(frozen=True, slots=True)
class Empty:
    """The last operation succeeded with zero items."""

    kind: ClassVar[StateKind] = StateKind.EMPTY


@dataclass(frozen=True, slots=True)
class Failed(Generic[T]):
    """The last operation failed."""

    error: ErrorInfo
    data: T | None = None

    kind: ClassVar[StateKind] = StateKind.FAILED


ViewState = Union[Idle, Loading[T], Loaded[T], Empty, Failed[T]]


@dataclass(frozen=True, slots=True)
class PendingRequest(Generic[V]):
    """One dispatched operation, identified by its generation."""

    generation: int
    value: V | None = None
    is_initial: bool = True


__all__ = [
    "Empty",
    "Err",
    "ErrorInfo",
    "ErrorKind",
    "Failed",
    "Idle",
    "Loaded",
    "Loading",
    "Ok",
    "PendingRequest",
    "Result",
    "StateKind",
    "ViewState",
]
