from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from src.shared.operation_status import OperationStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_utc_z(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class OperationConflictError(RuntimeError):
    pass


@dataclass(frozen=True)
class OperationState:
    status: OperationStatus = OperationStatus.IDLE
    details: dict[str, Any] = field(default_factory=dict)  # Success payload
    message: Optional[str] = None  # Error message
    updated_at: datetime = field(default_factory=utc_now)

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "details": dict(self.details),
            "message": self.message,
            "updated_at": format_utc_z(self.updated_at),
        }


class OperationTracker:
    """
    Four-state observer for one kind of operation (export or import).

    Idle -> InProgress -> Success | Error -> acknowledge() -> Idle
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._lock = threading.Lock()
        self._state = OperationState()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> OperationState:
        with self._lock:
            return self._state

    def start(self) -> OperationState:
        """
        Enter InProgress.

        A finished (Success/Error) state that was never acknowledged is replaced.

        Raises:
            OperationConflictError: If an operation is already in progress.
        """
        with self._lock:
            if self._state.status.is_locked():
                raise OperationConflictError(f"{self._name} already in progress")
            self._state = OperationState(status=OperationStatus.IN_PROGRESS)
            return self._state

    def succeed(self, **details: Any) -> OperationState:
        return self._finish(OperationState(status=OperationStatus.SUCCESS, details=details))

    def fail(self, message: str) -> OperationState:
        return self._finish(OperationState(status=OperationStatus.ERROR, message=message or "Unknown error"))

    def acknowledge(self) -> OperationState:
        """Return to Idle after a terminal state; no-op while Idle or InProgress."""
        with self._lock:
            if self._state.status.is_terminal():
                self._state = OperationState()
            return self._state

    def _finish(self, new_state: OperationState) -> OperationState:
        with self._lock:
            if self._state.status is not OperationStatus.IN_PROGRESS:
                raise RuntimeError(f"{self._name} is not in progress (status={self._state.status.value})")
            self._state = new_state
            return self._state
