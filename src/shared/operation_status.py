"""
Operation status enum shared by export/import reporting and tests.

Contract:
    Idle -> InProgress -> Success | Error -> (acknowledged) -> Idle
"""

from __future__ import annotations

from enum import Enum


class OperationStatus(str, Enum):
    IDLE = "Idle"
    IN_PROGRESS = "InProgress"
    SUCCESS = "Success"
    ERROR = "Error"

    def is_locked(self) -> bool:
        return self is OperationStatus.IN_PROGRESS

    def is_terminal(self) -> bool:
        return self in (OperationStatus.SUCCESS, OperationStatus.ERROR)
