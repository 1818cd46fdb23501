"""
Error taxonomy for the pivot explorer.

Engine operations hand these back as values; nothing here is meant to end a
session.
"""
from dataclasses import dataclass
from typing import Optional


class PivotExplorerError(Exception):
    """Base class for pivot explorer errors"""


class FieldIndexError(PivotExplorerError):
    def __init__(self, index: int, size: int, role: Optional[str] = None):
        self.index = index
        self.size = size
        self.role = role
        scope = f"{role} fields" if role else "fields"
        super().__init__(f"Index {index} out of range for {size} {scope}")


class RoleMismatchError(PivotExplorerError):
    def __init__(self, index: int, expected: str, actual: str):
        self.index = index
        self.expected = expected
        self.actual = actual
        super().__init__(f"Field at {index} is a {actual} field, expected {expected}")


class InvalidOperatorError(PivotExplorerError):
    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"Unknown filter operator: {operator!r}")


class PendingFilterError(PivotExplorerError):
    """Raised as a value when staging/committing conflicts with the pending state"""


class DecodeError(PivotExplorerError):
    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        self.message = message
        super().__init__(f"Could not decode '{parameter}': {message}")


class SavedQueryNotFound(PivotExplorerError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Saved query not found: {name}")


@dataclass
class OperationResult:
    """Outcome of a mutation: either applied, or a reported no-op"""
    ok: bool
    error: Optional[PivotExplorerError] = None

    def __bool__(self) -> bool:
        return self.ok

    @staticmethod
    def success() -> "OperationResult":
        return OperationResult(True)

    @staticmethod
    def failure(error: PivotExplorerError) -> "OperationResult":
        return OperationResult(False, error)
