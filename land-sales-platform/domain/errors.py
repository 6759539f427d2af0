"""
Domain: error taxonomy for store and workflow operations.

Every error carries an HTTP-style ``status_code`` so the API boundary can map
it to a response without inspecting message text:

- MissingFieldError       400  required input absent
- InvalidArgumentError    400  value fails an enumerated or range check
- InsufficientBudgetError 400  purchase exceeds the buyer's remaining balance
- NotFoundError           404  target row absent
- ConflictError           409  uniqueness violation (e.g. duplicate id_number)
"""

from __future__ import annotations

from typing import Iterable


class LandStoreError(Exception):
    """Base class for classified store/workflow failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingFieldError(LandStoreError):
    status_code = 400

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class InvalidArgumentError(LandStoreError):
    status_code = 400


class InsufficientBudgetError(InvalidArgumentError):
    """Raised when a purchase would exceed the buyer's remaining balance."""


class NotFoundError(LandStoreError):
    status_code = 404


class ConflictError(LandStoreError):
    status_code = 409


__all__ = [
    "LandStoreError",
    "MissingFieldError",
    "InvalidArgumentError",
    "InsufficientBudgetError",
    "NotFoundError",
    "ConflictError",
]
