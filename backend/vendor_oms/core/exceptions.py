"""Error taxonomy shared by the assignment and vendor-order services."""
from __future__ import annotations


class VendorOrderError(Exception):
    """Base class for every error raised by the reconciliation services."""


class InvalidArgumentError(VendorOrderError):
    """A value outside its allowed set (status enum, page, limit)."""


class AssignmentValidationError(VendorOrderError):
    """Field-level validation failure.

    ``errors`` maps each offending field to its messages so a caller can
    render them next to the matching input.
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Validation failed for: {fields}")


class AssignmentNotFoundError(VendorOrderError):
    pass


class AssignmentConflictError(VendorOrderError):
    """The assignment is no longer in a state that allows the transition."""


class StorageError(VendorOrderError):
    """The underlying store failed; the original error is logged, not exposed."""
