"""Typed errors.

Two families:
- store/resolver errors (`StoreError`, `AttributeMissingError`, `TermMissingError`)
  raised by collaborators and the term resolver;
- `MigrationError` and subclasses, the caller-facing envelope carrying a
  machine-readable code, an HTTP-equivalent status and the correlation id.
"""

from __future__ import annotations
from typing import Any, Dict, Optional


class L2GError(Exception):
    """Base for every error raised by local2global."""


class StoreError(L2GError):
    """The record/taxonomy store rejected an operation."""


class AttributeMissingError(L2GError):
    """Shared attribute does not exist and may not be created."""


class TermMissingError(L2GError):
    """Term does not exist and is not marked for creation."""


def is_conflict(message: str) -> bool:
    return "already exists" in (message or "").lower()


class MigrationError(L2GError):
    code = "l2g_error"
    status = 500

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        corr_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.corr_id = corr_id
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status, "corr_id": self.corr_id}
        if self.details is not None:
            data["details"] = self.details
        return {"code": self.code, "message": self.message, "data": data}


class InvalidParentError(MigrationError):
    code = "l2g_invalid_product"
    status = 400


class ValidationError(MigrationError):
    code = "l2g_validation"
    status = 400


class AttributeMissing(MigrationError):
    code = "l2g_attribute_missing"
    status = 400


class TermsMissing(MigrationError):
    code = "l2g_terms_missing"
    status = 400


class TermAssignmentError(MigrationError):
    code = "l2g_term_assignment"
    status = 500


class ApplyFailedError(MigrationError):
    code = "l2g_apply_failed"
    status = 500
