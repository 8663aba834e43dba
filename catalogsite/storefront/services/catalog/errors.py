"""
Catalog domain exceptions.

Raised by the service layer when a catalog rule is violated. The API layer
catches `CatalogError` and turns it into a response carrying `kind`,
`message` and `http_status`.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base class: every catalog error has a stable machine-checkable kind."""

    kind = "CATALOG_ERROR"
    http_status = 400

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind
        self.details = details or {}

    def as_dict(self, include_details: bool = False) -> Dict[str, Any]:
        payload = {
            "statusCode": self.http_status,
            "kind": self.kind,
            "message": self.message,
        }
        if include_details and self.details:
            payload["details"] = self.details
        return payload


class InputValidationError(CatalogError):
    """Malformed or missing fields, out-of-range values."""

    kind = "MALFORMED_INPUT"


class ReferenceNotFoundError(CatalogError):
    """A referenced category or colour does not exist."""

    kind = "INVALID_REFERENCE"


class ProductNotFoundError(CatalogError):
    kind = "PRODUCT_NOT_FOUND"
    http_status = 404


class CategoryNotFoundError(CatalogError):
    kind = "CATEGORY_NOT_FOUND"
    http_status = 404


class ColorNotFoundError(CatalogError):
    kind = "COLOR_NOT_FOUND"
    http_status = 404


class ConflictError(CatalogError):
    kind = "CONFLICT"
    http_status = 409


class SlugConflictError(ConflictError):
    """Slug or name collides with another record."""

    kind = "PRODUCT_EXISTS"


class RevisionConflictError(ConflictError):
    """The product changed since the caller (or this request) last read it."""

    kind = "REVISION_CONFLICT"


class ReferenceInUseError(CatalogError):
    """Deleting a category/colour that products still reference."""

    kind = "REFERENCE_IN_USE"


class ImageIntegrityError(CatalogError):
    kind = "IMAGES_NOT_ASSIGNED"


class BlobStoreError(CatalogError):
    kind = "IMAGE_UPLOAD_FAILED"
    http_status = 502


class AtomicUnitFailure(CatalogError):
    """Storage failure inside the transaction; everything was rolled back."""

    kind = "ATOMIC_UNIT_FAILED"
    http_status = 500
