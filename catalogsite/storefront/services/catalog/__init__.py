"""
Catalog-related service helpers (authoritative implementation).
"""

from .blob_store import BlobStore, StoredBlob, UploadTracker, purge_after_commit
from .category_service import create_category, delete_category, get_category, update_category
from .color_service import create_color, delete_color, get_color, normalize_hex_code, update_color
from .errors import (
    AtomicUnitFailure,
    BlobStoreError,
    CatalogError,
    CategoryNotFoundError,
    ColorNotFoundError,
    ConflictError,
    ImageIntegrityError,
    InputValidationError,
    ProductNotFoundError,
    ReferenceInUseError,
    ReferenceNotFoundError,
    RevisionConflictError,
    SlugConflictError,
)
from .media_service import (
    ImageEntry,
    VariantUpload,
    ensure_single_primary,
    reconcile_variant_images,
    removals_from_multipart,
    uploads_from_multipart,
)
from .normalizer import compute_final_price, normalize_product_input
from .product_service import (
    create_product,
    delete_product,
    load_product,
    record_view,
    record_whatsapp_inquiry,
    set_product_flags,
    update_product,
)
from .references import validate_category, validate_colors

__all__ = [
    "BlobStore",
    "StoredBlob",
    "UploadTracker",
    "purge_after_commit",
    "create_category",
    "delete_category",
    "get_category",
    "update_category",
    "create_color",
    "delete_color",
    "get_color",
    "normalize_hex_code",
    "update_color",
    "AtomicUnitFailure",
    "BlobStoreError",
    "CatalogError",
    "CategoryNotFoundError",
    "ColorNotFoundError",
    "ConflictError",
    "ImageIntegrityError",
    "InputValidationError",
    "ProductNotFoundError",
    "ReferenceInUseError",
    "ReferenceNotFoundError",
    "RevisionConflictError",
    "SlugConflictError",
    "ImageEntry",
    "VariantUpload",
    "ensure_single_primary",
    "reconcile_variant_images",
    "removals_from_multipart",
    "uploads_from_multipart",
    "compute_final_price",
    "normalize_product_input",
    "create_product",
    "delete_product",
    "load_product",
    "record_view",
    "record_whatsapp_inquiry",
    "set_product_flags",
    "update_product",
    "validate_category",
    "validate_colors",
]
