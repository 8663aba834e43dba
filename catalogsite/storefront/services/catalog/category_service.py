"""
Category administration: CRUD plus banner/icon images.

`product_count` is read-only here; only the product mutator changes it.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from storefront.models import Category
from storefront.utils.slugs import slugify_value

from .blob_store import BlobStore, UploadTracker, purge_after_commit
from .errors import CategoryNotFoundError, ConflictError, InputValidationError, ReferenceInUseError
from .normalizer import coerce_bool, coerce_decimal
from .references import coerce_pk

logger = logging.getLogger(__name__)

CATEGORY_NAME_MAX_LENGTH = 100
CATEGORY_DESCRIPTION_MAX_LENGTH = 500

# поле модели -> (url, public_id)
IMAGE_SLOTS = {
    "banner_image": ("banner_image_url", "banner_image_public_id"),
    "icon": ("icon_url", "icon_public_id"),
}

# product_count сюда не входит: его меняет только мутатор товаров
EDITABLE_FIELDS = [
    "name",
    "slug",
    "description",
    "is_active",
    "sort_order",
    "banner_image_url",
    "banner_image_public_id",
    "icon_url",
    "icon_public_id",
    "updated_at",
]


def _image_folder() -> str:
    return getattr(settings, "CATALOG_CATEGORY_IMAGE_FOLDER", "catalog/categories")


def get_category(category_id) -> Category:
    pk = coerce_pk(category_id)
    category = Category.objects.filter(pk=pk).first() if pk else None
    if category is None:
        raise CategoryNotFoundError("Category not found")
    return category


def _normalize_name(raw) -> str:
    name = str(raw).strip() if raw is not None else ""
    if not name:
        raise InputValidationError("Category name is required", kind="NAME_REQUIRED")
    if len(name) > CATEGORY_NAME_MAX_LENGTH:
        raise InputValidationError(
            f"Category name cannot exceed {CATEGORY_NAME_MAX_LENGTH} characters",
            kind="MALFORMED_INPUT",
        )
    if not slugify_value(name):
        raise InputValidationError(
            "Category name must contain at least one letter or digit",
            kind="NAME_REQUIRED",
        )
    return name


def _normalize_description(raw, default: str = "") -> str:
    if raw is None:
        return default
    description = str(raw).strip()
    if len(description) > CATEGORY_DESCRIPTION_MAX_LENGTH:
        raise InputValidationError(
            f"Description cannot exceed {CATEGORY_DESCRIPTION_MAX_LENGTH} characters",
            kind="MALFORMED_INPUT",
        )
    return description


def _normalize_sort_order(raw, default: int = 0) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    value = coerce_decimal(raw)
    if value is None or value < 0 or value != value.to_integral_value():
        raise InputValidationError("Sort order must be a non-negative integer", kind="MALFORMED_INPUT")
    return int(value)


def _ensure_unique(name: str, slug: str, exclude_pk: Optional[int] = None) -> None:
    clashes = Category.objects.filter(name__iexact=name) | Category.objects.filter(slug=slug)
    if exclude_pk is not None:
        clashes = clashes.exclude(pk=exclude_pk)
    if clashes.exists():
        raise ConflictError("Category already exists", kind="CATEGORY_EXISTS")


def _attach_images(category: Category, tracker: UploadTracker, files: Optional[Mapping]) -> list:
    """Upload new banner/icon files; returns public ids of the blobs they replace."""
    replaced = []
    for slot, (url_field, public_id_field) in IMAGE_SLOTS.items():
        uploaded = (files or {}).get(slot)
        if not uploaded:
            continue
        blob = tracker.upload(uploaded, _image_folder(), prefix="category")
        previous = getattr(category, public_id_field)
        if previous:
            replaced.append(previous)
        setattr(category, url_field, blob.url)
        setattr(category, public_id_field, blob.public_id)
    return replaced


def create_category(data: Mapping, files: Optional[Mapping] = None, *, blob_store: Optional[BlobStore] = None) -> Category:
    """
    Create a category; `files` may carry `banner_image` and/or `icon`.

    Uploaded images are deleted again if the insert fails.
    """
    name = _normalize_name(data.get("name"))
    slug = slugify_value(name)
    _ensure_unique(name, slug)

    category = Category(
        name=name,
        slug=slug,
        description=_normalize_description(data.get("description")),
        is_active=coerce_bool(data.get("isActive", data.get("is_active")), True),
        sort_order=_normalize_sort_order(data.get("sortOrder", data.get("sort_order"))),
    )

    with UploadTracker(blob_store or BlobStore()) as tracker:
        _attach_images(category, tracker, files)
        try:
            category.save()
        except IntegrityError as exc:
            raise ConflictError("Category already exists", kind="CATEGORY_EXISTS") from exc

    logger.info("Created category %s (%s)", category.pk, category.slug)
    return category


def update_category(
    category_id,
    data: Mapping,
    files: Optional[Mapping] = None,
    *,
    blob_store: Optional[BlobStore] = None,
) -> Category:
    """
    Partial update. A name change re-derives the slug; a new banner/icon
    replaces the old blob, which is deleted after commit.
    """
    category = get_category(category_id)
    store = blob_store or BlobStore()

    if data.get("name") is not None:
        name = _normalize_name(data.get("name"))
        if name != category.name:
            slug = slugify_value(name)
            _ensure_unique(name, slug, exclude_pk=category.pk)
            category.name = name
            category.slug = slug

    category.description = _normalize_description(data.get("description"), category.description)
    category.is_active = coerce_bool(data.get("isActive", data.get("is_active")), category.is_active)
    category.sort_order = _normalize_sort_order(
        data.get("sortOrder", data.get("sort_order")), category.sort_order
    )

    with UploadTracker(store) as tracker:
        replaced = _attach_images(category, tracker, files)
        try:
            with transaction.atomic():
                category.save(update_fields=EDITABLE_FIELDS)
                purge_after_commit(replaced, store)
        except IntegrityError as exc:
            raise ConflictError("Category already exists", kind="CATEGORY_EXISTS") from exc

    logger.info("Updated category %s (%s)", category.pk, category.slug)
    return category


def _category_in_use(count: int) -> ReferenceInUseError:
    return ReferenceInUseError(
        f"Cannot delete category because it is associated with {count} product(s). "
        "Please delete the products first.",
        kind="CATEGORY_IN_USE",
        details={"products": count},
    )


def delete_category(category_id, *, blob_store: Optional[BlobStore] = None) -> None:
    """Refuses while any product references the category."""
    category = get_category(category_id)
    store = blob_store or BlobStore()

    try:
        with transaction.atomic():
            category = Category.objects.select_for_update().filter(pk=category.pk).first()
            if category is None:
                raise CategoryNotFoundError("Category not found")
            in_use = category.products.count()
            if in_use:
                raise _category_in_use(in_use)
            public_ids = [category.banner_image_public_id, category.icon_public_id]
            category.delete()
            purge_after_commit(public_ids, store)
    except ProtectedError as exc:
        # товар появился между подсчётом и удалением
        raise _category_in_use(len(exc.protected_objects)) from exc

    logger.info("Deleted category %s (%s)", category_id, category.slug)
