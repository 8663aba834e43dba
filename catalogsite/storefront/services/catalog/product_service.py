"""
Product create/update/delete with cross-entity counter maintenance.

Each operation validates and uploads first, then runs one
`transaction.atomic` block that writes the product, its variants/images and
the Category/Color `product_count` shifts together. Any failure inside the
block rolls everything back; blobs uploaded for the aborted request are
deleted again by `UploadTracker`.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F

from productcolors.models import ProductVariant, ProductVariantImage
from storefront.models import Product

from .blob_store import BlobStore, UploadTracker, purge_after_commit
from .counters import adjust_category_count, adjust_color_counts, distinct_color_ids
from .errors import (
    AtomicUnitFailure,
    CatalogError,
    ProductNotFoundError,
    RevisionConflictError,
    SlugConflictError,
)
from .media_service import (
    VariantUpload,
    assert_images_assigned,
    existing_images_by_color,
    reconcile_variant_images,
    stored_variants,
    upload_variant_files,
)
from .normalizer import NormalizedProduct, NormalizedVariant, normalize_product_input, parse_removal_requests
from .references import coerce_pk, validate_category, validate_colors

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    "name",
    "slug",
    "description",
    "tags",
    "collections",
    "specifications",
    "video_url",
    "is_active",
    "is_featured",
    "is_sold_out",
    "is_visible",
    "discount",
)


def _image_folder() -> str:
    return getattr(settings, "CATALOG_PRODUCT_IMAGE_FOLDER", "catalog/products")


def load_product(product_id) -> Product:
    """Product with category, variant colours and images prefetched."""
    pk = coerce_pk(product_id)
    product = None
    if pk:
        product = (
            Product.objects.select_related("category")
            .prefetch_related("variants__color", "variants__images")
            .filter(pk=pk)
            .first()
        )
    if product is None:
        raise ProductNotFoundError("Product not found.")
    return product


def _ensure_slug_available(slug: str, exclude_pk: Optional[int] = None) -> None:
    clashes = Product.objects.filter(slug=slug)
    if exclude_pk is not None:
        clashes = clashes.exclude(pk=exclude_pk)
    if clashes.exists():
        raise SlugConflictError("A product with this name already exists.", kind="PRODUCT_EXISTS")


def _assignable_uploads(
    uploads: Optional[Mapping[int, Iterable[VariantUpload]]],
    variant_count: int,
) -> Dict[int, List[VariantUpload]]:
    """Keep only uploads addressed to an existing variant position."""
    assignable: Dict[int, List[VariantUpload]] = {}
    for index, files in (uploads or {}).items():
        files = [upload for upload in files if upload and upload.file]
        if not files:
            continue
        if 0 <= int(index) < variant_count:
            assignable[int(index)] = files
        else:
            logger.warning("Dropping %d upload(s) for missing variant position %s", len(files), index)
    return assignable


def _has_files(uploads) -> bool:
    return any(files for files in (uploads or {}).values())


def _write_variants(product: Product, variants: List[NormalizedVariant]) -> None:
    for position, variant in enumerate(variants):
        row = ProductVariant.objects.create(
            product=product,
            color_id=variant.color_id,
            position=position,
            price=variant.price,
            discount=variant.discount,
            final_price=variant.final_price,
            rating=variant.rating,
            sizes=variant.sizes,
        )
        ProductVariantImage.objects.bulk_create(
            [
                ProductVariantImage(
                    variant=row,
                    url=image.url,
                    public_id=image.public_id,
                    alt=image.alt,
                    is_primary=image.is_primary,
                    position=order,
                )
                for order, image in enumerate(variant.images)
            ]
        )


def _apply_fields(product: Product, normalized: NormalizedProduct, slug: str) -> None:
    for field_name in PRODUCT_FIELDS:
        setattr(product, field_name, getattr(normalized, field_name))
    product.slug = slug
    product.category_id = normalized.category_id


def create_product(
    data: Mapping,
    uploads: Optional[Mapping[int, Iterable[VariantUpload]]] = None,
    *,
    blob_store: Optional[BlobStore] = None,
) -> Product:
    """
    Create a product from raw input plus uploaded variant files.

    Raises a `CatalogError` subclass on any failure; nothing is persisted
    and no counter moves unless the whole operation succeeds.
    """
    normalized = normalize_product_input(data)
    validate_category(normalized.category_id)
    validate_colors(variant.color_id for variant in normalized.variants)
    _ensure_slug_available(normalized.slug)

    store = blob_store or BlobStore()
    assignable = _assignable_uploads(uploads, len(normalized.variants))

    with UploadTracker(store) as tracker:
        uploaded = upload_variant_files(tracker, assignable, _image_folder())
        result = reconcile_variant_images(normalized.variants, uploaded)
        assert_images_assigned(result, _has_files(uploads), kind="IMAGES_NOT_ASSIGNED")
        color_ids = distinct_color_ids(result.variants)

        try:
            with transaction.atomic():
                product = Product(category_id=normalized.category_id)
                _apply_fields(product, normalized, normalized.slug)
                product.save()
                _write_variants(product, result.variants)
                adjust_category_count(normalized.category_id, 1)
                adjust_color_counts(color_ids, 1)
        except CatalogError:
            raise
        except Exception as exc:
            logger.exception("Product creation failed for slug %s", normalized.slug)
            raise AtomicUnitFailure(
                "Product creation failed.",
                kind="PRODUCT_CREATION_FAILED",
                details={"error": str(exc)},
            ) from exc

    logger.info(
        "Created product %s (%s): category %s +1, colors %s +1",
        product.pk, product.slug, normalized.category_id, color_ids,
    )
    return load_product(product.pk)


def update_product(
    product_id,
    data: Mapping,
    uploads: Optional[Mapping[int, Iterable[VariantUpload]]] = None,
    removals: Optional[Mapping[int, object]] = None,
    *,
    expected_revision: Optional[int] = None,
    blob_store: Optional[BlobStore] = None,
) -> Product:
    """
    Update a product, shifting counters by the difference between the old
    and new category / distinct colour sets.

    Omitted `variants` keep the stored variants (images included); uploads
    and removals still apply to them by position. Blobs that the product no
    longer references are deleted after commit.
    """
    product = load_product(product_id)
    normalized = normalize_product_input(data, existing=product)

    if expected_revision is None:
        expected_revision = normalized.revision
    if expected_revision is not None and expected_revision != product.revision:
        raise RevisionConflictError(
            "Product was modified by another request; reload and retry.",
            details={"expected": expected_revision, "current": product.revision},
        )

    category_changed = normalized.category_id != product.category_id
    if category_changed:
        validate_category(normalized.category_id)

    if normalized.variants is None:
        variants = stored_variants(product)
        existing_by_color = None
    else:
        validate_colors(variant.color_id for variant in normalized.variants)
        variants = normalized.variants
        existing_by_color = existing_images_by_color(product)

    slug = product.slug
    if normalized.name != product.name:
        _ensure_slug_available(normalized.slug, exclude_pk=product.pk)
        slug = normalized.slug

    store = blob_store or BlobStore()
    assignable = _assignable_uploads(uploads, len(variants))
    removal_requests = parse_removal_requests(removals)
    previous_public_ids = {
        image.public_id for variant in product.variants.all() for image in variant.images.all()
    }

    with UploadTracker(store) as tracker:
        uploaded = upload_variant_files(tracker, assignable, _image_folder())
        result = reconcile_variant_images(
            variants,
            uploaded,
            removal_requests,
            existing_by_color=existing_by_color,
        )
        assert_images_assigned(result, _has_files(uploads), kind="NO_VARIANT_IMAGES")

        old_color_ids = product.color_ids
        new_color_ids = distinct_color_ids(result.variants)
        to_increment = [pk for pk in new_color_ids if pk not in old_color_ids]
        to_decrement = [pk for pk in old_color_ids if pk not in new_color_ids]
        kept_public_ids = {image.public_id for variant in result.variants for image in variant.images}
        unreferenced = sorted(previous_public_ids - kept_public_ids)

        try:
            with transaction.atomic():
                locked = Product.objects.select_for_update().filter(pk=product.pk).first()
                if locked is None:
                    raise ProductNotFoundError("Product not found.")
                if locked.revision != product.revision:
                    raise RevisionConflictError(
                        "Product was modified by another request; reload and retry.",
                        details={"expected": product.revision, "current": locked.revision},
                    )

                if category_changed:
                    adjust_category_count(product.category_id, -1)
                    adjust_category_count(normalized.category_id, 1)
                adjust_color_counts(to_increment, 1)
                adjust_color_counts(to_decrement, -1)

                _apply_fields(locked, normalized, slug)
                locked.revision = F("revision") + 1
                locked.save()
                locked.variants.all().delete()
                _write_variants(locked, result.variants)

                purge_after_commit(unreferenced, blob_store)
        except CatalogError:
            raise
        except Exception as exc:
            logger.exception("Product update failed for product %s", product.pk)
            raise AtomicUnitFailure(
                "Product update failed.",
                kind="PRODUCT_UPDATE_FAILED",
                details={"error": str(exc)},
            ) from exc

    logger.info(
        "Updated product %s: colors +%s -%s, category %s, %d blob(s) released",
        product.pk, to_increment, to_decrement,
        f"{product.category_id}->{normalized.category_id}" if category_changed else "unchanged",
        len(unreferenced),
    )
    return load_product(product.pk)


def delete_product(product_id, *, blob_store: Optional[BlobStore] = None) -> None:
    """
    Delete a product and release its category/colour counts.

    Variant images are purged from the blob store after commit, best effort.
    """
    product = load_product(product_id)

    try:
        with transaction.atomic():
            locked = Product.objects.select_for_update().filter(pk=product.pk).first()
            if locked is None:
                raise ProductNotFoundError("Product not found.")
            variants = list(ProductVariant.objects.filter(product=locked).prefetch_related("images"))
            color_ids = distinct_color_ids(variants)
            public_ids = [image.public_id for variant in variants for image in variant.images.all()]

            adjust_category_count(locked.category_id, -1)
            adjust_color_counts(color_ids, -1)
            locked.delete()

            purge_after_commit(public_ids, blob_store)
    except CatalogError:
        raise
    except Exception as exc:
        logger.exception("Product deletion failed for product %s", product.pk)
        raise AtomicUnitFailure(
            "Product deletion failed.",
            kind="PRODUCT_DELETION_FAILED",
            details={"error": str(exc)},
        ) from exc

    logger.info(
        "Deleted product %s: category %s -1, colors %s -1, %d blob(s) queued for purge",
        product.pk, product.category_id, color_ids, len(public_ids),
    )


def set_product_flags(product_id, *, is_sold_out: Optional[bool] = None, is_active: Optional[bool] = None) -> Product:
    """Toggle availability flags without touching variants or counters."""
    product = load_product(product_id)
    changes = {}
    if is_sold_out is not None:
        changes["is_sold_out"] = is_sold_out
    if is_active is not None:
        changes["is_active"] = is_active
    if changes:
        Product.objects.filter(pk=product.pk).update(revision=F("revision") + 1, **changes)
        product = load_product(product.pk)
    return product


def record_view(product: Product) -> None:
    Product.objects.filter(pk=product.pk).update(view_count=F("view_count") + 1)


def record_whatsapp_inquiry(product: Product) -> None:
    Product.objects.filter(pk=product.pk).update(whatsapp_inquiry_count=F("whatsapp_inquiry_count") + 1)
