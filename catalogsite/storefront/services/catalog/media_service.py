"""
Variant image reconciliation for product create/update workflows.

Merges the images a variant already has with freshly uploaded ones and the
client's removal requests, keeping exactly one primary image per variant.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from django.core.files.uploadedfile import UploadedFile

from .blob_store import UploadTracker
from .errors import ImageIntegrityError
from .normalizer import NormalizedVariant

logger = logging.getLogger(__name__)

ALT_MAX_LENGTH = 100

_IMAGE_KEY_RE = re.compile(r"^variants\[(\d+)\]\[image\](\[\])?$")
_REMOVE_KEY_RE = re.compile(r"^variants\[(\d+)\]\[imagesToRemove\](\[\])?$")


@dataclass
class ImageEntry:
    """
    In-memory variant image (persisted as `ProductVariantImage`).

    Attributes:
        url: Public URL reported by the blob store.
        public_id: Blob store handle, used for deletes.
        alt: Alt text, at most 100 characters.
        is_primary: Primary flag; `ensure_single_primary` keeps it unique.
    """

    url: str
    public_id: str
    alt: str = ""
    is_primary: bool = False

    def __post_init__(self):
        self.alt = (self.alt or "").strip()[:ALT_MAX_LENGTH]

    @classmethod
    def from_model(cls, image) -> "ImageEntry":
        return cls(url=image.url, public_id=image.public_id, alt=image.alt, is_primary=image.is_primary)


@dataclass
class VariantUpload:
    """An uploaded file addressed to a variant position, with optional alt text."""

    file: UploadedFile
    alt: str = ""


@dataclass
class ReconcileResult:
    variants: List[NormalizedVariant]
    removed_public_ids: List[str] = field(default_factory=list)

    @property
    def has_images(self) -> bool:
        return any(variant.images for variant in self.variants)


def ensure_single_primary(images: List[ImageEntry]) -> List[ImageEntry]:
    """
    First image flagged primary stays primary, later flags are cleared;
    with no flag at all the first image becomes primary.
    """
    seen_primary = False
    for image in images:
        if image.is_primary:
            if seen_primary:
                image.is_primary = False
            seen_primary = True
    if images and not seen_primary:
        images[0].is_primary = True
    return images


def existing_images_by_color(product) -> Dict[int, List[List[ImageEntry]]]:
    """
    Stored image lists grouped by colour id, in variant order.

    A colour used by several variants maps to several lists; each new variant
    of that colour claims the next one.
    """
    grouped: Dict[int, List[List[ImageEntry]]] = {}
    for variant in product.variants.all():
        images = [ImageEntry.from_model(image) for image in variant.images.all()]
        grouped.setdefault(variant.color_id, []).append(images)
    return grouped


def stored_variants(product) -> List[NormalizedVariant]:
    """Stored variants (with images) in canonical form, for updates that omit `variants`."""
    result = []
    for variant in product.variants.all():
        result.append(
            NormalizedVariant(
                color_id=variant.color_id,
                price=variant.price,
                discount=variant.discount,
                final_price=variant.final_price,
                rating=variant.rating,
                sizes=list(variant.sizes or []),
                images=[ImageEntry.from_model(image) for image in variant.images.all()],
            )
        )
    return result


def upload_variant_files(
    tracker: UploadTracker,
    uploads_by_index: Optional[Mapping[int, Iterable[VariantUpload]]],
    folder: str,
) -> Dict[int, List[ImageEntry]]:
    """
    Push every uploaded file to the blob store and describe it as an entry.

    Alt text falls back to `Variant {i} Image {n}`.
    """
    entries: Dict[int, List[ImageEntry]] = {}
    for index in sorted(uploads_by_index or {}):
        for number, upload in enumerate(uploads_by_index[index], start=1):
            blob = tracker.upload(upload.file, folder)
            entries.setdefault(index, []).append(
                ImageEntry(
                    url=blob.url,
                    public_id=blob.public_id,
                    alt=upload.alt or f"Variant {index} Image {number}",
                    is_primary=False,
                )
            )
    return entries


def reconcile_variant_images(
    variants: List[NormalizedVariant],
    uploaded_by_index: Optional[Mapping[int, List[ImageEntry]]] = None,
    removals_by_index: Optional[Mapping[int, Iterable[str]]] = None,
    *,
    existing_by_color: Optional[Dict[int, List[List[ImageEntry]]]] = None,
    on_remove: Optional[Callable[[str], object]] = None,
) -> ReconcileResult:
    """
    Resolve the final image list of every variant position.

    Per position: start from the stored images (matched by colour when
    `existing_by_color` is given, otherwise the images already on the
    variant), append uploads for that position, drop removal requests that
    name an image of *this* variant, then enforce the primary invariant.
    `on_remove` is called once per dropped public id.
    """
    uploaded_by_index = uploaded_by_index or {}
    removals_by_index = removals_by_index or {}
    claimable = {color: list(lists) for color, lists in (existing_by_color or {}).items()}
    removed: List[str] = []

    for index, variant in enumerate(variants):
        if existing_by_color is not None:
            candidates = claimable.get(variant.color_id) or []
            images = list(candidates.pop(0)) if candidates else []
        else:
            images = list(variant.images)

        images.extend(uploaded_by_index.get(index, []))

        requested = list(removals_by_index.get(index, []))
        if requested:
            present = {image.public_id for image in images}
            unknown = [public_id for public_id in requested if public_id not in present]
            if unknown:
                logger.warning("Ignoring removal of unknown images for variant %s: %s", index, unknown)
            to_remove = set(requested) & present
            images = [image for image in images if image.public_id not in to_remove]
            for public_id in requested:
                if public_id in to_remove and public_id not in removed:
                    removed.append(public_id)
                    if on_remove is not None:
                        on_remove(public_id)

        variant.images = ensure_single_primary(images)

    return ReconcileResult(variants=variants, removed_public_ids=removed)


def assert_images_assigned(result: ReconcileResult, files_supplied: bool, *, kind: str) -> None:
    """Files were sent but no variant ended up with an image: uploads went nowhere."""
    if not files_supplied or result.has_images:
        return
    if kind == "IMAGES_NOT_ASSIGNED":
        message = "Uploaded images must be assigned to a variant"
    else:
        message = "At least one variant must have images"
    raise ImageIntegrityError(message, kind=kind)


def uploads_from_multipart(files, data) -> Dict[int, List[VariantUpload]]:
    """
    Collect `variants[i][image]` files; alt text comes from
    `variants[i][imageAlt_n]` (n counts files of that variant from 0).
    """
    uploads: Dict[int, List[VariantUpload]] = {}
    for key in files:
        match = _IMAGE_KEY_RE.match(key)
        if not match:
            continue
        index = int(match.group(1))
        file_list = files.getlist(key) if hasattr(files, "getlist") else [files[key]]
        for uploaded in file_list:
            if not uploaded:
                continue
            number = len(uploads.get(index, []))
            alt = data.get(f"variants[{index}][imageAlt_{number}]") or ""
            uploads.setdefault(index, []).append(VariantUpload(file=uploaded, alt=str(alt)))
    return uploads


def removals_from_multipart(data) -> Dict[int, object]:
    """Raw `variants[i][imagesToRemove]` values keyed by variant position."""
    removals: Dict[int, object] = {}
    for key in data:
        match = _REMOVE_KEY_RE.match(key)
        if not match:
            continue
        values = data.getlist(key) if hasattr(data, "getlist") else [data[key]]
        removals[int(match.group(1))] = values[0] if len(values) == 1 else values
    return removals
