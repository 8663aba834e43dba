"""
Shape raw product input into one canonical form.

Admin clients send the same field as a native list/object, a single scalar
or a JSON-encoded string (multipart forms can only carry strings). Every
field has one parse-or-default adapter here, so the rest of the catalog
services never branch on input shape.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from storefront.models import VIDEO_URL_RE
from storefront.utils.slugs import slugify_value

from .errors import InputValidationError, ReferenceNotFoundError
from .references import coerce_pk

NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
SIZE_MAX_LENGTH = 20
MAX_PRICE = Decimal("9999999999.99")

CENT = Decimal("0.01")
ONE = Decimal("1")
HUNDRED = Decimal("100")

_VIDEO_RE = re.compile(VIDEO_URL_RE)
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}
_UNPARSED = object()


@dataclass
class NormalizedVariant:
    color_id: int
    price: Decimal
    discount: Decimal
    final_price: Decimal
    rating: float
    sizes: List[Dict[str, str]]
    images: list = field(default_factory=list)


@dataclass
class NormalizedProduct:
    """
    Canonical product input.

    `variants` is None only on update when the client omitted the field:
    the stored variants (with their images) are then kept as they are.
    """

    name: str
    slug: str
    category_id: int
    description: str
    variants: Optional[List[NormalizedVariant]]
    tags: List[str]
    collections: List[str]
    specifications: Dict[str, str]
    video_url: Optional[str]
    is_active: bool
    is_featured: bool
    is_sold_out: bool
    is_visible: bool
    discount: Decimal
    revision: Optional[int] = None


def compute_final_price(price: Decimal, discount: Optional[Decimal]) -> Decimal:
    """round(price - price*discount/100) half-up, or price when no discount."""
    if not discount:
        return price
    discounted = price - (price * discount) / HUNDRED
    return discounted.quantize(ONE, rounding=ROUND_HALF_UP).quantize(CENT)


def _parse_json(raw: str):
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return _UNPARSED


def coerce_list(raw) -> list:
    """
    Native list -> itself; JSON string -> parsed list (scalar wrapped);
    unparsable string or any other scalar/object -> single-element list.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, str):
        if not raw.strip():
            return []
        parsed = _parse_json(raw)
        if parsed is _UNPARSED:
            return [raw]
        if parsed is None:
            return []
        return parsed if isinstance(parsed, list) else [parsed]
    return [raw]


def normalize_slug_list(raw) -> List[str]:
    """Tags/collections: slugify each entry, drop empties and repeats."""
    result: List[str] = []
    for item in coerce_list(raw):
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            continue
        slug = slugify_value(item)
        if slug and slug not in result:
            result.append(slug)
    return result


def _flatten_mapping(mapping: Mapping) -> Dict[str, str]:
    flat: Dict[str, str] = {}
    for key, value in mapping.items():
        if value is None or isinstance(value, (dict, list, tuple)):
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        key = str(key).strip()
        if key:
            flat[key] = str(value).strip()
    return flat


def normalize_specifications(raw, previous: Optional[Mapping] = None) -> Dict[str, str]:
    """
    Resolve to a flat str->str map. Anything that is not an object falls
    back to `previous` (update) or an empty map (create).
    """
    fallback = dict(previous) if previous is not None else {}
    if isinstance(raw, str):
        raw = _parse_json(raw)
    if isinstance(raw, Mapping):
        return _flatten_mapping(raw)
    return fallback


def coerce_bool(raw, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in _TRUE_STRINGS:
            return True
        if value in _FALSE_STRINGS:
            return False
    return default


def coerce_decimal(raw) -> Optional[Decimal]:
    """Finite Decimal from a number or numeric string, else None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float) and not math.isfinite(raw):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def _bounded_decimal(raw, low, high, *, kind: str, message: str, default=Decimal("0")) -> Decimal:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    value = coerce_decimal(raw)
    if value is None or value < low or value > high:
        raise InputValidationError(message, kind=kind)
    return value


def _normalize_sizes(raw, number: int) -> List[Dict[str, str]]:
    if isinstance(raw, str):
        raw = coerce_list(raw)
    if not isinstance(raw, (list, tuple)) or not raw:
        raise InputValidationError(
            f"Variant {number} must have at least one size",
            kind="INVALID_VARIANT_SIZES",
        )
    sizes: List[Dict[str, str]] = []
    for position, entry in enumerate(raw, start=1):
        label = entry.get("size") if isinstance(entry, Mapping) else entry
        if not isinstance(label, str) or not label.strip() or len(label.strip()) > SIZE_MAX_LENGTH:
            raise InputValidationError(
                f"Size missing or invalid at variant {number}, size {position}",
                kind="INVALID_VARIANT_SIZES",
            )
        sizes.append({"size": label.strip()})
    return sizes


def normalize_variant(raw, index: int) -> NormalizedVariant:
    number = index + 1
    if isinstance(raw, str):
        raw = _parse_json(raw)
    if not isinstance(raw, Mapping):
        raise InputValidationError(f"Variant {number} is malformed", kind="MALFORMED_INPUT")

    color_id = coerce_pk(raw.get("color"))
    if color_id is None:
        raise InputValidationError(
            f"Variant {number} has a missing or invalid color",
            kind="INVALID_VARIANT_COLOR",
        )

    price = coerce_decimal(raw.get("price"))
    if price is None or price < 0 or price > MAX_PRICE:
        raise InputValidationError(
            f"Variant {number} has an invalid price",
            kind="INVALID_VARIANT_PRICE",
        )
    price = price.quantize(CENT, rounding=ROUND_HALF_UP)

    discount = _bounded_decimal(
        raw.get("discount"), 0, 100,
        kind="INVALID_VARIANT_DISCOUNT",
        message=f"Variant {number} has invalid discount (0-100%)",
    )
    rating = _bounded_decimal(
        raw.get("rating"), 0, 5,
        kind="INVALID_VARIANT_RATING",
        message=f"Variant {number} has invalid rating (0-5 stars)",
    )
    sizes = _normalize_sizes(raw.get("sizes"), number)

    return NormalizedVariant(
        color_id=color_id,
        price=price,
        discount=discount,
        final_price=compute_final_price(price, discount),
        rating=float(rating),
        sizes=sizes,
    )


def normalize_variants(raw) -> List[NormalizedVariant]:
    variants = [normalize_variant(item, index) for index, item in enumerate(coerce_list(raw))]
    if not variants:
        raise InputValidationError("At least one variant is required", kind="NO_VARIANTS")
    return variants


def _normalize_name(raw) -> str:
    name = raw.strip() if isinstance(raw, str) else ""
    if not name:
        raise InputValidationError("Product name is required.", kind="NAME_REQUIRED")
    if len(name) > NAME_MAX_LENGTH:
        raise InputValidationError(
            f"Product name cannot exceed {NAME_MAX_LENGTH} characters",
            kind="MALFORMED_INPUT",
        )
    if not slugify_value(name):
        raise InputValidationError(
            "Product name must contain at least one letter or digit",
            kind="NAME_REQUIRED",
        )
    return name


def _normalize_description(raw, default: str) -> str:
    if raw is None:
        return default
    description = str(raw).strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise InputValidationError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
            kind="MALFORMED_INPUT",
        )
    return description


def _normalize_video_url(raw, default: Optional[str]) -> Optional[str]:
    if raw is None:
        return default
    value = str(raw).strip()
    if not value or value.lower() == "null":
        return None
    if not _VIDEO_RE.match(value):
        raise InputValidationError("Video URL must be from YouTube or Vimeo", kind="INVALID_VIDEO_URL")
    return value


def _normalize_revision(raw) -> Optional[int]:
    if raw is None or raw == "":
        return None
    value = coerce_decimal(raw)
    if value is None or value < 0 or value != value.to_integral_value():
        raise InputValidationError("Revision must be a non-negative integer", kind="MALFORMED_INPUT")
    return int(value)


def _omitted(data: Mapping, key: str) -> bool:
    value = data.get(key)
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_product_input(data: Mapping[str, Any], existing=None) -> NormalizedProduct:
    """
    Build a `NormalizedProduct` from raw request data.

    With `existing` (a Product) the call follows update semantics: omitted
    fields keep the stored value and omitted `variants` keep the stored
    variants untouched.
    """
    if not isinstance(data, Mapping):
        raise InputValidationError("Product payload must be an object", kind="MALFORMED_INPUT")

    creating = existing is None

    if creating or not _omitted(data, "name"):
        name = _normalize_name(data.get("name"))
    else:
        name = existing.name

    if creating and _omitted(data, "category"):
        raise InputValidationError("Category is required.", kind="CATEGORY_REQUIRED")
    if _omitted(data, "category"):
        category_id = existing.category_id
    else:
        category_id = coerce_pk(data.get("category"))
        if category_id is None:
            raise ReferenceNotFoundError("Invalid category ID.", kind="INVALID_CATEGORY")

    if creating or not _omitted(data, "variants"):
        variants = normalize_variants(data.get("variants"))
    else:
        variants = None

    if creating or not _omitted(data, "tags"):
        tags = normalize_slug_list(data.get("tags"))
    else:
        tags = list(existing.tags or [])
    if creating or not _omitted(data, "collections"):
        collections = normalize_slug_list(data.get("collections"))
    else:
        collections = list(existing.collections or [])

    previous_specs = None if creating else (existing.specifications or {})
    if creating or not _omitted(data, "specifications"):
        specifications = normalize_specifications(data.get("specifications"), previous_specs)
    else:
        specifications = dict(previous_specs)

    discount = _bounded_decimal(
        data.get("discount"), 0, 100,
        kind="INVALID_DISCOUNT",
        message="Discount must be between 0 and 100",
        default=Decimal("0") if creating else Decimal(existing.discount),
    )

    return NormalizedProduct(
        name=name,
        slug=slugify_value(name),
        category_id=category_id,
        description=_normalize_description(
            data.get("description"), "" if creating else existing.description
        ),
        variants=variants,
        tags=tags,
        collections=collections,
        specifications=specifications,
        video_url=_normalize_video_url(
            data.get("videoUrl", data.get("video_url")),
            None if creating else existing.video_url,
        ),
        is_active=coerce_bool(
            data.get("isActive", data.get("is_active")), True if creating else existing.is_active
        ),
        is_featured=coerce_bool(
            data.get("isFeatured", data.get("is_featured")), False if creating else existing.is_featured
        ),
        is_sold_out=coerce_bool(
            data.get("isSoldOut", data.get("is_sold_out")), False if creating else existing.is_sold_out
        ),
        is_visible=coerce_bool(
            data.get("isVisible", data.get("is_visible")), True if creating else existing.is_visible
        ),
        discount=discount,
        revision=_normalize_revision(data.get("revision")),
    )


def parse_removal_requests(raw_by_index: Optional[Mapping[int, Any]]) -> Dict[int, List[str]]:
    """`{index: raw}` -> `{index: [public_id, ...]}`; accepts the same shapes as lists."""
    removals: Dict[int, List[str]] = {}
    for index, raw in (raw_by_index or {}).items():
        ids = [str(item).strip() for item in coerce_list(raw) if isinstance(item, (str, int))]
        ids = [public_id for public_id in ids if public_id]
        if ids:
            removals[int(index)] = ids
    return removals
