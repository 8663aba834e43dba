"""
Colour management helpers: normalisation and admin CRUD.

`product_count` is never written here; it belongs to the product mutator.
"""
from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from django.db import IntegrityError, transaction

from productcolors.models import Color
from storefront.utils.slugs import slugify_value

from .errors import ColorNotFoundError, ConflictError, InputValidationError, ReferenceInUseError
from .references import coerce_pk

logger = logging.getLogger(__name__)

HEX_RE = re.compile(r"^[0-9A-F]{6}$")
COLOR_NAME_MAX_LENGTH = 50


def normalize_hex_code(raw: Optional[str]) -> Optional[str]:
    """
    Normalise HEX values to the `#RRGGBB` format.

    Accepts values with/without leading '#', ignores whitespace, and returns
    ``None`` for empty inputs. Raises InputValidationError for invalid hex strings.
    """
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    if value.startswith("#"):
        value = value[1:]
    if not HEX_RE.fullmatch(value.upper()):
        raise InputValidationError(f"Invalid HEX colour value: {raw!r}", kind="INVALID_HEX")
    return f"#{value.upper()}"


def _normalize_name(raw) -> str:
    name = str(raw).strip().lower() if raw is not None else ""
    if len(name) > COLOR_NAME_MAX_LENGTH:
        raise InputValidationError(
            f"Color name cannot exceed {COLOR_NAME_MAX_LENGTH} characters",
            kind="MALFORMED_INPUT",
        )
    return name


def _ensure_unique(name: str, slug: str, exclude_pk: Optional[int] = None) -> None:
    clashes = Color.objects.filter(name=name) | Color.objects.filter(slug=slug)
    if exclude_pk is not None:
        clashes = clashes.exclude(pk=exclude_pk)
    if clashes.exists():
        raise ConflictError("Color already exists", kind="COLOR_EXISTS")


def get_color(color_id) -> Color:
    pk = coerce_pk(color_id)
    color = Color.objects.filter(pk=pk).first() if pk else None
    if color is None:
        raise ColorNotFoundError("Color not found")
    return color


def create_color(data: Mapping) -> Color:
    name = _normalize_name(data.get("name"))
    hex_code = normalize_hex_code(data.get("hex"))
    if not name or not hex_code:
        raise InputValidationError("Color name and hex code are required", kind="MALFORMED_INPUT")

    slug = slugify_value(name)
    if not slug:
        raise InputValidationError("Color name must contain at least one letter or digit", kind="MALFORMED_INPUT")
    _ensure_unique(name, slug)

    try:
        color = Color.objects.create(name=name, hex=hex_code, slug=slug)
    except IntegrityError as exc:
        raise ConflictError("Color already exists", kind="COLOR_EXISTS") from exc
    logger.info("Created color %s (%s)", color.pk, color.name)
    return color


def update_color(color_id, data: Mapping) -> Color:
    """Partial update: only `name` and `hex` are writable."""
    color = get_color(color_id)

    name = _normalize_name(data.get("name"))
    if name and name != color.name:
        slug = slugify_value(name)
        if not slug:
            raise InputValidationError(
                "Color name must contain at least one letter or digit",
                kind="MALFORMED_INPUT",
            )
        _ensure_unique(name, slug, exclude_pk=color.pk)
        color.name = name
        color.slug = slug

    hex_code = normalize_hex_code(data.get("hex"))
    if hex_code:
        color.hex = hex_code

    try:
        color.save(update_fields=["name", "slug", "hex", "updated_at"])
    except IntegrityError as exc:
        raise ConflictError("Color already exists", kind="COLOR_EXISTS") from exc
    logger.info("Updated color %s (%s)", color.pk, color.name)
    return color


@transaction.atomic
def delete_color(color_id) -> None:
    color = get_color(color_id)
    in_use = color.variants.count()
    if in_use:
        raise ReferenceInUseError(
            f"Cannot delete color: it is used by {in_use} product variant(s)",
            kind="COLOR_IN_USE",
            details={"variants": in_use},
        )
    color.delete()
    logger.info("Deleted color %s (%s)", color_id, color.name)
