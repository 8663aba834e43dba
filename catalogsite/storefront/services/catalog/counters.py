"""
Category/Color `product_count` maintenance.

Counters are changed with single UPDATE ... SET count = count + delta
statements and must only be called inside the caller's transaction.
"""
from __future__ import annotations

from typing import Iterable, List

from django.db import models
from django.db.models import F
from django.db.models.functions import Greatest

from productcolors.models import Color
from storefront.models import Category

from .errors import ReferenceNotFoundError


def _shifted(delta: int):
    return Greatest(F("product_count") + delta, 0, output_field=models.PositiveIntegerField())


def distinct_color_ids(variants: Iterable) -> List[int]:
    """Colour ids of `variants` (objects with `color_id`), first occurrence order."""
    seen: List[int] = []
    for variant in variants:
        if variant.color_id not in seen:
            seen.append(variant.color_id)
    return seen


def adjust_category_count(category_id: int, delta: int) -> None:
    if not delta:
        return
    updated = Category.objects.filter(pk=category_id).update(product_count=_shifted(delta))
    if not updated:
        raise ReferenceNotFoundError("Invalid category ID.", kind="INVALID_CATEGORY")


def adjust_color_counts(color_ids: Iterable[int], delta: int) -> int:
    """Shift every distinct colour in `color_ids` by `delta` (once per colour)."""
    ids = sorted(set(color_ids))
    if not ids or not delta:
        return 0
    updated = Color.objects.filter(pk__in=ids).update(product_count=_shifted(delta))
    if updated != len(ids):
        raise ReferenceNotFoundError("One or more colors are invalid.", kind="INVALID_COLOR")
    return updated
