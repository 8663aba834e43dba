"""
Existence checks for the category and colours a product points at.

Pure reads: nothing here writes to the database.
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from productcolors.models import Color
from storefront.models import Category

from .errors import ReferenceNotFoundError


def coerce_pk(value) -> Optional[int]:
    """
    Turn an id coming from JSON/form input into an integer primary key.

    Accepts ints, digit strings and `{"id": ...}` / `{"_id": ...}` objects
    (a populated reference echoed back by a client). Returns None otherwise.
    """
    if isinstance(value, dict):
        value = value.get("id", value.get("_id"))
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        pk = int(value.strip())
        return pk if pk > 0 else None
    return None


def validate_category(category_id) -> Category:
    pk = coerce_pk(category_id)
    category = Category.objects.filter(pk=pk).first() if pk else None
    if category is None:
        raise ReferenceNotFoundError("Invalid category ID.", kind="INVALID_CATEGORY")
    return category


def validate_colors(color_ids: Iterable[int]) -> Dict[int, Color]:
    """
    Confirm every distinct colour id exists; fail the whole call otherwise.
    """
    distinct = {pk for pk in color_ids}
    if not distinct:
        return {}
    found = Color.objects.in_bulk(distinct)
    if len(found) != len(distinct):
        missing = sorted(distinct - set(found))
        raise ReferenceNotFoundError(
            "One or more colors are invalid.",
            kind="INVALID_COLOR",
            details={"missing": missing},
        )
    return found
