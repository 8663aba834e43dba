import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify_value(value) -> str:
    """
    Lowercase, collapse every non [a-z0-9] run into one hyphen, trim hyphens.

    Unlike django.utils.text.slugify this drops underscores and non-ASCII
    letters, so catalog slugs stay plain `a-z0-9-`.
    """
    if value is None:
        return ""
    return _NON_ALNUM_RE.sub("-", str(value).lower()).strip("-")
