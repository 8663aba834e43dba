"""
Storefront utilities package.
"""

from .slugs import slugify_value

__all__ = [
    'slugify_value',
]
