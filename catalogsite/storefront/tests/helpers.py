"""
Shared fixtures for catalog tests.
"""
from __future__ import annotations

import io
import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from PIL import Image

from productcolors.models import Color
from storefront.models import Category


def png_upload(name: str = "front.png") -> SimpleUploadedFile:
    """A real 1x1 PNG, so Pillow verification passes."""
    buffer = io.BytesIO()
    Image.new("RGB", (1, 1), (255, 0, 0)).save(buffer, format="PNG")
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="image/png")


def make_category(name: str, **extra) -> Category:
    slug = name.lower().replace(" ", "-")
    return Category.objects.create(name=name, slug=slug, **extra)


def make_color(name: str, hex_code: str) -> Color:
    return Color.objects.create(name=name.lower(), hex=hex_code, slug=name.lower())


def variant(color, price=100, **extra) -> dict:
    payload = {"color": color.pk, "price": price, "sizes": ["M"]}
    payload.update(extra)
    return payload


class TempMediaMixin:
    """
    Points MEDIA_ROOT at a throwaway directory for the whole test class.
    """

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls._media_root = tempfile.mkdtemp(prefix="catalog_media_tests_")
        cls._media_override = override_settings(MEDIA_ROOT=cls._media_root)
        cls._media_override.enable()

    @classmethod
    def tearDownClass(cls):
        cls._media_override.disable()
        shutil.rmtree(cls._media_root, ignore_errors=True)
        super().tearDownClass()
