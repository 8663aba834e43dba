"""
Tests for colour and category administration services.
"""
from __future__ import annotations

from unittest import mock

from django.core.files.storage import default_storage
from django.db.models import ProtectedError
from django.test import SimpleTestCase, TestCase

from productcolors.models import Color
from storefront.models import Category
from storefront.services.catalog import category_service
from storefront.services.catalog import (
    CategoryNotFoundError,
    ColorNotFoundError,
    ConflictError,
    InputValidationError,
    ReferenceInUseError,
    create_category,
    create_color,
    create_product,
    delete_category,
    delete_color,
    get_color,
    normalize_hex_code,
    update_category,
    update_color,
)

from .helpers import TempMediaMixin, make_category, make_color, png_upload, variant


class HexNormalisationTests(SimpleTestCase):
    def test_normalize_hex_code(self):
        self.assertEqual(normalize_hex_code("ff00aa"), "#FF00AA")
        self.assertEqual(normalize_hex_code("  #abcdef "), "#ABCDEF")
        self.assertIsNone(normalize_hex_code(""))
        self.assertIsNone(normalize_hex_code(None))

    def test_invalid_hex(self):
        for raw in ("#12345", "zzzzzz", "#1234567"):
            with self.subTest(raw=raw):
                with self.assertRaises(InputValidationError) as ctx:
                    normalize_hex_code(raw)
                self.assertEqual(ctx.exception.kind, "INVALID_HEX")


class ColorServiceTests(TestCase):
    def test_create_color_normalises_fields(self):
        color = create_color({"name": "  Navy Blue ", "hex": "000080"})
        self.assertEqual(color.name, "navy blue")
        self.assertEqual(color.slug, "navy-blue")
        self.assertEqual(color.hex, "#000080")
        self.assertEqual(color.product_count, 0)

    def test_create_requires_name_and_hex(self):
        with self.assertRaises(InputValidationError):
            create_color({"name": "Teal"})
        with self.assertRaises(InputValidationError):
            create_color({"hex": "#008080"})

    def test_duplicate_name_is_case_insensitive(self):
        create_color({"name": "Black", "hex": "#000000"})
        with self.assertRaises(ConflictError) as ctx:
            create_color({"name": "BLACK", "hex": "#111111"})
        self.assertEqual(ctx.exception.kind, "COLOR_EXISTS")
        self.assertEqual(Color.objects.count(), 1)

    def test_update_renames_and_reslugs(self):
        color = create_color({"name": "Sky", "hex": "#87CEEB"})
        updated = update_color(color.pk, {"name": "Sky Blue", "hex": "87ceeb", "product_count": 40})
        self.assertEqual(updated.slug, "sky-blue")
        self.assertEqual(updated.hex, "#87CEEB")
        updated.refresh_from_db()
        self.assertEqual(updated.product_count, 0)

    def test_delete_blocked_while_in_use(self):
        category = make_category("Tees")
        color = make_color("Blue", "#0000FF")
        create_product({"name": "Tee", "category": category.pk, "variants": [variant(color)]})

        with self.assertRaises(ReferenceInUseError) as ctx:
            delete_color(color.pk)
        self.assertEqual(ctx.exception.kind, "COLOR_IN_USE")
        self.assertTrue(Color.objects.filter(pk=color.pk).exists())

    def test_delete_unused_color(self):
        color = create_color({"name": "Olive", "hex": "#808000"})
        delete_color(color.pk)
        with self.assertRaises(ColorNotFoundError):
            get_color(color.pk)


class CategoryServiceTests(TempMediaMixin, TestCase):
    def test_create_with_banner_and_icon(self):
        category = create_category(
            {"name": "Summer Wear", "description": "Light fabrics", "sortOrder": "2"},
            {"banner_image": png_upload("banner.png"), "icon": png_upload("icon.png")},
        )
        self.assertEqual(category.slug, "summer-wear")
        self.assertEqual(category.sort_order, 2)
        self.assertTrue(category.banner_image_url.startswith("https://media.example.test/catalog/categories/category_"))
        self.assertTrue(default_storage.exists(category.banner_image_public_id))
        self.assertTrue(default_storage.exists(category.icon_public_id))

    def test_duplicate_category(self):
        create_category({"name": "Hoodies"})
        with self.assertRaises(ConflictError) as ctx:
            create_category({"name": "hoodies"})
        self.assertEqual(ctx.exception.kind, "CATEGORY_EXISTS")

    def test_name_required(self):
        with self.assertRaises(InputValidationError) as ctx:
            create_category({"name": "   "})
        self.assertEqual(ctx.exception.kind, "NAME_REQUIRED")

    def test_new_banner_replaces_old_blob_after_commit(self):
        category = create_category({"name": "Caps"}, {"banner_image": png_upload("old.png")})
        old_id = category.banner_image_public_id

        with self.captureOnCommitCallbacks(execute=True):
            updated = update_category(category.pk, {"name": "Caps & Hats"}, {"banner_image": png_upload("new.png")})

        self.assertEqual(updated.slug, "caps-hats")
        self.assertNotEqual(updated.banner_image_public_id, old_id)
        self.assertFalse(default_storage.exists(old_id))
        self.assertTrue(default_storage.exists(updated.banner_image_public_id))

    def test_product_count_is_read_only(self):
        category = create_category({"name": "Socks"})
        update_category(category.pk, {"product_count": 12, "isActive": "false"})
        category.refresh_from_db()
        self.assertEqual(category.product_count, 0)
        self.assertFalse(category.is_active)

    def test_delete_blocked_while_in_use(self):
        category = create_category({"name": "Jackets"})
        color = make_color("Black", "#000000")
        create_product({"name": "Parka", "category": category.pk, "variants": [variant(color)]})

        with self.assertRaises(ReferenceInUseError) as ctx:
            delete_category(category.pk)
        self.assertEqual(ctx.exception.kind, "CATEGORY_IN_USE")
        self.assertTrue(Category.objects.filter(pk=category.pk).exists())

    def test_delete_purges_images(self):
        category = create_category({"name": "Bags"}, {"icon": png_upload("icon.png")})
        icon_id = category.icon_public_id

        with self.captureOnCommitCallbacks(execute=True):
            delete_category(category.pk)

        self.assertFalse(Category.objects.filter(pk=category.pk).exists())
        self.assertFalse(default_storage.exists(icon_id))

    def test_missing_category(self):
        with self.assertRaises(CategoryNotFoundError):
            update_category(4040, {"name": "Ghost"})

    def test_update_keeps_count_changed_by_concurrent_product_create(self):
        category = create_category({"name": "Shirts"})
        color = make_color("White", "#FFFFFF")
        attach_images = category_service._attach_images

        def create_product_midway(*args, **kwargs):
            create_product({"name": "Oxford", "category": category.pk, "variants": [variant(color)]})
            return attach_images(*args, **kwargs)

        with mock.patch.object(category_service, "_attach_images", side_effect=create_product_midway):
            update_category(category.pk, {"description": "Button-down"})

        category.refresh_from_db()
        self.assertEqual(category.description, "Button-down")
        self.assertEqual(category.product_count, 1)

    def test_delete_race_with_new_product_reports_in_use(self):
        category = create_category({"name": "Scarves"})
        protected = ProtectedError("protected", {mock.sentinel.product})

        with mock.patch.object(Category, "delete", side_effect=protected):
            with self.assertRaises(ReferenceInUseError) as ctx:
                delete_category(category.pk)

        self.assertEqual(ctx.exception.kind, "CATEGORY_IN_USE")
        self.assertEqual(ctx.exception.details, {"products": 1})
        self.assertTrue(Category.objects.filter(pk=category.pk).exists())
