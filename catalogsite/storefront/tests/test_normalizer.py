"""
Tests for product input normalisation (pure functions, no database).
"""
from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from storefront.services.catalog.errors import InputValidationError, ReferenceNotFoundError
from storefront.services.catalog.normalizer import (
    coerce_bool,
    coerce_list,
    compute_final_price,
    normalize_product_input,
    normalize_slug_list,
    normalize_specifications,
    normalize_variant,
    parse_removal_requests,
)
from storefront.utils.slugs import slugify_value


def _variant(**overrides):
    raw = {"color": 1, "price": 100, "discount": 10, "sizes": ["M"]}
    raw.update(overrides)
    return raw


class SlugifyTests(SimpleTestCase):
    def test_slugify_collapses_and_strips(self):
        self.assertEqual(slugify_value("  Red Tee!! 2024 "), "red-tee-2024")
        self.assertEqual(slugify_value("--Summer__Sale--"), "summer-sale")
        self.assertEqual(slugify_value("!!!"), "")

    def test_slugify_is_idempotent(self):
        for raw in ["Red Tee", "ÄÖÜ mixed Case", "a--b", "  x  y  ", "100% Cotton", ""]:
            once = slugify_value(raw)
            self.assertEqual(slugify_value(once), once, msg=raw)


class FinalPriceTests(SimpleTestCase):
    def test_discount_rounds_half_up_to_whole_unit(self):
        self.assertEqual(compute_final_price(Decimal("100.00"), Decimal("10")), Decimal("90.00"))
        self.assertEqual(compute_final_price(Decimal("99.99"), Decimal("15")), Decimal("85.00"))
        self.assertEqual(compute_final_price(Decimal("5.00"), Decimal("50")), Decimal("3.00"))

    def test_zero_discount_keeps_price(self):
        self.assertEqual(compute_final_price(Decimal("19.99"), Decimal("0")), Decimal("19.99"))

    def test_full_discount(self):
        self.assertEqual(compute_final_price(Decimal("250.00"), Decimal("100")), Decimal("0.00"))


class InputShapeTests(SimpleTestCase):
    def test_coerce_list_accepts_every_representation(self):
        self.assertEqual(coerce_list(["a", "b"]), ["a", "b"])
        self.assertEqual(coerce_list('["a", "b"]'), ["a", "b"])
        self.assertEqual(coerce_list('{"color": 1}'), [{"color": 1}])
        self.assertEqual(coerce_list("plain text"), ["plain text"])
        self.assertEqual(coerce_list({"color": 1}), [{"color": 1}])
        self.assertEqual(coerce_list(None), [])
        self.assertEqual(coerce_list("   "), [])

    def test_tags_are_slugified_and_deduplicated(self):
        self.assertEqual(
            normalize_slug_list('["Summer Sale", "summer-sale", "!!", "New In"]'),
            ["summer-sale", "new-in"],
        )
        self.assertEqual(normalize_slug_list("Single Tag"), ["single-tag"])
        self.assertEqual(normalize_slug_list([{"nested": True}, "ok"]), ["ok"])

    def test_specifications_flatten_to_strings(self):
        self.assertEqual(
            normalize_specifications('{"Material": "Cotton", "weight": 200, "extra": {"x": 1}}'),
            {"Material": "Cotton", "weight": "200"},
        )

    def test_specifications_fallbacks(self):
        self.assertEqual(normalize_specifications("not json"), {})
        self.assertEqual(normalize_specifications(["a"]), {})
        self.assertEqual(normalize_specifications("not json", {"fit": "slim"}), {"fit": "slim"})

    def test_coerce_bool(self):
        self.assertTrue(coerce_bool("true", False))
        self.assertFalse(coerce_bool("0", True))
        self.assertTrue(coerce_bool(None, True))
        self.assertFalse(coerce_bool("maybe", False))

    def test_removal_requests_accept_lists_json_and_scalars(self):
        self.assertEqual(
            parse_removal_requests({0: '["a", "b"]', 1: "c", 2: "", "3": ["d", ""]}),
            {0: ["a", "b"], 1: ["c"], 3: ["d"]},
        )


class VariantNormalizationTests(SimpleTestCase):
    def test_variant_from_json_string(self):
        result = normalize_variant('{"color": "7", "price": "100", "discount": "10", "sizes": ["S", {"size": "M"}]}', 0)
        self.assertEqual(result.color_id, 7)
        self.assertEqual(result.price, Decimal("100.00"))
        self.assertEqual(result.final_price, Decimal("90.00"))
        self.assertEqual(result.sizes, [{"size": "S"}, {"size": "M"}])
        self.assertEqual(result.rating, 0.0)

    def test_variant_color_accepts_populated_reference(self):
        result = normalize_variant(_variant(color={"id": 3, "name": "blue"}), 0)
        self.assertEqual(result.color_id, 3)

    def test_variant_error_kinds(self):
        cases = [
            (_variant(color=None), "INVALID_VARIANT_COLOR"),
            (_variant(price="abc"), "INVALID_VARIANT_PRICE"),
            (_variant(price=-1), "INVALID_VARIANT_PRICE"),
            (_variant(discount=150), "INVALID_VARIANT_DISCOUNT"),
            (_variant(rating=6), "INVALID_VARIANT_RATING"),
            (_variant(sizes=[]), "INVALID_VARIANT_SIZES"),
            (_variant(sizes=[{"size": "  "}]), "INVALID_VARIANT_SIZES"),
            ("not an object", "MALFORMED_INPUT"),
        ]
        for raw, kind in cases:
            with self.subTest(kind=kind, raw=raw):
                with self.assertRaises(InputValidationError) as ctx:
                    normalize_variant(raw, 0)
                self.assertEqual(ctx.exception.kind, kind)


class ProductInputTests(SimpleTestCase):
    def _payload(self, **overrides):
        payload = {"name": "Red Tee", "category": 1, "variants": [_variant()]}
        payload.update(overrides)
        return payload

    def test_create_payload_is_normalized(self):
        result = normalize_product_input(
            self._payload(
                tags="Summer, Sale",
                collections='["Core Range"]',
                specifications='{"fit": "regular"}',
                videoUrl="https://youtu.be/abc123",
                isFeatured="true",
            )
        )
        self.assertEqual(result.slug, "red-tee")
        self.assertEqual(result.category_id, 1)
        self.assertEqual(len(result.variants), 1)
        self.assertEqual(result.tags, ["summer-sale"])
        self.assertEqual(result.collections, ["core-range"])
        self.assertEqual(result.specifications, {"fit": "regular"})
        self.assertEqual(result.video_url, "https://youtu.be/abc123")
        self.assertTrue(result.is_featured)
        self.assertTrue(result.is_active)

    def test_required_fields(self):
        with self.assertRaises(InputValidationError) as ctx:
            normalize_product_input(self._payload(name="  "))
        self.assertEqual(ctx.exception.kind, "NAME_REQUIRED")

        with self.assertRaises(InputValidationError) as ctx:
            normalize_product_input(self._payload(category=None))
        self.assertEqual(ctx.exception.kind, "CATEGORY_REQUIRED")

        with self.assertRaises(ReferenceNotFoundError) as ctx:
            normalize_product_input(self._payload(category="not-an-id"))
        self.assertEqual(ctx.exception.kind, "INVALID_CATEGORY")

    def test_zero_variants_rejected(self):
        for empty in ([], "[]", None):
            with self.subTest(variants=empty):
                with self.assertRaises(InputValidationError) as ctx:
                    normalize_product_input(self._payload(variants=empty))
                self.assertEqual(ctx.exception.kind, "NO_VARIANTS")

    def test_invalid_video_and_discount(self):
        with self.assertRaises(InputValidationError) as ctx:
            normalize_product_input(self._payload(videoUrl="https://example.com/clip"))
        self.assertEqual(ctx.exception.kind, "INVALID_VIDEO_URL")

        with self.assertRaises(InputValidationError) as ctx:
            normalize_product_input(self._payload(discount="101"))
        self.assertEqual(ctx.exception.kind, "INVALID_DISCOUNT")

    def test_update_keeps_omitted_fields(self):
        existing = SimpleNamespace(
            name="Red Tee",
            category_id=4,
            description="Soft cotton",
            tags=["summer"],
            collections=["core"],
            specifications={"fit": "slim"},
            video_url=None,
            is_active=False,
            is_featured=True,
            is_sold_out=False,
            is_visible=True,
            discount=Decimal("5.00"),
        )
        result = normalize_product_input({"description": "Heavy cotton", "specifications": "oops"}, existing=existing)

        self.assertIsNone(result.variants)
        self.assertEqual(result.name, "Red Tee")
        self.assertEqual(result.category_id, 4)
        self.assertEqual(result.description, "Heavy cotton")
        self.assertEqual(result.tags, ["summer"])
        self.assertEqual(result.collections, ["core"])
        self.assertEqual(result.specifications, {"fit": "slim"})
        self.assertFalse(result.is_active)
        self.assertTrue(result.is_featured)
        self.assertEqual(result.discount, Decimal("5.00"))

    def test_revision_parsed(self):
        self.assertEqual(normalize_product_input(self._payload(revision="3")).revision, 3)
        with self.assertRaises(InputValidationError):
            normalize_product_input(self._payload(revision="-1"))
