"""
Tests for variant image reconciliation (no database).
"""
from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.http import QueryDict
from django.test import SimpleTestCase
from django.utils.datastructures import MultiValueDict

from storefront.services.catalog.blob_store import StoredBlob
from storefront.services.catalog.errors import ImageIntegrityError
from storefront.services.catalog.media_service import (
    ImageEntry,
    ReconcileResult,
    VariantUpload,
    assert_images_assigned,
    ensure_single_primary,
    reconcile_variant_images,
    removals_from_multipart,
    upload_variant_files,
    uploads_from_multipart,
)
from storefront.services.catalog.normalizer import NormalizedVariant


def _variant(color_id, images=None):
    return NormalizedVariant(
        color_id=color_id,
        price=Decimal("10.00"),
        discount=Decimal("0"),
        final_price=Decimal("10.00"),
        rating=0.0,
        sizes=[{"size": "M"}],
        images=list(images or []),
    )


def _image(public_id, primary=False):
    return ImageEntry(url=f"https://cdn.test/{public_id}.png", public_id=public_id, is_primary=primary)


def _primaries(images):
    return [image.public_id for image in images if image.is_primary]


class PrimaryImageTests(SimpleTestCase):
    def test_first_image_promoted_when_none_flagged(self):
        images = ensure_single_primary([_image("a"), _image("b")])
        self.assertEqual(_primaries(images), ["a"])

    def test_later_primary_flags_cleared(self):
        images = ensure_single_primary([_image("a"), _image("b", True), _image("c", True)])
        self.assertEqual(_primaries(images), ["b"])

    def test_empty_list_has_no_primary(self):
        self.assertEqual(ensure_single_primary([]), [])

    def test_alt_is_truncated(self):
        entry = ImageEntry(url="https://cdn.test/a.png", public_id="a", alt="x" * 150)
        self.assertEqual(len(entry.alt), 100)


class ReconcileTests(SimpleTestCase):
    def test_existing_images_matched_by_color(self):
        existing = {1: [[_image("blue-1", True)]], 2: [[_image("green-1", True)]]}
        result = reconcile_variant_images(
            [_variant(2), _variant(1)],
            existing_by_color=existing,
        )
        self.assertEqual([i.public_id for i in result.variants[0].images], ["green-1"])
        self.assertEqual([i.public_id for i in result.variants[1].images], ["blue-1"])

    def test_repeated_color_claims_next_stored_list(self):
        existing = {1: [[_image("first")], [_image("second")]]}
        result = reconcile_variant_images(
            [_variant(1), _variant(1), _variant(1)],
            existing_by_color=existing,
        )
        self.assertEqual([i.public_id for i in result.variants[0].images], ["first"])
        self.assertEqual([i.public_id for i in result.variants[1].images], ["second"])
        self.assertEqual(result.variants[2].images, [])

    def test_new_color_starts_empty(self):
        result = reconcile_variant_images([_variant(9)], existing_by_color={1: [[_image("a")]]})
        self.assertEqual(result.variants[0].images, [])
        self.assertFalse(result.has_images)

    def test_uploads_appended_and_primary_kept(self):
        result = reconcile_variant_images(
            [_variant(1, [_image("old", True)])],
            {0: [_image("new-1"), _image("new-2")]},
        )
        images = result.variants[0].images
        self.assertEqual([i.public_id for i in images], ["old", "new-1", "new-2"])
        self.assertEqual(_primaries(images), ["old"])

    def test_removal_of_primary_promotes_next(self):
        on_remove = mock.Mock()
        result = reconcile_variant_images(
            [_variant(1, [_image("a", True), _image("b")])],
            removals_by_index={0: ["a"]},
            on_remove=on_remove,
        )
        self.assertEqual([i.public_id for i in result.variants[0].images], ["b"])
        self.assertEqual(_primaries(result.variants[0].images), ["b"])
        self.assertEqual(result.removed_public_ids, ["a"])
        on_remove.assert_called_once_with("a")

    def test_removal_is_scoped_to_its_variant_position(self):
        variants = [
            _variant(1, [_image("blue-img", True)]),
            _variant(2, [_image("green-img", True)]),
        ]
        on_remove = mock.Mock()
        result = reconcile_variant_images(variants, removals_by_index={0: ["green-img"]}, on_remove=on_remove)

        self.assertEqual([i.public_id for i in result.variants[0].images], ["blue-img"])
        self.assertEqual([i.public_id for i in result.variants[1].images], ["green-img"])
        self.assertTrue(result.variants[1].images[0].is_primary)
        self.assertEqual(result.removed_public_ids, [])
        on_remove.assert_not_called()


class ImageAssignmentTests(SimpleTestCase):
    def test_files_without_assigned_images_fail(self):
        empty = ReconcileResult(variants=[_variant(1)])
        with self.assertRaises(ImageIntegrityError) as ctx:
            assert_images_assigned(empty, True, kind="IMAGES_NOT_ASSIGNED")
        self.assertEqual(ctx.exception.kind, "IMAGES_NOT_ASSIGNED")

        with self.assertRaises(ImageIntegrityError) as ctx:
            assert_images_assigned(empty, True, kind="NO_VARIANT_IMAGES")
        self.assertEqual(ctx.exception.kind, "NO_VARIANT_IMAGES")

    def test_no_files_no_requirement(self):
        assert_images_assigned(ReconcileResult(variants=[_variant(1)]), False, kind="IMAGES_NOT_ASSIGNED")


class MultipartParsingTests(SimpleTestCase):
    def _file(self, name):
        return SimpleUploadedFile(name, b"data", content_type="image/png")

    def test_uploads_grouped_by_variant_with_alt_text(self):
        front, back, other = self._file("front.png"), self._file("back.png"), self._file("x.png")
        files = MultiValueDict({
            "variants[0][image]": [front, back],
            "variants[2][image]": [other],
            "bannerImage": [self._file("banner.png")],
        })
        data = {"variants[0][imageAlt_1]": "Back view"}

        uploads = uploads_from_multipart(files, data)

        self.assertEqual(sorted(uploads), [0, 2])
        self.assertEqual([u.file.name for u in uploads[0]], ["front.png", "back.png"])
        self.assertEqual([u.alt for u in uploads[0]], ["", "Back view"])
        self.assertEqual(uploads[2][0].file.name, "x.png")

    def test_removals_from_query_dict(self):
        data = QueryDict(mutable=True)
        data.setlist("variants[0][imagesToRemove]", ['["a", "b"]'])
        data.setlist("variants[1][imagesToRemove][]", ["c", "d"])
        data["name"] = "Tee"

        self.assertEqual(removals_from_multipart(data), {0: '["a", "b"]', 1: ["c", "d"]})

    def test_upload_alt_falls_back_to_generated_label(self):
        tracker = mock.Mock()
        tracker.upload.side_effect = [
            StoredBlob(url="https://cdn.test/1.png", public_id="1"),
            StoredBlob(url="https://cdn.test/2.png", public_id="2"),
        ]
        entries = upload_variant_files(
            tracker,
            {1: [VariantUpload(file=self._file("a.png"), alt="Front"), VariantUpload(file=self._file("b.png"))]},
            "catalog/products",
        )
        self.assertEqual([e.alt for e in entries[1]], ["Front", "Variant 1 Image 2"])
        self.assertEqual([e.public_id for e in entries[1]], ["1", "2"])
        self.assertFalse(any(e.is_primary for e in entries[1]))
