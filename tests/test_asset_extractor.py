"""
Unit tests for output bundle extraction.
"""

import base64

import pytest

from core.exceptions import (
    InvalidOutputBundleError,
    NoDocumentInOutputError,
    NoImagesInOutputError,
)
from modules.asset_extractor import (
    extract_document,
    extract_preview_images,
    parse_page_number,
    sanitize_filename,
)
from tests.conftest import make_zip


class TestParsePageNumber:

    @pytest.mark.parametrize("name,page", [
        ("p001.jpg", 1),
        ("brochure_p012.jpg", 12),
        ("out/job_48213_p3.jpeg", 3),
        ("cover.jpg", 0),
        ("page.jpg", 0),
        ("", 0),
    ])
    def test_parses_first_marker(self, name, page):
        assert parse_page_number(name) == page


class TestSanitizeFilename:

    def test_keeps_safe_names(self):
        assert sanitize_filename("brochure-A4.v2.pdf") == "brochure-A4.v2.pdf"

    def test_replaces_unsafe_characters(self):
        assert sanitize_filename('Trifold "Brochure" (A4).pdf') == "Trifold__Brochure___A4_.pdf"

    def test_drops_directories(self):
        assert sanitize_filename("output/sub\\final.pdf") == "final.pdf"


class TestExtractPreviewImages:

    def test_orders_by_page_number(self, preview_bundle):
        images = extract_preview_images(preview_bundle)

        assert [image.name for image in images] == [
            "brochure_p001.jpg",
            "brochure_p002.jpg",
            "brochure_p003.jpg",
        ]
        assert [image.page for image in images] == [1, 2, 3]

    def test_encodes_data_urls(self, preview_bundle):
        first = extract_preview_images(preview_bundle)[0]

        prefix = "data:image/jpeg;base64,"
        assert first.data.startswith(prefix)
        assert base64.b64decode(first.data[len(prefix):]) == b"page-1"

    def test_unnumbered_pages_sort_first(self):
        bundle = make_zip({"p002.jpg": b"2", "cover.jpeg": b"c", "p001.JPG": b"1"})

        names = [image.name for image in extract_preview_images(bundle)]
        assert names == ["cover.jpeg", "p001.JPG", "p002.jpg"]

    def test_no_images_raises(self, print_bundle):
        with pytest.raises(NoImagesInOutputError):
            extract_preview_images(print_bundle)

    def test_unreadable_bundle_raises(self):
        with pytest.raises(InvalidOutputBundleError):
            extract_preview_images(b"not a zip")


class TestExtractDocument:

    def test_returns_pdf_and_safe_name(self, print_bundle):
        document = extract_document(print_bundle)

        assert document.filename == "Trifold_Brochure__A4_.pdf"
        assert document.content.startswith(b"%PDF")

    def test_last_pdf_wins(self):
        bundle = make_zip({"draft.pdf": b"%PDF-draft", "job.log": b"ok", "final.PDF": b"%PDF-final"})

        document = extract_document(bundle)

        assert document.filename == "final.PDF"
        assert document.content == b"%PDF-final"

    def test_no_pdf_raises(self, preview_bundle):
        with pytest.raises(NoDocumentInOutputError):
            extract_document(preview_bundle)

    def test_unreadable_bundle_raises(self):
        with pytest.raises(InvalidOutputBundleError):
            extract_document(b"")
