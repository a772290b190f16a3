"""
Unit tests for PDFAnalyzer.
"""

import pytest

from modules.pdf_analyzer import PDFAnalyzer
from tests.conftest import make_pdf


@pytest.fixture
def analyzer():
    return PDFAnalyzer()


def test_analyze_counts_pages_and_dimensions(analyzer):
    info = analyzer.analyze(make_pdf(pages=3))

    assert info["pages"] == 3
    assert "error" not in info
    assert info["page_dimensions"][0]["width_mm"] == pytest.approx(209.9, abs=0.5)
    assert info["page_dimensions"][0]["height_mm"] == pytest.approx(297.0, abs=0.5)


def test_page_count(analyzer):
    assert analyzer.page_count(make_pdf(pages=2)) == 2


def test_malformed_pdf(analyzer):
    info = analyzer.analyze(b"")

    assert info["pages"] == 0
    assert "error" in info
    assert analyzer.page_count(b"") is None
