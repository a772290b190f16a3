"""
Pytest configuration and fixtures for brochure proxy tests.
"""

import io
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.circuit_breaker import CircuitBreaker
from core.uproduce_client import RemoteJobOutput
from models.product import ProductCatalog
from services.job_service import JobService


FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_zip(entries):
    """Build ZIP bytes from a {name: bytes} mapping (insertion order kept)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def make_pdf(pages: int = 1) -> bytes:
    """Minimal PDF with blank A4 pages."""
    from pypdf import PdfWriter

    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=595, height=842)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def products_file():
    """Path to the test products.json."""
    return FIXTURES_DIR / "products.json"


@pytest.fixture
def catalog(products_file):
    """Catalog loaded from the test products.json."""
    return ProductCatalog.load(products_file)


@pytest.fixture
def product(catalog):
    """The 'brochure-a' test product."""
    return catalog.get("brochure-a")


@pytest.fixture
def clock():
    """Controllable clock for breaker / limiter tests."""
    return FakeClock()


@pytest.fixture
def breaker(clock):
    """Circuit breaker with default threshold/timeout and a fake clock."""
    return CircuitBreaker(failure_threshold=5, reset_timeout=30.0, clock=clock)


@pytest.fixture
def preview_bundle():
    """Proof output with pages stored out of order."""
    return make_zip({
        "brochure_p001.jpg": b"page-1",
        "brochure_p003.jpg": b"page-3",
        "brochure_p002.jpg": b"page-2",
        "job.log": b"ok",
    })


@pytest.fixture
def print_bundle():
    """Print output with one PDF."""
    return make_zip({
        "output/Trifold Brochure (A4).pdf": make_pdf(pages=2),
        "job.log": b"ok",
    })


@pytest.fixture
def mock_client(preview_bundle):
    """uProduce client mock returning the preview bundle."""
    client = MagicMock()
    client.submit_and_fetch.return_value = RemoteJobOutput(job_id="48213", content=preview_bundle)
    return client


@pytest.fixture
def job_service(catalog, mock_client, breaker):
    """JobService over the mock client."""
    return JobService(catalog, mock_client, breaker)
