"""
Output bundle extraction.

uProduce delivers job output as a ZIP archive. Proof jobs contain one JPG per
page, with the page number encoded in the file name ('..._p003.jpg'); print
jobs contain a single PDF.
"""

from __future__ import annotations

import base64
import io
import re
import zipfile
from typing import List, Tuple

from core.exceptions import (
    InvalidOutputBundleError,
    NoDocumentInOutputError,
    NoImagesInOutputError,
)
from models.job_result import ExtractedDocument, PreviewImage


IMAGE_EXTENSIONS = (".jpg", ".jpeg")
DOCUMENT_EXTENSION = ".pdf"
DEFAULT_DOCUMENT_NAME = "brochure.pdf"

PAGE_NUMBER_PATTERN = re.compile(r"p(\d+)")
UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]")


def parse_page_number(entry_name: str) -> int:
    """
    Page number embedded in an entry name.

    >>> parse_page_number("brochure_p003.jpg")
    3
    >>> parse_page_number("cover.jpg")
    0
    """
    match = PAGE_NUMBER_PATTERN.search(entry_name)
    return int(match.group(1)) if match else 0


def sanitize_filename(entry_name: str) -> str:
    """Base name of an entry, safe to put in a Content-Disposition header."""
    base_name = entry_name.replace("\\", "/").rsplit("/", 1)[-1]
    safe = UNSAFE_FILENAME_CHARS.sub("_", base_name)
    return safe or DEFAULT_DOCUMENT_NAME


def _read_entries(raw: bytes) -> List[Tuple[str, bytes]]:
    """Decompress all file entries of the bundle in archive order."""
    try:
        with zipfile.ZipFile(io.BytesIO(raw)) as archive:
            return [
                (info.filename, archive.read(info))
                for info in archive.infolist()
                if not info.is_dir()
            ]
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise InvalidOutputBundleError(f"Output bundle is not a readable ZIP: {e}")


def extract_preview_images(raw: bytes) -> List[PreviewImage]:
    """
    Pull the preview pages out of a Proof bundle.

    Args:
        raw: ZIP bytes from uProduce

    Returns:
        PreviewImage list sorted by page number (stable for equal numbers)

    Raises:
        NoImagesInOutputError: If the bundle has no JPG entries
        InvalidOutputBundleError: If the bundle cannot be read
    """
    entries = _read_entries(raw)

    images = [
        PreviewImage(
            name=name,
            data="data:image/jpeg;base64," + base64.b64encode(content).decode("ascii"),
            page=parse_page_number(name),
        )
        for name, content in entries
        if name.lower().endswith(IMAGE_EXTENSIONS)
    ]
    if not images:
        raise NoImagesInOutputError(len(entries))

    images.sort(key=lambda image: image.page)
    return images


def extract_document(raw: bytes) -> ExtractedDocument:
    """
    Pull the PDF out of a Print bundle.

    A bundle should hold a single PDF; if it holds several, the last one in
    archive order is returned.

    Args:
        raw: ZIP bytes from uProduce

    Returns:
        ExtractedDocument with sanitized filename and PDF bytes

    Raises:
        NoDocumentInOutputError: If the bundle has no PDF entry
        InvalidOutputBundleError: If the bundle cannot be read
    """
    entries = _read_entries(raw)

    documents = [(name, content) for name, content in entries
                 if name.lower().endswith(DOCUMENT_EXTENSION)]
    if not documents:
        raise NoDocumentInOutputError(len(entries))

    name, content = documents[-1]
    return ExtractedDocument(filename=sanitize_filename(name), content=content)
