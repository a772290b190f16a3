"""Lightweight PDF analyzer for the generated print document."""

from __future__ import annotations

import io
from typing import Dict, Any

from pypdf import PdfReader
from pypdf.errors import PyPdfError


class PDFAnalyzer:
    """Extract minimal metadata, resilient to malformed PDFs."""

    def analyze(self, content: bytes) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "pages": 0,
            "size_kb": round(len(content) / 1024, 2),
            "page_dimensions": [],
        }

        try:
            reader = PdfReader(io.BytesIO(content))
            info["pages"] = len(reader.pages)
            if reader.pages:
                page = reader.pages[0]
                width = round(float(page.mediabox.width) / 72 * 25.4, 1)
                height = round(float(page.mediabox.height) / 72 * 25.4, 1)
                info["page_dimensions"].append({"width_mm": width, "height_mm": height})
        except (PyPdfError, ValueError, OSError) as exc:
            info["error"] = f"PDF analysis failed: {exc}"

        return info

    def page_count(self, content: bytes) -> int | None:
        """Number of pages, or None if the PDF could not be read."""
        info = self.analyze(content)
        if "error" in info:
            return None
        return info["pages"]
