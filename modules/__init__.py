"""Helper modules for the brochure proxy."""

__all__ = [
    "asset_extractor",
    "pdf_analyzer",
    "request_parser",
    "ticket_builder",
]
