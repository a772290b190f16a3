"""
Form payload parsing and validation.

Turns the JSON body posted by the browser into a JobRequest. Everything
here runs before any uProduce call, so failures never reach the circuit
breaker.

Identifiers (productId, pageSize) have markup stripped before the catalog
lookup. Variable values are embedded in vendor expressions, not rendered as
HTML, so they keep their characters ('&', '<', quotes) and are only trimmed
and checked against their variable definition.
"""

from __future__ import annotations

import html
from typing import Any, Dict, Optional

import bleach

from core.exceptions import InvalidFieldValueError, SizeNotFoundError
from models.job_ticket import JobRequest
from models.product import ProductCatalog


PRODUCT_ID_FIELD = "productId"
SIZE_FIELD = "pageSize"
MAX_ID_LENGTH = 100


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Strip markup from an identifier-like input.

    bleach escapes the characters it leaves behind; they are unescaped
    again so "Sun & Sea" still matches its catalog entry.

    Args:
        text: Raw input text
        max_length: Optional maximum length to enforce

    Returns:
        Text with HTML tags stripped and surrounding whitespace removed
    """
    if not text:
        return ""

    text = text.strip()
    text = html.unescape(bleach.clean(text, tags=[], strip=True))

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def clean_value(text: str) -> str:
    """Trim a variable value; the characters themselves are kept as typed."""
    return text.strip()


def _scalar(field_name: str, raw: Any) -> Optional[str]:
    """Coerce a JSON scalar to str; None stays None."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, (str, int, float)):
        return str(raw)
    raise InvalidFieldValueError(field_name, "must be a string")


def parse_job_request(payload: Any, catalog: ProductCatalog) -> JobRequest:
    """
    Validate a preview/download payload.

    A variable missing from the body falls back to its default; an explicit
    null is an empty value.

    Args:
        payload: Decoded JSON body
        catalog: Product catalog

    Returns:
        JobRequest holding only values for the product's own variables

    Raises:
        InvalidFieldValueError: If the body or a field value is malformed
        ProductNotFoundError: If productId is unknown
        SizeNotFoundError: If pageSize is missing or unknown
    """
    if not isinstance(payload, dict):
        raise InvalidFieldValueError("body", "must be a JSON object")

    product_id = sanitize_text(_scalar(PRODUCT_ID_FIELD, payload.get(PRODUCT_ID_FIELD)) or "",
                               max_length=MAX_ID_LENGTH)
    if not product_id:
        raise InvalidFieldValueError(PRODUCT_ID_FIELD, "is required")

    product = catalog.get(product_id)

    size_name = sanitize_text(_scalar(SIZE_FIELD, payload.get(SIZE_FIELD)) or "",
                              max_length=MAX_ID_LENGTH)
    if product.find_size(size_name) is None:
        raise SizeNotFoundError(product.id, size_name)

    values: Dict[str, str] = {}
    for variable in product.variables:
        if variable.name in payload:
            raw = _scalar(variable.name, payload[variable.name])
            value = variable.validate(clean_value(raw)) if raw is not None else ""
            values[variable.name] = value
            resolved = value
        else:
            resolved = variable.default_value or ""

        if variable.required and not resolved:
            raise InvalidFieldValueError(variable.name, "is required")

    return JobRequest(product_id=product.id, size_name=size_name, values=values)
