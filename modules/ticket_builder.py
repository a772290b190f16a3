"""
Job ticket builder.

Pure transformation from (product, size, form values, job kind) to a
uProduce JobTicket. No I/O and no shared state: the same inputs always give
a byte-identical ticket.

Expression formatting:
    - Dates are wrapped in '#' delimiters:   #29/01/2026#
    - Everything else is wrapped in quotes:  "EN"

    A value counts as a date when the variable name contains 'date'
    (any case) or the value itself looks like D/M/YYYY. Values are embedded
    raw - uProduce's expression grammar takes them as-is.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

from core.exceptions import SizeNotFoundError
from models.job_ticket import (
    Customization,
    DEFAULT_PRINT_RECIPIENT_SOURCE,
    DUMMY_RECIPIENT_SOURCE,
    JobKind,
    JobTicket,
    RecipientSource,
)
from models.product import Product, ProductCatalog, Variable


DATE_VALUE_PATTERN = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


def is_date_value(variable_name: str, value: str) -> bool:
    """True if the value should be sent as a date expression."""
    return "date" in variable_name.lower() or bool(DATE_VALUE_PATTERN.match(value))


def format_expression(variable_name: str, value: str) -> str:
    """Wrap a resolved value in the matching uProduce expression delimiters."""
    if is_date_value(variable_name, value):
        return f"#{value}#"
    return f'"{value}"'


def resolve_value(variable: Variable, values: Mapping[str, Optional[str]]) -> str:
    """
    Pick the value for a variable.

    A submitted value wins whenever the key is present; None becomes the
    empty string. A missing key falls back to the variable default, else
    the empty string.
    """
    if variable.name in values:
        submitted = values[variable.name]
        return "" if submitted is None else str(submitted)
    if variable.default_value:
        return variable.default_value
    return ""


def build_ticket(
    catalog: ProductCatalog,
    product_id: str,
    size_name: str,
    values: Mapping[str, Optional[str]],
    kind: JobKind,
    recipient_source: Optional[RecipientSource] = None
) -> JobTicket:
    """
    Build the job ticket for a catalog product.

    Args:
        catalog: Loaded product catalog
        product_id: Product identifier from the request
        size_name: Selected size name
        values: Form values by variable name
        kind: JobKind.PROOF for previews, JobKind.PRINT for the PDF
        recipient_source: Recipient list for print jobs (default list if None)

    Returns:
        JobTicket ready for submission

    Raises:
        ProductNotFoundError: If product_id is not in the catalog
        SizeNotFoundError: If size_name is not one of the product's sizes
    """
    product = catalog.get(product_id)
    return build_ticket_for_product(product, size_name, values, kind, recipient_source)


def build_ticket_for_product(
    product: Product,
    size_name: str,
    values: Mapping[str, Optional[str]],
    kind: JobKind,
    recipient_source: Optional[RecipientSource] = None
) -> JobTicket:
    """Same as build_ticket() for an already resolved product."""
    size = product.find_size(size_name)
    if size is None:
        raise SizeNotFoundError(product.id, size_name)

    customizations = []
    for variable in product.variables:
        # Unbound variables (e.g. the page size selector) only drive the UI
        if not variable.is_bound:
            continue
        value = resolve_value(variable, values)
        customizations.append(
            Customization(
                object_name=variable.binding.name,
                object_type=variable.binding.type.value,
                expression=format_expression(variable.name, value),
            )
        )

    if kind == JobKind.PROOF:
        source = DUMMY_RECIPIENT_SOURCE
    else:
        source = recipient_source or DEFAULT_PRINT_RECIPIENT_SOURCE

    return JobTicket(
        kind=kind,
        campaign_id=product.campaign_id,
        plan_id=product.plan_id,
        document_id=size.document_id,
        customizations=tuple(customizations),
        recipient_source=source,
    )
