"""
Job ticket data models.

A JobTicket is the uProduce wire format describing what to render, with
which plan customizations, in which output format. Tickets are built fresh
per request by modules.ticket_builder and never persisted.

Determinism:
    JobTicket.to_json() sorts keys and uses compact separators, so two
    tickets built from identical inputs serialize to identical bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class JobKind(Enum):
    """
    Kind of uProduce job.

    PROOF -> fast low-resolution JPG pages for the preview
    PRINT -> print-ready PDF
    """

    PROOF = "Proof"
    PRINT = "Print"


@dataclass(frozen=True)
class JobRequest:
    """
    One preview/download request, after gateway validation.

    Built fresh per API call, never persisted.
    """

    product_id: str
    """Catalog product identifier."""

    size_name: str
    """Selected size option name."""

    values: Mapping[str, Optional[str]] = field(default_factory=dict)
    """Form field values by variable name (missing -> variable default, None -> "")."""


@dataclass(frozen=True)
class Customization:
    """One plan object override."""

    object_name: str
    """Plan object name."""

    object_type: str
    """'Variable' or 'ADOR'."""

    expression: str
    """uProduce expression, e.g. '"EN"' or '#29/01/2026#'."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "PlanObjectName": self.object_name,
            "PlanObjectType": self.object_type,
            "PlanObjectExpression": self.expression,
        }


@dataclass(frozen=True)
class RecipientSource:
    """
    Recipient data source of a job.

    Proof jobs run without data ('NoDataSource'); print jobs read a named
    recipient table.
    """

    filter_type: str
    filter: str
    source_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"FilterType": self.filter_type, "Filter": self.filter}
        if self.source_id is not None:
            data["Id"] = self.source_id
        return data


# Recipient source used by every proof job
DUMMY_RECIPIENT_SOURCE = RecipientSource(filter_type="NoDataSource", filter="Dummy Data")

# Default recipient list for print jobs
DEFAULT_PRINT_RECIPIENT_SOURCE = RecipientSource(
    filter_type="TableName", filter="RecipientList", source_id=14485
)


@dataclass(frozen=True)
class JobTicket:
    """
    Vendor job description for uProduce's immediate job endpoint.

    All fields are plain values; the output block is fully determined by
    the job kind, so it is derived in to_dict() instead of stored.
    """

    kind: JobKind
    campaign_id: Any
    plan_id: Any
    document_id: Any
    customizations: Tuple[Customization, ...]
    recipient_source: RecipientSource

    def to_dict(self) -> Dict[str, Any]:
        """Build the uProduce JSON body."""
        job: Dict[str, Any] = {
            "JobType": self.kind.value,
            "Context": {"CampaignId": self.campaign_id},
        }
        if self.kind == JobKind.PROOF:
            job["Priority"] = "Immediately"

        return {
            "Job": job,
            "Data": {
                "Range": {"All": False, "From": 1, "To": 1},
                "RecipientsDataSources": [self.recipient_source.to_dict()],
                "Assets": {"UseCampaignAssetSources": True, "Media": "Print"},
            },
            "Plan": {
                "Id": self.plan_id,
                "Customizations": [c.to_dict() for c in self.customizations],
            },
            "Document": {
                "Id": self.document_id,
                "Fonts": {"UseCampaignFonts": True},
            },
            "Output": _output_settings(self.kind),
        }

    def to_json(self) -> bytes:
        """Canonical UTF-8 JSON encoding (sorted keys, no whitespace)."""
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")


def _production_policies() -> Dict[str, str]:
    # Same fault tolerance for both kinds
    return {
        "MissingFonts": "Ignore",
        "MissingAssets": "Ignore",
        "MissingStyles": "Ignore",
        "TextOverflow": "Ignore",
        "FileSizeLimitReached": "FailJob",
    }


def _output_settings(kind: JobKind) -> Dict[str, Any]:
    if kind == JobKind.PROOF:
        return {
            "Format": "JPG",
            "FileName": {"Automatic": True},
            "Bleed": {
                "UseDocumentDefinition": False,
                "Top": 0,
                "Bottom": 0,
                "LeftOrInside": 0,
                "RightOrOutside": 0,
            },
            "Resolution": 150,
            "ProductionPolicies": _production_policies(),
        }

    return {
        "Format": "PDF",
        "FileName": {"Automatic": True},
        "Bleed": {"UseDocumentDefinition": True},
        "PdfSettings": "XMPiEQualityHigh",
        "PdfCompatibilityLevel": "PdfVersion16",
        "PdfStandardsCompliance": "PDFX42010",
        "FlatteningHandlerType": "UseXDot",
        "ProductionPolicies": _production_policies(),
    }
