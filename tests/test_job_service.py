"""
Unit tests for JobService (pipeline orchestration and breaker accounting).
"""

import pytest

from core.circuit_breaker import CircuitState
from core.exceptions import (
    CircuitOpenError,
    JobIncompleteError,
    NoImagesInOutputError,
    ProductNotFoundError,
    RemoteTimeoutError,
    SizeNotFoundError,
)
from core.uproduce_client import RemoteJobOutput
from models.job_ticket import (
    DEFAULT_PRINT_RECIPIENT_SOURCE,
    JobKind,
    JobRequest,
    RecipientSource,
)
from services.job_service import JobService
from tests.conftest import make_zip


@pytest.fixture
def request_a4():
    return JobRequest(product_id="brochure-a", size_name="A4", values={"headline": "Hello"})


def _open(breaker):
    for _ in range(breaker.failure_threshold):
        breaker.on_failure()


class TestGeneratePreview:

    def test_returns_ordered_pages(self, job_service, request_a4):
        result = job_service.generate_preview(request_a4)

        assert result.job_id == "48213"
        assert result.page_count == 3
        assert [image.page for image in result.images] == [1, 2, 3]

    def test_submits_proof_ticket(self, job_service, mock_client, request_a4):
        job_service.generate_preview(request_a4)

        ticket = mock_client.submit_and_fetch.call_args.args[0]
        assert ticket.kind == JobKind.PROOF
        assert ticket.document_id == 5521

    def test_to_dict_shape(self, job_service, request_a4):
        body = job_service.generate_preview(request_a4).to_dict()

        assert body["success"] is True
        assert body["jobId"] == "48213"
        assert body["pageCount"] == 3
        assert set(body["images"][0]) == {"name", "data"}


class TestGenerateDocument:

    def test_returns_pdf_with_page_count(self, job_service, mock_client, print_bundle, request_a4):
        mock_client.submit_and_fetch.return_value = RemoteJobOutput("50001", print_bundle)

        result = job_service.generate_document(request_a4)

        assert result.job_id == "50001"
        assert result.filename == "Trifold_Brochure__A4_.pdf"
        assert result.page_count == 2

    def test_uses_default_recipient_source(self, job_service, mock_client, print_bundle, request_a4):
        mock_client.submit_and_fetch.return_value = RemoteJobOutput("50001", print_bundle)

        job_service.generate_document(request_a4)

        ticket = mock_client.submit_and_fetch.call_args.args[0]
        assert ticket.kind == JobKind.PRINT
        assert ticket.recipient_source == DEFAULT_PRINT_RECIPIENT_SOURCE

    def test_uses_configured_recipient_source(self, catalog, mock_client, breaker, print_bundle, request_a4):
        source = RecipientSource("TableName", "Customers", source_id=99)
        service = JobService(catalog, mock_client, breaker, recipient_source=source)
        mock_client.submit_and_fetch.return_value = RemoteJobOutput("50001", print_bundle)

        service.generate_document(request_a4)

        assert mock_client.submit_and_fetch.call_args.args[0].recipient_source == source

    def test_unreadable_pdf_has_no_page_count(self, job_service, mock_client, request_a4):
        bundle = make_zip({"out.pdf": b"not really a pdf"})
        mock_client.submit_and_fetch.return_value = RemoteJobOutput("50002", bundle)

        result = job_service.generate_document(request_a4)

        assert result.page_count is None


class TestBreakerAccounting:

    def test_open_breaker_rejects_without_calling(self, job_service, mock_client, breaker, request_a4):
        _open(breaker)

        with pytest.raises(CircuitOpenError) as exc_info:
            job_service.generate_preview(request_a4)

        assert exc_info.value.retry_after == 30
        assert exc_info.value.status_code == 503
        mock_client.submit_and_fetch.assert_not_called()

    def test_unknown_product_does_not_touch_breaker(self, job_service, mock_client, breaker):
        with pytest.raises(ProductNotFoundError):
            job_service.generate_preview(JobRequest("nope", "A4", {}))

        assert breaker.failure_count == 0
        mock_client.submit_and_fetch.assert_not_called()

    def test_unknown_size_does_not_touch_breaker(self, job_service, breaker):
        _open(breaker)

        with pytest.raises(SizeNotFoundError):
            job_service.generate_preview(JobRequest("brochure-a", "A3", {}))

    def test_remote_failure_counts(self, job_service, mock_client, breaker, request_a4):
        mock_client.submit_and_fetch.side_effect = JobIncompleteError("Failed", "boom", job_id="1")

        with pytest.raises(JobIncompleteError):
            job_service.generate_preview(request_a4)

        assert breaker.failure_count == 1

    def test_timeout_counts(self, job_service, mock_client, breaker, request_a4):
        mock_client.submit_and_fetch.side_effect = RemoteTimeoutError("submit", 25.0)

        with pytest.raises(RemoteTimeoutError):
            job_service.generate_preview(request_a4)

        assert breaker.failure_count == 1

    def test_extraction_failure_counts(self, job_service, mock_client, breaker, print_bundle, request_a4):
        mock_client.submit_and_fetch.return_value = RemoteJobOutput("1", print_bundle)

        with pytest.raises(NoImagesInOutputError):
            job_service.generate_preview(request_a4)

        assert breaker.failure_count == 1

    def test_repeated_failures_open_circuit(self, job_service, mock_client, breaker, request_a4):
        mock_client.submit_and_fetch.side_effect = RemoteTimeoutError("submit", 25.0)

        for _ in range(5):
            with pytest.raises(RemoteTimeoutError):
                job_service.generate_preview(request_a4)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            job_service.generate_preview(request_a4)
        assert mock_client.submit_and_fetch.call_count == 5

    def test_success_resets_failures(self, job_service, mock_client, breaker, preview_bundle, request_a4):
        mock_client.submit_and_fetch.side_effect = [
            RemoteTimeoutError("submit", 25.0),
            RemoteJobOutput("2", preview_bundle),
        ]

        with pytest.raises(RemoteTimeoutError):
            job_service.generate_preview(request_a4)
        job_service.generate_preview(request_a4)

        assert breaker.failure_count == 0

    def test_half_open_probe_closes_circuit(self, job_service, breaker, clock, request_a4):
        _open(breaker)
        clock.advance(31.0)

        job_service.generate_preview(request_a4)

        assert breaker.state == CircuitState.CLOSED
