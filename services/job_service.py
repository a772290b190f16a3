"""
Brochure job service.

Runs the preview and print pipelines for one request, on the request's own
thread:

    1. Build the job ticket (pure, input errors surface here)
    2. Ask the circuit breaker for permission
    3. Submit to uProduce, wait for completion, download the bundle
    4. Extract the JPG pages or the PDF
    5. Report the outcome to the circuit breaker

Input errors (unknown product/size) are raised in step 1 and never touch the
breaker. Every failure from step 3 or 4 counts as a breaker failure,
including timeouts. Nothing is retried here - the browser decides.

Thread Safety:
    - JobService holds no per-request state
    - The breaker and the client are shared and thread-safe
    - Two concurrent requests may finish in either order
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple, TypeVar

from core.circuit_breaker import CircuitBreaker
from core.exceptions import CircuitOpenError
from core.uproduce_client import UProduceClient
from models.job_result import DocumentResult, PreviewResult
from models.job_ticket import JobKind, JobRequest, JobTicket, RecipientSource
from models.product import ProductCatalog
from modules.asset_extractor import extract_document, extract_preview_images
from modules.pdf_analyzer import PDFAnalyzer
from modules.ticket_builder import build_ticket
from logging_config import get_logger, get_job_logger


# Module logger
logger = get_logger(__name__)

T = TypeVar("T")


class JobService:
    """
    Service for generating previews and print PDFs through uProduce.

    Attributes:
        catalog: Product catalog used to build tickets
        breaker: Circuit breaker guarding the uProduce client
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        client: UProduceClient,
        breaker: CircuitBreaker,
        recipient_source: Optional[RecipientSource] = None,
        pdf_analyzer: Optional[PDFAnalyzer] = None
    ):
        """
        Initialize job service.

        Args:
            catalog: Loaded product catalog
            client: uProduce client
            breaker: Circuit breaker shared by all uProduce call sites
            recipient_source: Recipient list for print jobs (default list if None)
            pdf_analyzer: Analyzer used to count pages of the print PDF
        """
        self.catalog = catalog
        self.breaker = breaker
        self._client = client
        self._recipient_source = recipient_source
        self._pdf_analyzer = pdf_analyzer or PDFAnalyzer()

        logger.info("JobService initialized")

    def build_ticket(self, request: JobRequest, kind: JobKind) -> JobTicket:
        """
        Build the ticket for a request.

        Raises:
            ProductNotFoundError: If the product is unknown
            SizeNotFoundError: If the size is unknown for the product
        """
        return build_ticket(
            self.catalog,
            request.product_id,
            request.size_name,
            request.values,
            kind,
            recipient_source=self._recipient_source,
        )

    def generate_preview(self, request: JobRequest) -> PreviewResult:
        """
        Render preview pages for a request.

        Returns:
            PreviewResult with pages in page order

        Raises:
            ProductNotFoundError, SizeNotFoundError: Invalid input
            CircuitOpenError: Breaker is open
            RemoteJobError (and subclasses): uProduce or bundle failure
        """
        ticket = self.build_ticket(request, JobKind.PROOF)
        logger.info(f"Generating preview for {request.product_id} ({request.size_name})")

        job_id, images = self._run_guarded(ticket, extract_preview_images)

        get_job_logger(job_id).info(f"Preview ready: {len(images)} page(s)")
        return PreviewResult(job_id=job_id, images=images)

    def generate_document(self, request: JobRequest) -> DocumentResult:
        """
        Render the print-ready PDF for a request.

        Returns:
            DocumentResult with PDF bytes, filename and page count

        Raises:
            ProductNotFoundError, SizeNotFoundError: Invalid input
            CircuitOpenError: Breaker is open
            RemoteJobError (and subclasses): uProduce or bundle failure
        """
        ticket = self.build_ticket(request, JobKind.PRINT)
        logger.info(f"Generating PDF for {request.product_id} ({request.size_name})")

        job_id, document = self._run_guarded(ticket, extract_document)
        page_count = self._pdf_analyzer.page_count(document.content)

        get_job_logger(job_id).info(
            f"PDF ready: {document.filename} ({len(document.content)} bytes, {page_count} page(s))"
        )
        return DocumentResult(
            job_id=job_id,
            filename=document.filename,
            content=document.content,
            page_count=page_count,
        )

    def _run_guarded(self, ticket: JobTicket, extract: Callable[[bytes], T]) -> Tuple[str, T]:
        """
        Run one uProduce job under the circuit breaker.

        Args:
            ticket: Ticket to submit
            extract: Function turning the output bundle into assets

        Returns:
            (job id, extracted assets)

        Raises:
            CircuitOpenError: If the breaker denies the call
        """
        if not self.breaker.can_request():
            retry_after = self.breaker.retry_after()
            logger.warning(f"Circuit open, rejecting {ticket.kind.value} job (retry in {retry_after}s)")
            raise CircuitOpenError(retry_after)

        try:
            output = self._client.submit_and_fetch(ticket)
            assets = extract(output.content)
        except Exception as e:
            self.breaker.on_failure()
            logger.error(f"{ticket.kind.value} job failed: {e}")
            raise

        self.breaker.on_success()
        return output.job_id, assets
