"""
uProduce REST API client.

This module wraps the two uProduce calls the proxy needs:

    POST {base}/v1/jobs/immediate                 -> submit ticket, run synchronously
    GET  {base}/v1/jobs/{FriendlyId}/output/download -> ZIP bundle with the output

DEADLINE:
    Both calls share one timeout budget (timeout_seconds). The download only
    gets what the submission left over, so the pair never outlives the hosting
    platform's request ceiling. The download is streamed and checked against
    the deadline after every chunk, so a slow trickle cannot outlive it either.
    An expired budget raises RemoteTimeoutError.

NO RETRIES:
    A failed job is not resubmitted here. The circuit breaker and the
    browser client decide what happens next.

Usage:
    client = UProduceClient(
        base_url="https://uproduce.example.com/XMPieAPI",
        username="svc-brochure",
        password="...",
        timeout_seconds=25.0,
    )

    output = client.submit_and_fetch(ticket)
    output.job_id     # '12345'
    output.content    # ZIP bytes
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from .exceptions import JobIncompleteError, RemoteTimeoutError, TransportError
from logging_config import get_logger, get_job_logger

if TYPE_CHECKING:
    from models.job_ticket import JobTicket


# Module logger
logger = get_logger(__name__)

# Status uProduce reports for a finished job
COMPLETED_STATUS = "Completed"

# Bytes per read while streaming the output bundle
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class RemoteJobOutput:
    """Raw output of a completed uProduce job."""

    job_id: str
    """uProduce FriendlyId."""

    content: bytes
    """Compressed output bundle."""


class UProduceClient:
    """
    Blocking client for the uProduce job API.

    One instance is created at startup and shared by all request threads;
    requests.Session is used only for connection pooling and credentials.

    Attributes:
        base_url: API root without trailing slash
        timeout_seconds: Shared budget for submit + download
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout_seconds: float = 25.0,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: uProduce API root (e.g. https://host/XMPieAPI)
            username: Service account user
            password: Service account password
            timeout_seconds: Shared deadline for both calls of a job
            session: Optional preconfigured session (tests inject a mock)
            clock: Monotonic time source (injectable for tests)

        Raises:
            ValueError: If base_url is empty or timeout is not positive
        """
        if not base_url:
            raise ValueError("base_url is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._clock = clock or time.monotonic

        self._session = session or requests.Session()
        self._session.auth = HTTPBasicAuth(username, password)

        logger.debug(f"UProduceClient initialized for {self.base_url}")

    def submit_and_fetch(self, ticket: "JobTicket") -> RemoteJobOutput:
        """
        Run a job and download its output bundle.

        Args:
            ticket: Job ticket to submit

        Returns:
            RemoteJobOutput with job id and ZIP bytes

        Raises:
            JobIncompleteError: If the job did not reach 'Completed'
            RemoteTimeoutError: If the shared deadline expires
            TransportError: On connection errors, HTTP errors or bad responses
        """
        deadline = self._clock() + self.timeout_seconds

        job = self.submit_job(ticket, timeout=self._remaining(deadline, "submit"))
        job_id = job["job_id"]
        job_logger = get_job_logger(job_id)

        if job["status"] != COMPLETED_STATUS:
            job_logger.error(f"Job finished with status {job['status']}: {job['status_info']}")
            raise JobIncompleteError(job["status"], job["status_info"], job_id=job_id)

        content = self.download_output(job_id, timeout=self._remaining(deadline, "download", job_id))
        job_logger.info(f"Downloaded output bundle ({len(content)} bytes)")

        return RemoteJobOutput(job_id=job_id, content=content)

    def submit_job(self, ticket: "JobTicket", timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Submit a ticket to the immediate-job endpoint.

        Args:
            ticket: Job ticket to submit
            timeout: Seconds to wait (defaults to timeout_seconds)

        Returns:
            Dict with job_id, status and status_info

        Raises:
            RemoteTimeoutError: If uProduce does not answer in time
            TransportError: On connection/HTTP errors or a malformed response
        """
        timeout = timeout if timeout is not None else self.timeout_seconds
        url = f"{self.base_url}/v1/jobs/immediate"

        logger.info(f"Submitting {ticket.kind.value} job to uProduce...")
        response = self._send(
            "submit",
            "POST",
            url,
            timeout,
            data=ticket.to_json(),
            headers={"Content-Type": "application/json"},
        )

        try:
            job_data = response.json()
        except ValueError as e:
            raise TransportError("submit", f"invalid JSON in response: {e}", response.status_code)

        if not isinstance(job_data, dict):
            raise TransportError("submit", "unexpected response shape", response.status_code)

        job_id = job_data.get("FriendlyId")
        if job_id is None or job_id == "":
            raise TransportError("submit", "response has no FriendlyId", response.status_code)

        job_id = str(job_id)
        logger.info(f"Job submitted: {job_id} (status={job_data.get('Status')})")

        return {
            "job_id": job_id,
            "status": job_data.get("Status", "Unknown"),
            "status_info": job_data.get("StatusInfo"),
        }

    def download_output(self, job_id: str, timeout: Optional[float] = None) -> bytes:
        """
        Download a job's output bundle.

        The body is streamed so the budget covers the whole transfer, not
        just each socket read.

        Args:
            job_id: uProduce FriendlyId
            timeout: Seconds the whole download may take (defaults to timeout_seconds)

        Returns:
            Raw bundle bytes

        Raises:
            RemoteTimeoutError: If the download does not finish in time
            TransportError: On connection or HTTP errors
        """
        timeout = timeout if timeout is not None else self.timeout_seconds
        deadline = self._clock() + timeout
        url = f"{self.base_url}/v1/jobs/{job_id}/output/download"

        response = self._send("download", "GET", url, timeout, job_id=job_id, stream=True)
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                chunks.append(chunk)
                if self._clock() >= deadline:
                    logger.error(f"uProduce download of job {job_id} exceeded {timeout:.1f}s")
                    raise RemoteTimeoutError("download", self.timeout_seconds, job_id=job_id)
        except requests.Timeout:
            logger.error(f"uProduce download of job {job_id} stalled")
            raise RemoteTimeoutError("download", self.timeout_seconds, job_id=job_id)
        except requests.RequestException as e:
            logger.error(f"uProduce download of job {job_id} failed: {e}")
            raise TransportError("download", type(e).__name__, job_id=job_id)
        finally:
            response.close()

        return b"".join(chunks)

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    def _remaining(self, deadline: float, operation: str, job_id: Optional[str] = None) -> float:
        """Seconds left until deadline, raising once it has passed."""
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise RemoteTimeoutError(operation, self.timeout_seconds, job_id=job_id)
        return remaining

    def _send(
        self,
        operation: str,
        method: str,
        url: str,
        timeout: float,
        job_id: Optional[str] = None,
        **kwargs
    ) -> requests.Response:
        """
        Perform one HTTP call and classify its failure modes.

        Raises:
            RemoteTimeoutError: On requests.Timeout
            TransportError: On any other requests exception or a non-2xx status
        """
        try:
            response = self._session.request(method, url, timeout=timeout, **kwargs)
        except requests.Timeout:
            logger.error(f"uProduce {operation} timed out after {timeout:.1f}s")
            raise RemoteTimeoutError(operation, self.timeout_seconds, job_id=job_id)
        except requests.RequestException as e:
            logger.error(f"uProduce {operation} failed: {e}")
            raise TransportError(operation, type(e).__name__, job_id=job_id)

        if not response.ok:
            # Vendor payload goes to the log only
            logger.error(
                f"uProduce {operation} returned HTTP {response.status_code}: "
                f"{response.text[:500]}"
            )
            raise TransportError(
                operation,
                f"HTTP {response.status_code}",
                http_status=response.status_code,
                job_id=job_id,
            )

        return response
