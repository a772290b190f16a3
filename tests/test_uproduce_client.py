"""
Unit tests for the uProduce REST client.

The requests.Session is replaced by a MagicMock; no network access.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from core.exceptions import JobIncompleteError, RemoteTimeoutError, TransportError
from core.uproduce_client import UProduceClient
from models.job_ticket import JobKind
from modules.ticket_builder import build_ticket


BASE_URL = "https://uproduce.test/XMPieAPI"


def _response(status_code=200, json_data=None, content=b"", text="", chunks=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = content
    response.text = text
    if chunks is None:
        chunks = [content] if content else []
    response.iter_content.side_effect = lambda chunk_size=None: iter(chunks)
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session, clock):
    return UProduceClient(
        base_url=BASE_URL + "/",
        username="svc",
        password="secret",
        timeout_seconds=25.0,
        session=session,
        clock=clock,
    )


@pytest.fixture
def ticket(catalog):
    return build_ticket(catalog, "brochure-a", "A4", {}, JobKind.PROOF)


class TestInitialization:

    def test_requires_base_url(self, session):
        with pytest.raises(ValueError):
            UProduceClient("", "svc", "secret", session=session)

    def test_requires_positive_timeout(self, session):
        with pytest.raises(ValueError):
            UProduceClient(BASE_URL, "svc", "secret", timeout_seconds=0, session=session)

    def test_sets_basic_auth(self, client, session):
        assert isinstance(session.auth, requests.auth.HTTPBasicAuth)
        assert session.auth.username == "svc"
        assert session.auth.password == "secret"

    def test_strips_trailing_slash(self, client):
        assert client.base_url == BASE_URL


class TestSubmitAndFetch:

    def test_completed_job_downloads_output(self, client, session, ticket):
        session.request.side_effect = [
            _response(json_data={"FriendlyId": 48213, "Status": "Completed"}),
            _response(content=b"zip-bytes"),
        ]

        output = client.submit_and_fetch(ticket)

        assert output.job_id == "48213"
        assert output.content == b"zip-bytes"

        submit_call, download_call = session.request.call_args_list
        assert submit_call.args == ("POST", f"{BASE_URL}/v1/jobs/immediate")
        assert json.loads(submit_call.kwargs["data"]) == ticket.to_dict()
        assert submit_call.kwargs["headers"]["Content-Type"] == "application/json"
        assert download_call.args == ("GET", f"{BASE_URL}/v1/jobs/48213/output/download")
        assert download_call.kwargs["stream"] is True

    def test_incomplete_job_raises(self, client, session, ticket):
        session.request.return_value = _response(
            json_data={"FriendlyId": "7", "Status": "Failed", "StatusInfo": "Missing plan"}
        )

        with pytest.raises(JobIncompleteError) as exc_info:
            client.submit_and_fetch(ticket)

        assert exc_info.value.status == "Failed"
        assert exc_info.value.status_info == "Missing plan"
        assert exc_info.value.job_id == "7"
        assert session.request.call_count == 1

    def test_download_gets_remaining_budget(self, client, session, ticket, clock):
        def respond(method, url, **kwargs):
            if method == "POST":
                clock.advance(10.0)
                return _response(json_data={"FriendlyId": "1", "Status": "Completed"})
            return _response(content=b"zip")

        session.request.side_effect = respond

        client.submit_and_fetch(ticket)

        submit_call, download_call = session.request.call_args_list
        assert submit_call.kwargs["timeout"] == pytest.approx(25.0)
        assert download_call.kwargs["timeout"] == pytest.approx(15.0)

    def test_budget_spent_before_download_times_out(self, client, session, ticket, clock):
        def submit(*args, **kwargs):
            clock.advance(26.0)
            return _response(json_data={"FriendlyId": "1", "Status": "Completed"})

        session.request.side_effect = submit

        with pytest.raises(RemoteTimeoutError) as exc_info:
            client.submit_and_fetch(ticket)

        assert exc_info.value.operation == "download"
        assert session.request.call_count == 1


class TestFailureClassification:

    def test_timeout(self, client, session, ticket):
        session.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(RemoteTimeoutError) as exc_info:
            client.submit_job(ticket)

        assert exc_info.value.status_code == 504

    def test_connection_error(self, client, session, ticket):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            client.submit_job(ticket)

        assert exc_info.value.operation == "submit"

    def test_http_error_status(self, client, session, ticket):
        session.request.return_value = _response(status_code=401, text="Unauthorized")

        with pytest.raises(TransportError) as exc_info:
            client.submit_job(ticket)

        assert exc_info.value.http_status == 401
        assert "Unauthorized" not in exc_info.value.public_message

    def test_invalid_json(self, client, session, ticket):
        session.request.return_value = _response(json_data=ValueError("no json"))

        with pytest.raises(TransportError):
            client.submit_job(ticket)

    def test_missing_job_id(self, client, session, ticket):
        session.request.return_value = _response(json_data={"Status": "Completed"})

        with pytest.raises(TransportError):
            client.submit_job(ticket)

    def test_download_http_error(self, client, session):
        session.request.return_value = _response(status_code=404)

        with pytest.raises(TransportError) as exc_info:
            client.download_output("48213")

        assert exc_info.value.job_id == "48213"


class TestStreamedDownload:

    def test_joins_chunks(self, client, session):
        response = _response(chunks=[b"PK", b"\x03\x04", b"rest"])
        session.request.return_value = response

        assert client.download_output("48213") == b"PK\x03\x04rest"
        response.close.assert_called_once()

    def test_deadline_passes_mid_stream(self, client, session, clock):
        def trickle(chunk_size=None):
            for _ in range(10):
                clock.advance(10.0)
                yield b"x"

        response = _response()
        response.iter_content.side_effect = trickle
        session.request.return_value = response

        with pytest.raises(RemoteTimeoutError) as exc_info:
            client.download_output("48213", timeout=25.0)

        assert exc_info.value.operation == "download"
        assert exc_info.value.job_id == "48213"
        assert clock.now == pytest.approx(1030.0)
        response.close.assert_called_once()

    def test_slow_trickle_breaks_shared_budget(self, client, session, ticket, clock):
        def trickle(chunk_size=None):
            while True:
                clock.advance(5.0)
                yield b"x"

        download = _response()
        download.iter_content.side_effect = trickle
        session.request.side_effect = [
            _response(json_data={"FriendlyId": "1", "Status": "Completed"}),
            download,
        ]

        with pytest.raises(RemoteTimeoutError):
            client.submit_and_fetch(ticket)

        assert clock.now <= 1000.0 + 25.0 + 5.0

    def test_stalled_read(self, client, session):
        response = _response()
        response.iter_content.side_effect = requests.exceptions.ReadTimeout("stalled")
        session.request.return_value = response

        with pytest.raises(RemoteTimeoutError):
            client.download_output("48213")

    def test_broken_stream(self, client, session):
        response = _response()
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("reset")
        session.request.return_value = response

        with pytest.raises(TransportError) as exc_info:
            client.download_output("48213")

        assert exc_info.value.operation == "download"
