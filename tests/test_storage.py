"""Tests for the Pinata/IPFS storage adapters."""

import httpx
import pytest

from signchain.errors import StorageError
from signchain.storage import MOCK_CID, PinataStorage, SimulatedStorage


class Recorder:
    """MockTransport handler that replays responses and records requests."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _storage(handler, sleeps=None, **kwargs) -> PinataStorage:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    sleep = sleeps.append if sleeps is not None else (lambda seconds: None)
    return PinataStorage("test-jwt", client=client, sleep=sleep, **kwargs)


class TestSimulatedStorage:
    def test_returns_mock_cid(self):
        assert SimulatedStorage().upload(b"%PDF", "a.pdf") == f"ipfs://{MOCK_CID}"


class TestPinataStorage:
    def test_successful_upload(self):
        handler = Recorder(httpx.Response(200, json={"IpfsHash": "QmTest", "PinSize": 4}))
        cid = _storage(handler).upload(b"%PDF-1.4", "contract.pdf")

        assert cid == "ipfs://QmTest"
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url == "https://api.pinata.cloud/pinning/pinFileToIPFS"
        assert request.headers["Authorization"] == "Bearer test-jwt"
        assert b'filename="contract.pdf"' in request.content
        assert b"%PDF-1.4" in request.content

    def test_retries_server_errors(self):
        sleeps = []
        handler = Recorder(
            httpx.Response(503),
            httpx.Response(500),
            httpx.Response(200, json={"IpfsHash": "QmAfterRetry"}),
        )
        cid = _storage(handler, sleeps).upload(b"data")
        assert cid == "ipfs://QmAfterRetry"
        assert len(handler.requests) == 3
        assert len(sleeps) == 2

    def test_retries_transport_errors(self):
        handler = Recorder(
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"IpfsHash": "QmOk"}),
        )
        assert _storage(handler).upload(b"data") == "ipfs://QmOk"

    def test_gives_up_after_max_attempts(self):
        sleeps = []
        handler = Recorder(httpx.Response(502), httpx.Response(502), httpx.Response(502))
        with pytest.raises(StorageError, match="after 3 attempts"):
            _storage(handler, sleeps).upload(b"data")
        assert len(handler.requests) == 3
        assert len(sleeps) == 2

    def test_client_errors_are_not_retried(self):
        handler = Recorder(httpx.Response(401, json={"error": "bad jwt"}))
        with pytest.raises(StorageError, match="401"):
            _storage(handler).upload(b"data")
        assert len(handler.requests) == 1

    def test_missing_hash_is_an_error(self):
        handler = Recorder(httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(StorageError, match="IpfsHash"):
            _storage(handler).upload(b"data")

    def test_non_json_body_is_an_error(self):
        handler = Recorder(httpx.Response(200, text="<html>"))
        with pytest.raises(StorageError):
            _storage(handler).upload(b"data")

    def test_requires_jwt(self):
        with pytest.raises(StorageError):
            PinataStorage("")

    def test_backoff_grows_exponentially_with_jitter(self):
        storage = _storage(Recorder(), backoff_seconds=0.5)
        for attempt in range(3):
            delay = storage._delay(attempt)
            assert 0.5 * 2**attempt <= delay <= 0.5 * 2**attempt + 0.5
