from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, Protocol

import httpx

from signchain.errors import StorageError

log = logging.getLogger("signchain.storage")

PINATA_ENDPOINT = "https://api.pinata.cloud/pinning/pinFileToIPFS"
MOCK_CID = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def to_ipfs_uri(cid: str) -> str:
    return f"ipfs://{cid}"


class ContentStorage(Protocol):
    def upload(self, content: bytes, filename: str = "contract.pdf") -> str:
        """Store bytes and return an ipfs:// URI."""
        ...


class SimulatedStorage:
    """Development stand-in: nothing leaves the process, a fixed CID comes back."""

    def upload(self, content: bytes, filename: str = "contract.pdf") -> str:
        log.info("SimulatedStorage: pretending to pin %s (%d bytes)", filename, len(content))
        return to_ipfs_uri(MOCK_CID)


class PinataStorage:
    """
    Pins files through Pinata's pinFileToIPFS endpoint (JWT auth).

    Transport errors, 429 and 5xx are retried with exponential backoff and
    jitter, up to `max_attempts` calls in total.
    """

    def __init__(
        self,
        jwt: str,
        endpoint: str = PINATA_ENDPOINT,
        *,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not jwt:
            raise StorageError("Pinata JWT is required for live uploads.")
        self.jwt = jwt
        self.endpoint = endpoint
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout, connect=5.0))
        self._sleep = sleep

    def _delay(self, attempt: int) -> float:
        base = self.backoff_seconds * (2 ** attempt)
        return base + random.uniform(0, self.backoff_seconds)

    def _post(self, content: bytes, filename: str) -> httpx.Response:
        return self._client.post(
            self.endpoint,
            headers={"Authorization": f"Bearer {self.jwt}"},
            files={"file": (filename, content, "application/pdf")},
        )

    def upload(self, content: bytes, filename: str = "contract.pdf") -> str:
        last_error = ""
        for attempt in range(self.max_attempts):
            try:
                resp = self._post(content, filename)
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                log.warning(
                    "Pinata upload attempt %d/%d failed: %s",
                    attempt + 1,
                    self.max_attempts,
                    last_error,
                )
            else:
                if resp.status_code < 400:
                    return to_ipfs_uri(self._cid_from(resp))
                last_error = f"HTTP {resp.status_code}"
                if resp.status_code not in RETRYABLE_STATUS:
                    log.error("Pinata upload rejected: %s %s", resp.status_code, resp.text[:300])
                    raise StorageError(f"Pinata upload rejected with status {resp.status_code}")
                log.warning(
                    "Pinata upload attempt %d/%d got %s",
                    attempt + 1,
                    self.max_attempts,
                    resp.status_code,
                )

            if attempt + 1 < self.max_attempts:
                self._sleep(self._delay(attempt))

        raise StorageError(f"Pinata upload failed after {self.max_attempts} attempts ({last_error})")

    @staticmethod
    def _cid_from(resp: httpx.Response) -> str:
        try:
            data = resp.json()
        except ValueError as exc:
            raise StorageError("Pinata returned a non-JSON response") from exc
        cid = data.get("IpfsHash") if isinstance(data, dict) else None
        if not cid:
            raise StorageError("Pinata response did not contain IpfsHash")
        return str(cid)

    def close(self) -> None:
        self._client.close()
