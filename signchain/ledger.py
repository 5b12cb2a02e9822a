from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
from typing import Protocol

from algosdk import encoding, transaction
from algosdk.v2client import algod

from signchain.config import Settings
from signchain.errors import InvalidLedgerInput, LedgerError

log = logging.getLogger("signchain.ledger")

NOTE_MAX_BYTES = 1024


def build_algod_client(settings: Settings) -> algod.AlgodClient:
    if not settings.algod_server:
        raise ValueError("ALGOD_SERVER is not configured")
    address = settings.algod_server.rstrip("/")
    if settings.algod_port:
        address = f"{address}:{settings.algod_port}"
    return algod.AlgodClient(settings.algod_token, address)


def _note_bytes(cid: str) -> bytes:
    note = cid.encode("utf-8")
    if len(note) > NOTE_MAX_BYTES:
        raise InvalidLedgerInput(f"CID is {len(note)} bytes; the note field holds at most {NOTE_MAX_BYTES}")
    return note


def _decode_signed(signed_txn_b64: str) -> bytes:
    try:
        return base64.b64decode(signed_txn_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidLedgerInput("Signed transaction is not valid base64") from exc


class Ledger(Protocol):
    def prepare_anchor(self, cid: str, wallet_address: str) -> str:
        """Unsigned zero-amount self-payment carrying the CID, base64-encoded."""
        ...

    def submit(self, signed_txn_b64: str) -> str:
        """Send a signed transaction, wait for confirmation, return its id."""
        ...


class AlgorandLedger:
    def __init__(self, client: algod.AlgodClient, wait_rounds: int = 4):
        self.client = client
        self.wait_rounds = wait_rounds

    def prepare_anchor(self, cid: str, wallet_address: str) -> str:
        note = _note_bytes(cid)
        if not encoding.is_valid_address(wallet_address):
            raise InvalidLedgerInput(f"Not a valid Algorand address: {wallet_address!r}")

        try:
            params = self.client.suggested_params()
            txn = transaction.PaymentTxn(
                sender=wallet_address,
                sp=params,
                receiver=wallet_address,
                amt=0,
                note=note,
            )
            encoded = encoding.msgpack_encode(txn)
        except Exception as exc:
            log.exception("Building anchor transaction failed: %s", exc)
            raise LedgerError(f"Could not build the Algorand transaction: {exc}") from exc

        log.info("prepare_anchor: sender=%s note_bytes=%d", wallet_address, len(note))
        return encoded

    def submit(self, signed_txn_b64: str) -> str:
        _decode_signed(signed_txn_b64)
        try:
            tx_id = self.client.send_raw_transaction(signed_txn_b64)
            transaction.wait_for_confirmation(self.client, tx_id, self.wait_rounds)
        except Exception as exc:
            log.exception("Algorand submission failed: %s", exc)
            raise LedgerError(f"Algorand transaction failed: {exc}") from exc

        log.info("submit: confirmed tx_id=%s", tx_id)
        return tx_id


class SimulatedLedger:
    """
    Development stand-in. Prepared transactions are base64 JSON describing the
    payment; submitted ones get a deterministic id derived from their bytes.
    """

    def prepare_anchor(self, cid: str, wallet_address: str) -> str:
        note = _note_bytes(cid)
        if not wallet_address.strip():
            raise InvalidLedgerInput("Wallet address is required")
        payload = {
            "type": "pay",
            "snd": wallet_address,
            "rcv": wallet_address,
            "amt": 0,
            "note": base64.b64encode(note).decode("ascii"),
        }
        return base64.b64encode(json.dumps(payload, sort_keys=True).encode("utf-8")).decode("ascii")

    def submit(self, signed_txn_b64: str) -> str:
        raw = _decode_signed(signed_txn_b64)
        tx_id = "SIM" + hashlib.sha256(raw).hexdigest()[:49].upper()
        log.info("SimulatedLedger: accepted tx_id=%s", tx_id)
        return tx_id
