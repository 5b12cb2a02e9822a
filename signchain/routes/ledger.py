from __future__ import annotations

from fastapi import APIRouter, Depends

from signchain.backends import Backends, get_backends
from signchain.schemas import (
    AnchorPrepareRequest,
    AnchorPrepareResponse,
    AnchorSubmitRequest,
    AnchorSubmitResponse,
)

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/prepare", response_model=AnchorPrepareResponse)
def prepare(
    payload: AnchorPrepareRequest,
    backends: Backends = Depends(get_backends),
) -> AnchorPrepareResponse:
    """
    Build the unsigned zero-amount self-payment whose note carries the CID.
    The wallet signs it client-side.
    """
    txn = backends.ledger.prepare_anchor(payload.cid, payload.wallet_address)
    return AnchorPrepareResponse(txn=txn)


@router.post("/submit", response_model=AnchorSubmitResponse)
def submit(
    payload: AnchorSubmitRequest,
    backends: Backends = Depends(get_backends),
) -> AnchorSubmitResponse:
    tx_id = backends.ledger.submit(payload.signed_txn)
    return AnchorSubmitResponse(tx_id=tx_id)
