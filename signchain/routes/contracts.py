from __future__ import annotations

import logging
from io import BytesIO

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from signchain.backends import Backends, get_app_settings, get_backends
from signchain.config import Settings
from signchain.errors import InputTooLarge
from signchain.pdf import export_pdf
from signchain.recovery import recover
from signchain.schemas import (
    ContractGenerationRequest,
    GeneratedContract,
    PdfRequest,
    PublishResponse,
    RecoverRequest,
)
from signchain.utils import safe_pdf_filename

router = APIRouter(prefix="/contracts", tags=["contracts"])

log = logging.getLogger("signchain.api.contracts")


def _check_length(text: str, settings: Settings) -> None:
    if len(text) > settings.max_input_chars:
        raise InputTooLarge(
            f"Text is {len(text)} characters; the limit is {settings.max_input_chars}."
        )


@router.post("/generate", response_model=GeneratedContract)
def generate(
    payload: ContractGenerationRequest,
    backends: Backends = Depends(get_backends),
) -> GeneratedContract:
    """
    Draft a contract with the AI backend. Never fails: unusable answers come
    back as placeholder summary/risk entries.
    """
    log.info("generate: parties=%d country=%s", len(payload.parties), payload.country)
    return backends.generator.generate(payload)


@router.post("/recover", response_model=GeneratedContract)
def recover_contract(
    payload: RecoverRequest,
    settings: Settings = Depends(get_app_settings),
) -> GeneratedContract:
    """Run the recovery engine over raw AI text (debugging / re-parsing)."""
    _check_length(payload.raw_text, settings)
    return recover(payload.raw_text)


@router.post("/pdf", response_class=StreamingResponse)
def contract_pdf(payload: PdfRequest, settings: Settings = Depends(get_app_settings)):
    _check_length(payload.text, settings)
    pdf_bytes = export_pdf(
        payload.text,
        payload.title or settings.pdf_default_title,
        font_path=settings.pdf_font_path,
    )
    filename = safe_pdf_filename(payload.filename)
    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/publish", response_model=PublishResponse)
def publish(
    payload: PdfRequest,
    settings: Settings = Depends(get_app_settings),
    backends: Backends = Depends(get_backends),
) -> PublishResponse:
    """
    Lay out the contract, pin the PDF to IPFS and hand back the CID that the
    wallet will anchor on Algorand.
    """
    _check_length(payload.text, settings)
    pdf_bytes = export_pdf(
        payload.text,
        payload.title or settings.pdf_default_title,
        font_path=settings.pdf_font_path,
    )
    filename = safe_pdf_filename(payload.filename)
    cid = backends.storage.upload(pdf_bytes, filename)
    log.info("publish: %s -> %s (%d bytes)", filename, cid, len(pdf_bytes))
    return PublishResponse(cid=cid, filename=filename, size_bytes=len(pdf_bytes))
