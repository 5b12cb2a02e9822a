from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

log = logging.getLogger("signchain.errors")


# ------------------------------------------------------------------------------
# Exceptions
# ------------------------------------------------------------------------------

class SignChainError(RuntimeError):
    """Base class for failures that must reach the user."""
    code = "internal_error"
    status_code = 500


class PdfExportError(SignChainError):
    """Raised when a contract cannot be laid out or serialized to PDF."""
    code = "pdf_export_failed"
    status_code = 500


class StorageError(SignChainError):
    """Raised when the PDF cannot be pinned to IPFS."""
    code = "storage_upload_failed"
    status_code = 502


class LedgerError(SignChainError):
    """Raised when the anchoring transaction cannot be built or confirmed."""
    code = "ledger_write_failed"
    status_code = 502


class InvalidLedgerInput(LedgerError):
    """Bad address, oversized note or undecodable signed transaction."""
    code = "ledger_invalid_input"
    status_code = 400


class InputTooLarge(SignChainError):
    """Request text longer than settings.max_input_chars."""
    code = "input_too_large"
    status_code = 413


# ------------------------------------------------------------------------------
# User-facing messages
# ------------------------------------------------------------------------------

MESSAGES: Dict[str, Dict[str, str]] = {
    "internal_error": {
        "tr": "Beklenmeyen bir hata oluştu.",
        "en": "An unexpected error occurred.",
    },
    "pdf_export_failed": {
        "tr": "PDF oluşturulurken hata oluştu.",
        "en": "The PDF could not be generated.",
    },
    "storage_upload_failed": {
        "tr": "IPFS yüklemesi sırasında hata oluştu.",
        "en": "Uploading to IPFS failed.",
    },
    "ledger_write_failed": {
        "tr": "Algorand işlemi sırasında hata oluştu.",
        "en": "The Algorand transaction failed.",
    },
    "ledger_invalid_input": {
        "tr": "Algorand işlemi için geçersiz veri gönderildi.",
        "en": "Invalid data for the Algorand transaction.",
    },
    "input_too_large": {
        "tr": "Gönderilen metin izin verilen uzunluğu aşıyor.",
        "en": "The submitted text is too long.",
    },
    "validation_error": {
        "tr": "Geçersiz istek.",
        "en": "Validation Error",
    },
}


def request_language(request: Request, default: str = "tr") -> str:
    header = request.headers.get("accept-language", "")
    for part in header.split(","):
        lang = part.split(";")[0].strip()[:2].lower()
        if lang in ("tr", "en"):
            return lang
    return default


def localized_message(code: str, language: str) -> str:
    messages = MESSAGES.get(code, MESSAGES["internal_error"])
    return messages.get(language) or messages["en"]


# ------------------------------------------------------------------------------
# Problem details (RFC 7807)
# ------------------------------------------------------------------------------

class ProblemDetail(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    errors: Optional[list[dict]] = None


def _default_language(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return getattr(settings, "default_language", "tr")


async def signchain_exception_handler(request: Request, exc: SignChainError) -> JSONResponse:
    language = request_language(request, _default_language(request))
    log.error("%s on %s: %s", exc.code, request.url.path, exc)
    problem = ProblemDetail(
        type=f"urn:signchain:error:{exc.code}",
        title=localized_message(exc.code, language),
        status=exc.status_code,
        detail=str(exc) or exc.code,
        instance=str(request.url),
    )
    return JSONResponse(status_code=exc.status_code, content=problem.model_dump(exclude_none=True))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    language = request_language(request, _default_language(request))
    detail_parts = []
    error_list = []
    for err in exc.errors():
        loc = " -> ".join(str(part) for part in err["loc"] if part != "body")
        msg = err["msg"]
        detail_parts.append(f"{loc}: {msg}")
        error_list.append({"field": loc, "message": msg, "type": err["type"]})

    problem = ProblemDetail(
        type="urn:signchain:error:validation",
        title=localized_message("validation_error", language),
        status=422,
        detail="; ".join(detail_parts),
        instance=str(request.url),
        errors=error_list,
    )
    return JSONResponse(status_code=422, content=problem.model_dump(exclude_none=True))
