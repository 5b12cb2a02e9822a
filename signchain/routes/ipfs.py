from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from signchain.backends import Backends, get_backends
from signchain.schemas import UploadResponse
from signchain.utils import safe_pdf_filename

router = APIRouter(prefix="/ipfs", tags=["ipfs"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@router.post("/upload", response_model=UploadResponse)
async def upload(
    request: Request,
    filename: str = "contract.pdf",
    backends: Backends = Depends(get_backends),
) -> UploadResponse:
    """
    Pin an already rendered PDF (raw request body) and return its ipfs:// URI.
    """
    content = await request.body()
    if not content:
        raise HTTPException(status_code=400, detail="Request body is empty.")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="PDF is larger than 10 MB.")

    cid = await run_in_threadpool(
        backends.storage.upload, content, safe_pdf_filename(filename, "contract.pdf")
    )
    return UploadResponse(cid=cid)
