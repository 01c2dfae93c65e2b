# ──────────────────────────────────────────────────────────────────────────────
# File: routes/documents.py
# Purpose: Per-category document listing and upload.
#
# Endpoints:
#   • GET  /api/documents/{category}   → [{id,name,path,size}]
#   • POST /api/upload/{category}      multipart field "document" → 201
#
# Guarantees
#   • Category is resolved BEFORE any upstream call; unknown → 400.
#   • Both endpoints call the Remote Document Service directly; the Document
#     Index is neither read nor written here.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from pathlib import PureWindowsPath
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from core.logging import log_event
from services.container import Components, get_components
from services.errors import InvalidInput
from services.graph_client import RESERVED_NAMES
from services.request_models import DocumentOut, ErrorOut, UploadedFileOut, UploadResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["documents"])

_ERRORS = {400: {"model": ErrorOut}, 500: {"model": ErrorOut}}


@router.get("/documents/{category}", response_model=List[DocumentOut], responses=_ERRORS)
async def list_documents(category: str, components: Components = Depends(get_components)):
    folder = components.registry.resolve(category)
    items = await components.documents.list_children(folder)
    return [
        DocumentOut(id=i.id or None, name=i.name, path=i.download_url or i.link or None, size=i.size)
        for i in items
    ]


@router.post("/upload/{category}", status_code=201, response_model=UploadResponse,
             responses={**_ERRORS, 409: {"model": ErrorOut}})
async def upload_document(
    category: str,
    document: Optional[UploadFile] = File(None),
    components: Components = Depends(get_components),
):
    if document is None or not document.filename:
        raise InvalidInput("upload without file", public_message="No file was uploaded.")
    folder = components.registry.resolve(category)
    # some browsers send a full client path; keep the base name only
    filename = PureWindowsPath(document.filename).name
    if not filename.strip() or filename in RESERVED_NAMES:
        raise InvalidInput(f"invalid upload filename {document.filename!r}", public_message="Invalid file name.")

    content = await document.read()
    logger.info("upload category=%s filename=%s bytes=%s", category, filename, len(content))
    uploaded = await components.documents.upload(folder, filename, content, document.content_type)
    log_event("document_uploaded", {"category": category.lower(), "name": uploaded.name, "size": uploaded.size})

    body = UploadResponse(
        message="File uploaded successfully.",
        file=UploadedFileOut(name=uploaded.name, path=uploaded.link or None, size=uploaded.size),
    )
    return JSONResponse(status_code=201, content=body.model_dump())
