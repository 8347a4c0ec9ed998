"""
Generated documents API: create, fetch, download, delete, list per thread, sweep.
"""
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

import storage
from db.session import get_db
from docgen.errors import ConfigurationError, RendererUnavailableError, SizeLimitError, ValidationError
from docgen.generator import (
    DocumentGenerator,
    cleanup_expired_documents,
    create_document_generator,
    delete_document,
    get_document,
    get_thread_documents,
    increment_download_count,
)
from models import CONTENT_TYPES, GenerateDocumentOptions, GeneratedDocument

router = APIRouter(prefix="/api", tags=["documents"])

_LOG = logging.getLogger("uvicorn.error")


def get_generator(db: Session = Depends(get_db)) -> DocumentGenerator:
    return create_document_generator(db=db)


@router.post("/documents", response_model=GeneratedDocument)
def create_document(
    body: GenerateDocumentOptions,
    generator: DocumentGenerator = Depends(get_generator),
) -> GeneratedDocument:
    try:
        return generator.generate(body)
    except (ConfigurationError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SizeLimitError as e:
        raise HTTPException(status_code=413, detail=str(e)) from e
    except RendererUnavailableError as e:
        _LOG.warning("DOCGEN_RENDERER_UNAVAILABLE format=%s err=%s", body.format.value, e)
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.get("/documents/{doc_id}", response_model=GeneratedDocument)
def read_document(doc_id: int, db: Session = Depends(get_db)) -> GeneratedDocument:
    doc = get_document(db, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


@router.get("/documents/{doc_id}/download")
def download_document(doc_id: int, db: Session = Depends(get_db)) -> Response:
    doc = get_document(db, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")
    if doc.expires_at is not None and doc.expires_at < datetime.utcnow():
        raise HTTPException(status_code=410, detail="Document has expired")
    data = storage.read_output(doc.filepath)
    if data is None:
        raise HTTPException(status_code=404, detail="Document file not found")
    increment_download_count(db, doc_id)
    return Response(
        content=data,
        media_type=CONTENT_TYPES.get(doc.file_type.value, "application/octet-stream"),
        headers={
            "Content-Disposition": f'attachment; filename="{doc.filename}"',
            "Content-Length": str(len(data)),
        },
    )


@router.delete("/documents/{doc_id}")
def remove_document(doc_id: int, db: Session = Depends(get_db)) -> dict:
    return {"deleted": delete_document(db, doc_id)}


@router.get("/threads/{thread_id}/documents", response_model=list[GeneratedDocument])
def list_thread_documents(thread_id: str, db: Session = Depends(get_db)) -> list[GeneratedDocument]:
    return get_thread_documents(db, thread_id)


@router.post("/documents/cleanup")
def cleanup_documents(db: Session = Depends(get_db)) -> dict:
    deleted = cleanup_expired_documents(db)
    _LOG.info("DOCGEN_CLEANUP deleted=%s", deleted)
    return {"deleted": deleted}
