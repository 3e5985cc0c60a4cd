"""
Bulk consultation endpoints.

POST /api/batches                : upload spreadsheet, 202 with the batch id
GET  /api/batches                : list batches, newest first
GET  /api/batches/{id}           : batch status
GET  /api/batches/{id}/download  : result spreadsheet
"""
from __future__ import annotations

import logging
import re
import unicodedata
import uuid
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from app.auth import CurrentUser, get_current_user
from app.consultation.batch import BatchProcessor
from app.consultation.provider_client import ProviderClient
from app.consultation.spreadsheet import XLSX_MEDIA_TYPE
from app.database import get_db
from app.dependencies import get_batch_processor, get_provider_client, get_result_storage
from app.errors import NotFoundError
from app.models.batch import BatchModel, BatchStatus
from app.schemas import BatchAccepted, BatchResponse
from app.storage import ResultStorage

logger = logging.getLogger(__name__)
router = APIRouter()


def transform_batch(model: BatchModel) -> BatchResponse:
    return BatchResponse(
        id=model.id,
        name=model.name,
        file_name=model.file_name,
        provider=model.provider,
        status=model.status,
        item_count=model.item_count,
        started_at=model.started_at,
        finished_at=model.finished_at,
        result_location=model.result_location if model.status == BatchStatus.FINISHED else None,
        error_message=model.error_message,
    )


def get_owned_batch(db: Session, batch_id: str, user: CurrentUser) -> BatchModel:
    batch = db.query(BatchModel).filter(BatchModel.id == batch_id).first()
    if batch is None:
        raise NotFoundError("Lote não encontrado.")
    if batch.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied: batch belongs to another user")
    return batch


def result_filename(file_name: str) -> str:
    return re.sub(r"\.[^.]+$", "", file_name) + "_resultado.xlsx"


def content_disposition(filename: str) -> str:
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = fallback.replace('"', "") or "resultado.xlsx"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


# ── POST /api/batches ────────────────────────────────────────────────────
@router.post("/batches", response_model=BatchAccepted, status_code=202)
def upload_batch(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(default=None),
    provider: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    client: ProviderClient = Depends(get_provider_client),
    processor: BatchProcessor = Depends(get_batch_processor),
    user: CurrentUser = Depends(get_current_user),
):
    if file is None:
        raise HTTPException(status_code=400, detail="Nenhum arquivo enviado.")
    provider = client.validate_provider(provider)

    contents = file.file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Nenhum arquivo enviado.")

    file_name = file.filename or "arquivo_excel"
    batch_id = str(uuid.uuid4())
    batch = BatchModel(
        id=batch_id,
        user_id=user.id,
        name=file.filename or f"Lote de Consulta - {datetime.utcnow():%d/%m/%Y %H:%M:%S}",
        file_name=file_name,
        provider=provider,
        status=BatchStatus.PROCESSING,
        started_at=datetime.utcnow(),
    )
    db.add(batch)
    db.commit()
    logger.info("Batch %s accepted: %s (%d bytes) by %s", batch_id, file_name, len(contents), user.id)

    background_tasks.add_task(processor.process, batch_id, contents, provider, user.id)
    return BatchAccepted(batch_id=batch_id)


# ── GET /api/batches ─────────────────────────────────────────────────────
@router.get("/batches", response_model=List[BatchResponse])
def list_batches(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    query = db.query(BatchModel)
    if not user.is_admin:
        query = query.filter(BatchModel.user_id == user.id)
    batches = query.order_by(BatchModel.started_at.desc()).all()
    return [transform_batch(b) for b in batches]


# ── GET /api/batches/{batch_id} ──────────────────────────────────────────
@router.get("/batches/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return transform_batch(get_owned_batch(db, batch_id, user))


# ── GET /api/batches/{batch_id}/download ─────────────────────────────────
@router.get("/batches/{batch_id}/download")
def download_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    storage: ResultStorage = Depends(get_result_storage),
    user: CurrentUser = Depends(get_current_user),
):
    batch = get_owned_batch(db, batch_id, user)
    if batch.status != BatchStatus.FINISHED or not batch.result_location:
        raise NotFoundError("Lote não encontrado ou não finalizado")

    data = storage.load(batch.result_location)
    return Response(
        content=data,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(result_filename(batch.file_name))},
    )
