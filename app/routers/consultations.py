"""
Single consultation and provider webhook endpoints.

POST /api/consultations                  : consult one document (blocks until callback or timeout)
GET  /api/consultations/{documentNumber} : current correlation entry
POST /api/webhook                        : provider callback
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from app.auth import CurrentUser, get_current_user
from app.consultation.correlation_store import CorrelationStore
from app.consultation.flow import ConsultationFlow
from app.consultation.webhook import WebhookReceiver
from app.dependencies import get_consultation_flow, get_correlation_store, get_webhook_receiver
from app.errors import NotFoundError
from app.schemas import ConsultationEntryResponse, ConsultationRequest, WebhookAck

logger = logging.getLogger(__name__)
router = APIRouter()


# ── POST /api/consultations ──────────────────────────────────────────────
@router.post("/consultations")
async def consult(
    req: ConsultationRequest,
    flow: ConsultationFlow = Depends(get_consultation_flow),
    user: CurrentUser = Depends(get_current_user),
):
    logger.info("Consultation requested by %s: %s / %s", user.id, req.document_number, req.provider)
    outcome = await flow.run(req.document_number, req.provider)
    return outcome.to_response()


# ── GET /api/consultations/{document_number} ─────────────────────────────
@router.get("/consultations/{document_number}", response_model=ConsultationEntryResponse)
def consultation_status(
    document_number: str,
    store: CorrelationStore = Depends(get_correlation_store),
    _: CurrentUser = Depends(get_current_user),
):
    entry = store.get(document_number.strip())
    if entry is None:
        raise NotFoundError("Consulta não encontrada")
    return ConsultationEntryResponse(
        document_number=document_number.strip(), status=entry.status, result=entry.result
    )


# ── POST /api/webhook ────────────────────────────────────────────────────
@router.post("/webhook", response_model=WebhookAck)
async def webhook(
    request: Request,
    receiver: WebhookReceiver = Depends(get_webhook_receiver),
):
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    receiver.on_callback(payload)
    return WebhookAck(received=True)
