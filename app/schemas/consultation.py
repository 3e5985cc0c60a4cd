"""
Single consultation request/response schemas.

Wire names are camelCase to match the balance provider and the web client.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConsultationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional at the schema level so a missing value maps to our own 400
    document_number: Optional[str] = Field(default=None, alias="documentNumber")
    provider: Optional[str] = None


class ConsultationResponse(BaseModel):
    """Successful balance lookup."""
    model_config = ConfigDict(populate_by_name=True)

    document_number: str = Field(..., alias="documentNumber")
    provider: str
    balance: Any


class ConsultationEntryResponse(BaseModel):
    """Current correlation state for a document."""
    model_config = ConfigDict(populate_by_name=True)

    document_number: str = Field(..., alias="documentNumber")
    status: str = Field(..., description="pending | finished")
    result: Optional[dict[str, Any]] = None


class WebhookAck(BaseModel):
    received: bool = True
