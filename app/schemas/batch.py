"""
Batch schemas.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BatchItemResult(BaseModel):
    """One output row. Exactly one of ``balance`` / ``error_message`` is set."""
    model_config = ConfigDict(populate_by_name=True)

    document_number: str = Field(..., alias="documentNumber")
    provider: str
    balance: Any = None
    error_message: Optional[str] = Field(default=None, alias="errorMessage")


class BatchAccepted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Processamento do lote iniciado."
    batch_id: str = Field(..., alias="loteId")


class BatchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    file_name: str = Field(..., alias="fileName")
    provider: str
    status: str = Field(..., description="processing | finished | error")
    item_count: Optional[int] = Field(default=None, alias="itemCount")
    started_at: datetime = Field(..., alias="startedAt")
    finished_at: Optional[datetime] = Field(default=None, alias="finishedAt")
    result_location: Optional[str] = Field(default=None, alias="resultLocation")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
