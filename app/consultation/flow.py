"""
Single-document consultation: dispatch, then poll the correlation store
until the provider's callback lands or the poll ceiling is reached.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from app.consultation.correlation_store import CorrelationStore, ConsultationEntry
from app.consultation.provider_client import ProviderClient
from app.errors import MissingDocumentNumberError

logger = logging.getLogger(__name__)

NO_RESPONSE = "Sem resposta"


class OutcomeStatus:
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class ConsultationOutcome:
    status: str
    document_number: str
    provider: str
    balance: Any = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED

    def to_response(self) -> dict[str, Any]:
        if self.succeeded:
            return {
                "documentNumber": self.document_number,
                "provider": self.provider,
                "balance": self.balance,
            }
        return {"error": self.error}


def has_balance(result: Optional[dict[str, Any]]) -> bool:
    if not result:
        return False
    balance = result.get("balance")
    return balance is not None and balance != ""


def outcome_from_entry(
    entry: Optional[ConsultationEntry], document_number: str, provider: str
) -> ConsultationOutcome:
    if entry is None or not entry.is_finished:
        return ConsultationOutcome(
            OutcomeStatus.TIMED_OUT, document_number, provider, error=NO_RESPONSE
        )
    result = entry.result or {}
    if has_balance(result):
        return ConsultationOutcome(
            OutcomeStatus.SUCCEEDED, document_number, provider, balance=result["balance"]
        )
    message = result.get("errorMessage") or result.get("error") or NO_RESPONSE
    return ConsultationOutcome(OutcomeStatus.FAILED, document_number, provider, error=str(message))


class ConsultationFlow:
    def __init__(
        self,
        store: CorrelationStore,
        client: ProviderClient,
        poll_interval: float = 1.0,
        max_attempts: int = 20,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._store = store
        self._client = client
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def run(self, document_number: Optional[str], provider: Optional[str]) -> ConsultationOutcome:
        """Consult one document.

        Provider-reported failures and timeouts come back as outcomes;
        validation, token and dispatch errors are raised.
        """
        document_number = (document_number or "").strip()
        if not document_number:
            raise MissingDocumentNumberError()
        provider = self._client.validate_provider(provider)

        self._store.mark_pending(document_number)
        await self._client.send_consultation(document_number, provider)

        entry = None
        for _ in range(self._max_attempts):
            await self._sleep(self._poll_interval)
            entry = self._store.get(document_number)
            if entry is not None and entry.is_finished:
                break

        outcome = outcome_from_entry(entry, document_number, provider)
        if outcome.status == OutcomeStatus.TIMED_OUT:
            logger.warning(
                "No callback for %s after %d polls", document_number, self._max_attempts
            )
        else:
            logger.info("Consultation %s finished: %s", document_number, outcome.status)
        return outcome
