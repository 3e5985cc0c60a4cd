"""
Provider callback handling.
"""
from __future__ import annotations

import logging
from typing import Any

from app.consultation.correlation_store import CorrelationStore

logger = logging.getLogger(__name__)


def normalize_document_number(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class WebhookReceiver:
    def __init__(self, store: CorrelationStore):
        self._store = store

    def on_callback(self, payload: Any) -> bool:
        """Resolve the pending consultation named in ``payload``.

        Returns whether a pending entry matched. Never raises for malformed
        payloads; the endpoint acknowledges every callback the same way.
        """
        if not isinstance(payload, dict):
            logger.warning("Webhook with non-object payload ignored: %r", payload)
            return False

        rest = dict(payload)
        raw = rest.pop("documentNumber", None)
        document_number = normalize_document_number(raw)
        logger.info("Webhook received: raw=%r normalized=%s", raw, document_number)

        if not document_number:
            logger.warning("Webhook without documentNumber: %s", payload)
            return False
        return self._store.resolve(document_number, rest)
