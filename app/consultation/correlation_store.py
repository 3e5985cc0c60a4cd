"""
Correlation between outbound consultations and provider callbacks.

Entries are keyed by document number. A new submission for the same document
replaces the previous entry, so only the latest submission can be resolved.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ConsultationStatus:
    PENDING = "pending"
    FINISHED = "finished"


@dataclass
class ConsultationEntry:
    status: str
    result: Optional[dict[str, Any]] = None
    updated_at: float = field(default_factory=time.time)

    @property
    def is_finished(self) -> bool:
        return self.status == ConsultationStatus.FINISHED


class CorrelationStore(ABC):
    """Storage seam for correlation state so flows can run against any backend."""

    @abstractmethod
    def mark_pending(self, document_number: str) -> None:
        ...

    @abstractmethod
    def resolve(self, document_number: str, result: dict[str, Any]) -> bool:
        """Finish the entry for ``document_number``. Returns False when nothing matched."""

    @abstractmethod
    def get(self, document_number: str) -> Optional[ConsultationEntry]:
        ...


class InMemoryCorrelationStore(CorrelationStore):
    """Lock-guarded dict with time-based eviction."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.time):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, ConsultationEntry] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: ConsultationEntry, now: float) -> bool:
        return now - entry.updated_at > self._ttl

    def _purge(self, now: float) -> None:
        stale = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Evicted %d expired consultation entries", len(stale))

    def mark_pending(self, document_number: str) -> None:
        now = self._clock()
        with self._lock:
            self._purge(now)
            self._entries[document_number] = ConsultationEntry(
                status=ConsultationStatus.PENDING, updated_at=now
            )

    def resolve(self, document_number: str, result: dict[str, Any]) -> bool:
        now = self._clock()
        with self._lock:
            self._purge(now)
            if document_number not in self._entries:
                logger.info("Callback for unknown document dropped: %s", document_number)
                return False
            self._entries[document_number] = ConsultationEntry(
                status=ConsultationStatus.FINISHED, result=dict(result), updated_at=now
            )
        logger.info("Callback matched document: %s", document_number)
        return True

    def get(self, document_number: str) -> Optional[ConsultationEntry]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(document_number)
            if entry is None or self._expired(entry, now):
                return None
            return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
