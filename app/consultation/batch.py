"""
Bulk consultation.

The upload endpoint creates the batch row and returns; ``BatchProcessor.process``
then runs as a background task: parse the spreadsheet, consult each document
in file order (one at a time), write the result spreadsheet and record the
terminal status.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.consultation.flow import ConsultationFlow
from app.consultation.spreadsheet import build_result_workbook, extract_document_numbers
from app.errors import PortalError, StorageError
from app.models.batch import BatchModel, BatchStatus
from app.schemas.batch import BatchItemResult
from app.storage import ResultStorage, result_key

logger = logging.getLogger(__name__)

RECORD_FAILED = "Erro ao registrar o resultado do lote."


class BatchProcessor:
    def __init__(
        self,
        flow: ConsultationFlow,
        storage: ResultStorage,
        session_factory: Callable[[], Session],
    ):
        self._flow = flow
        self._storage = storage
        self._session_factory = session_factory

    async def consult_one(self, document_number: str, provider: str) -> BatchItemResult:
        """Consult one document; every failure becomes the row's error message."""
        try:
            outcome = await self._flow.run(document_number, provider)
        except PortalError as exc:
            logger.warning("Batch item %s failed: %s", document_number, exc.message)
            return BatchItemResult(
                document_number=document_number, provider=provider, error_message=exc.message
            )
        except Exception as exc:  # one bad item must not abort the batch
            logger.exception("Batch item %s crashed", document_number)
            return BatchItemResult(
                document_number=document_number,
                provider=provider,
                error_message=str(exc) or exc.__class__.__name__,
            )

        if outcome.succeeded:
            return BatchItemResult(
                document_number=document_number, provider=provider, balance=outcome.balance
            )
        return BatchItemResult(
            document_number=document_number, provider=provider, error_message=outcome.error
        )

    async def consult_all(self, document_numbers: list[str], provider: str) -> list[BatchItemResult]:
        results = []
        for index, number in enumerate(document_numbers, start=1):
            logger.info("Batch item %d/%d: %s", index, len(document_numbers), number)
            results.append(await self.consult_one(number, provider))
        return results

    def _finish(
        self,
        batch_id: str,
        status: str,
        result_location: Optional[str] = None,
        item_count: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> None:
        db = self._session_factory()
        recorded = False
        try:
            batch = db.query(BatchModel).filter(BatchModel.id == batch_id).first()
            if batch is None:
                logger.error("Batch %s vanished before completion", batch_id)
                return
            if batch.status in BatchStatus.TERMINAL:
                logger.warning("Batch %s already %s, ignoring %s", batch_id, batch.status, status)
                return
            batch.status = status
            batch.finished_at = datetime.utcnow()
            batch.result_location = result_location
            batch.item_count = item_count
            batch.error_message = error_message
            db.commit()
            recorded = True
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Batch %s: could not record status %s", batch_id, status)
            if status == BatchStatus.ERROR:
                raise
        finally:
            db.close()
        if not recorded:
            self._finish(batch_id, BatchStatus.ERROR, error_message=RECORD_FAILED)
            return
        logger.info("Batch %s -> %s", batch_id, status)

    async def process(self, batch_id: str, data: bytes, provider: str, user_id: str) -> None:
        logger.info("Batch %s started (provider=%s)", batch_id, provider)
        try:
            document_numbers = extract_document_numbers(data)
        except Exception as exc:  # openpyxl raises several unrelated types for bad files
            logger.error("Batch %s: unreadable spreadsheet: %s", batch_id, exc)
            self._finish(batch_id, BatchStatus.ERROR, error_message="Arquivo inválido ou corrompido.")
            return

        if not document_numbers:
            self._finish(
                batch_id,
                BatchStatus.ERROR,
                item_count=0,
                error_message="Nenhum número de documento encontrado no arquivo.",
            )
            return

        results = await self.consult_all(document_numbers, provider)

        try:
            workbook = build_result_workbook(results)
            location = self._storage.save(result_key(user_id, batch_id), workbook)
        except StorageError as exc:
            self._finish(batch_id, BatchStatus.ERROR, item_count=len(results), error_message=exc.message)
            return
        except Exception:  # any failure here still ends the batch
            logger.exception("Batch %s: result file could not be produced", batch_id)
            self._finish(
                batch_id,
                BatchStatus.ERROR,
                item_count=len(results),
                error_message="Erro ao gerar o arquivo de resultado.",
            )
            return

        self._finish(
            batch_id, BatchStatus.FINISHED, result_location=location, item_count=len(results)
        )
