"""
Bulk consultation batch model.
"""
from sqlalchemy import Column, String, Text, DateTime, Integer
from datetime import datetime
from app.database import Base


class BatchStatus:
    PROCESSING = "processing"
    FINISHED = "finished"
    ERROR = "error"

    TERMINAL = (FINISHED, ERROR)


class BatchModel(Base):
    """One spreadsheet upload and its result file."""
    __tablename__ = "batches"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)

    name = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    provider = Column(String, nullable=False)

    status = Column(String, nullable=False, default=BatchStatus.PROCESSING)  # processing, finished, error
    item_count = Column(Integer)
    result_location = Column(String)  # storage key of the result spreadsheet
    error_message = Column(Text)

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    finished_at = Column(DateTime)
