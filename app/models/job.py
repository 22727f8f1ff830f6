"""
OCR job model (SQLAlchemy ORM)

- JobStatus: pending | processing | completed | failed
- Transitions: pending -> processing -> (completed | failed)
"""

from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import Boolean, Column, Integer, String, DateTime, JSON, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Job status"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class OcrJob(Base):
    """
    One batch of documents sent through the OCR pipeline

    Tracks parameters, per-item outputs and the overall status.
    """
    __tablename__ = "ocr_jobs"

    id = Column(String, primary_key=True, index=True)  # UUID

    operation = Column(String, nullable=False)
    file_names = Column(JSON, nullable=False, default=list)
    params = Column(JSON, nullable=False, default=dict)
    continue_on_fail = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=JobStatus.PENDING.value, nullable=False)

    # Progress
    total_items = Column(Integer, default=0)
    processed_items = Column(Integer, default=0)

    # Per-item outputs: [{"json": {...}, "pairedItem": {"item": i}}]
    result = Column(JSON, nullable=True)

    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<OcrJob(id={self.id}, status={self.status}, items={self.processed_items}/{self.total_items})>"

    def to_dict(self):
        """Dict for API responses"""
        return {
            "job_id": self.id,
            "operation": self.operation,
            "file_names": self.file_names,
            "status": self.status,
            "progress": {
                "processed_items": self.processed_items,
                "total_items": self.total_items,
            },
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
