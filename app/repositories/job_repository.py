"""
OCR job repository (SQLAlchemy)
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from app.models import OcrJob, JobStatus


class JobRepository:
    """
    OcrJob persistence
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def _commit(self, job: OcrJob) -> OcrJob:
        self.db.commit()
        self.db.refresh(job)
        return job

    def save(self, job: OcrJob) -> OcrJob:
        self.db.add(job)
        return self._commit(job)

    def find_by_id(self, job_id: str) -> Optional[OcrJob]:
        return self.db.query(OcrJob).filter(OcrJob.id == job_id).first()

    def find_all(self) -> List[OcrJob]:
        return self.db.query(OcrJob).order_by(OcrJob.created_at.desc()).all()

    def find_by_status(self, status: JobStatus) -> List[OcrJob]:
        return (
            self.db.query(OcrJob)
            .filter(OcrJob.status == status.value)
            .order_by(OcrJob.created_at.desc())
            .all()
        )

    def delete(self, job_id: str) -> bool:
        job = self.find_by_id(job_id)
        if job:
            self.db.delete(job)
            self.db.commit()
            return True
        return False

    def update_status(self, job_id: str, status: JobStatus) -> Optional[OcrJob]:
        """
        Transitions:
        - pending -> processing
        - processing -> completed
        - processing -> failed
        """
        job = self.find_by_id(job_id)
        if job:
            job.status = status.value
            self._commit(job)
        return job

    def update_progress(self, job_id: str, processed_items: int) -> Optional[OcrJob]:
        job = self.find_by_id(job_id)
        if job:
            job.processed_items = processed_items
            self._commit(job)
        return job

    def save_result(self, job_id: str, result: list) -> Optional[OcrJob]:
        job = self.find_by_id(job_id)
        if job:
            job.result = result
            job.processed_items = len(result)
            job.status = JobStatus.COMPLETED.value
            self._commit(job)
        return job

    def record_error(self, job_id: str, error: str) -> Optional[OcrJob]:
        job = self.find_by_id(job_id)
        if job:
            job.error = error
            job.status = JobStatus.FAILED.value
            self._commit(job)
        return job
