"""
Job service (OCR job management)
"""

import uuid
from typing import Any, Dict, List, Optional
from app.models import OcrJob, JobStatus
from app.repositories import JobRepository


class JobService:
    """
    OCR job management

    - create / get / delete jobs
    - status transitions (pending -> processing -> completed | failed)
    - progress tracking
    """

    def __init__(self, repository: JobRepository):
        self.repo = repository

    def create_job(
        self,
        operation: str,
        file_names: List[str],
        params: Dict[str, Any],
        continue_on_fail: bool = False,
    ) -> OcrJob:
        job = OcrJob(
            id=str(uuid.uuid4()),
            operation=operation,
            file_names=list(file_names),
            params=dict(params),
            continue_on_fail=continue_on_fail,
            status=JobStatus.PENDING.value,
            total_items=len(file_names),
            processed_items=0,
        )
        return self.repo.save(job)

    def get_job(self, job_id: str) -> Optional[OcrJob]:
        return self.repo.find_by_id(job_id)

    def get_all_jobs(self) -> List[OcrJob]:
        return self.repo.find_all()

    def delete_job(self, job_id: str) -> bool:
        return self.repo.delete(job_id)

    def update_status(self, job_id: str, status: JobStatus) -> Optional[OcrJob]:
        return self.repo.update_status(job_id, status)

    def update_progress(self, job_id: str, processed_items: int) -> Optional[OcrJob]:
        return self.repo.update_progress(job_id, processed_items)

    def save_result(self, job_id: str, outputs: List[Dict[str, Any]]) -> Optional[OcrJob]:
        """Store per-item outputs and mark the job completed"""
        return self.repo.save_result(job_id, outputs)

    def record_error(self, job_id: str, error: str) -> Optional[OcrJob]:
        return self.repo.record_error(job_id, error)

    def get_jobs_by_status(self, status: JobStatus) -> List[OcrJob]:
        return self.repo.find_by_status(status)
