"""
OCR run service

Runs a job's items through MistralOcrOrchestrator and records the outcome.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.models import JobStatus
from app.repositories import JobRepository
from app.services.job_service import JobService
from mistral_ocr.context import AuthenticatedCall, LocalExecutionContext, discard_stored_binaries
from mistral_ocr.errors import OcrAdapterError
from mistral_ocr.logging import get_logger
from mistral_ocr.orchestrator import MistralOcrOrchestrator
from mistral_ocr.types import OutputItem, WorkItem

logger = get_logger(__name__)


class OcrRunService:
    """
    Background execution of OCR jobs

    Opens its own session: the request-scoped session is closed by the
    time a background task runs.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        caller: AuthenticatedCall,
        storage_dir: Optional[Path] = None,
        orchestrator_factory: Callable[..., MistralOcrOrchestrator] = MistralOcrOrchestrator,
    ):
        self.session_factory = session_factory
        self.caller = caller
        self.storage_dir = storage_dir
        self.orchestrator_factory = orchestrator_factory

    async def execute_job(self, job_id: str, items: Sequence[WorkItem]) -> List[OutputItem]:
        """
        1. pending -> processing
        2. run the orchestrator over all items
        3. store outputs (completed) or the error (failed)
        4. delete uploads kept on disk for this job
        """
        db = self.session_factory()
        job_service = JobService(JobRepository(db))
        outputs: List[OutputItem] = []
        try:
            job = job_service.get_job(job_id)
            if job is None:
                logger.warning(f"[{job_id}] Job disappeared before execution")
                return outputs

            job_service.update_status(job_id, JobStatus.PROCESSING)
            context = LocalExecutionContext(
                items,
                job.params,
                self.caller,
                storage_dir=self.storage_dir,
                continue_on_fail=job.continue_on_fail,
            )
            orchestrator = self.orchestrator_factory(context)

            def on_item_done(index: int, output: OutputItem) -> None:
                job_service.update_progress(job_id, index + 1)

            outputs = await orchestrator.execute(on_item_done=on_item_done)
            job_service.save_result(job_id, [output.to_dict() for output in outputs])
            logger.info(f"[{job_id}] Completed: {len(outputs)} item(s)")

        except OcrAdapterError as e:
            position = f" (item {e.item_index})" if e.item_index is not None else ""
            self.on_failure(job_service, job_id, f"{e.message}{position}")
        except Exception as e:
            logger.exception(f"[{job_id}] Unexpected failure")
            self.on_failure(job_service, job_id, f"{type(e).__name__}: {e}")
        finally:
            db.close()
            removed = discard_stored_binaries(self.storage_dir, items)
            if removed:
                logger.info(f"[{job_id}] Removed {removed} stored upload(s)")

        return outputs

    def on_failure(self, job_service: JobService, job_id: str, error: str):
        job_service.record_error(job_id, error)
        logger.error(f"[{job_id}] Failed: {error}")
