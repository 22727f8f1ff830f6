"""
Services package
"""

from .job_service import JobService
from .ocr_run_service import OcrRunService

__all__ = ["JobService", "OcrRunService"]
