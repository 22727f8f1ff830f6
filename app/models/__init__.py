"""
Models package
"""

from .job import Base, JobStatus, OcrJob

__all__ = ["Base", "JobStatus", "OcrJob"]
