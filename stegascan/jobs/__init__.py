"""
Job tracking and the scan service surfaces.
"""

from stegascan.jobs.job_store import InMemoryJobStore, JobRecord, JobStatus, JobStore
from stegascan.jobs.service import ScanService

__all__ = ["InMemoryJobStore", "JobRecord", "JobStatus", "JobStore", "ScanService"]
