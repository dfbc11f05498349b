"""
Job records for asynchronous scans.

A record is immutable. Every transition builds a new record and swaps it in
under the store's lock, so a poller always sees a complete snapshot.
"""
import threading
import uuid
from collections import OrderedDict
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from stegascan import config
from stegascan.core.errors import JobNotFoundError, JobStateError


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Allowed source states per target state
_TRANSITIONS = {
    JobStatus.PROCESSING: (JobStatus.PENDING,),
    JobStatus.COMPLETED: (JobStatus.PROCESSING,),
    JobStatus.FAILED: (JobStatus.PENDING, JobStatus.PROCESSING),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class JobRecord:
    analysis_id: str
    status: JobStatus
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class JobStore(ABC):
    """Storage for job records, keyed by analysis id."""

    @abstractmethod
    def create(self) -> JobRecord:
        """Create a new pending record with a fresh id."""

    @abstractmethod
    def get(self, analysis_id: str) -> JobRecord:
        """
        Get the current record for an id.

        Raises:
            JobNotFoundError: If the id is unknown
        """

    @abstractmethod
    def mark_processing(self, analysis_id: str) -> JobRecord:
        """Move a pending record to processing."""

    @abstractmethod
    def complete(self, analysis_id: str, result: Dict[str, Any]) -> JobRecord:
        """Move a processing record to completed with its result document."""

    @abstractmethod
    def fail(self, analysis_id: str, error: str) -> JobRecord:
        """Move a pending or processing record to failed."""


class InMemoryJobStore(JobStore):
    """
    Thread-safe job store that lives for the lifetime of the process.

    Pending and processing jobs are always kept. Once more than
    ``max_finished`` jobs have reached a terminal state, the oldest finished
    records are evicted and polling them raises JobNotFoundError.
    """

    def __init__(self, max_finished: Optional[int] = None) -> None:
        """
        Initialize the store.

        Args:
            max_finished: Finished records to retain (default from config)
        """
        if max_finished is None:
            max_finished = config.SERVICE["max_finished_jobs"]
        self.max_finished = max(1, int(max_finished))
        self._records: Dict[str, JobRecord] = {}
        self._finished: "OrderedDict[str, None]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def create(self) -> JobRecord:
        timestamp = _now()
        record = JobRecord(
            analysis_id=str(uuid.uuid4()),
            status=JobStatus.PENDING,
            created_at=timestamp,
            updated_at=timestamp,
        )
        with self._lock:
            self._records[record.analysis_id] = record
        return record

    def get(self, analysis_id: str) -> JobRecord:
        with self._lock:
            try:
                return self._records[analysis_id]
            except KeyError:
                raise JobNotFoundError(analysis_id) from None

    def mark_processing(self, analysis_id: str) -> JobRecord:
        return self._transition(analysis_id, JobStatus.PROCESSING)

    def complete(self, analysis_id: str, result: Dict[str, Any]) -> JobRecord:
        return self._transition(analysis_id, JobStatus.COMPLETED, result=result)

    def fail(self, analysis_id: str, error: str) -> JobRecord:
        return self._transition(analysis_id, JobStatus.FAILED, error=error)

    def _transition(self, analysis_id: str, status: JobStatus, **changes: Any) -> JobRecord:
        with self._lock:
            current = self._records.get(analysis_id)
            if current is None:
                raise JobNotFoundError(analysis_id)
            if current.status not in _TRANSITIONS[status]:
                raise JobStateError(
                    f"Job {analysis_id} cannot move from {current.status.value} to {status.value}"
                )
            record = replace(current, status=status, updated_at=_now(), **changes)
            self._records[analysis_id] = record
            if status.is_terminal:
                self._finished[analysis_id] = None
                self._evict()
            return record

    def _evict(self) -> None:
        # Caller holds the lock
        while len(self._finished) > self.max_finished:
            analysis_id, _ = self._finished.popitem(last=False)
            del self._records[analysis_id]
