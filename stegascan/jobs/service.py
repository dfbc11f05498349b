"""
Synchronous and asynchronous scan surfaces over the stateless engine.

``scan`` runs the engine in the caller's thread. ``submit`` records a job,
schedules the scan on a bounded worker pool and returns at once; ``poll``
reads the job's current snapshot.
"""
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Set

from stegascan import config, engine
from stegascan.core.errors import AnalysisError, InputError
from stegascan.jobs.job_store import InMemoryJobStore, JobStatus, JobStore

logger = logging.getLogger("stegascan.jobs.service")

INTERNAL_ERROR = "Internal error during analysis"


class ScanService:
    """
    Entry point for callers that scan uploaded files.

    The engine is called identically from both paths, so a job's result
    document equals what ``scan`` returns for the same bytes apart from the
    timestamp.
    """

    def __init__(
        self,
        store: Optional[JobStore] = None,
        max_workers: Optional[int] = None,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            store: Job store; an in-memory store is used if None
            max_workers: Concurrent scan limit (default from config)
            overrides: Per-section threshold overrides passed to every scan
        """
        self.overrides = overrides or {}
        settings = config.section("SERVICE", self.overrides.get("SERVICE"))
        self.store = store if store is not None else InMemoryJobStore(settings["max_finished_jobs"])
        self.max_workers = max(1, int(max_workers or settings["max_workers"]))
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="stegascan")
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()

    def __enter__(self) -> "ScanService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the worker pool, waiting for running scans."""
        self._executor.shutdown(wait=True)

    def validate_request(self, file_bytes: Optional[bytes], video_sample_rate: Any = None) -> int:
        """
        Check a request before any work is scheduled.

        Args:
            file_bytes: Uploaded file contents
            video_sample_rate: Requested video sampling stride, or None for the
                configured default

        Returns:
            The validated stride

        Raises:
            InputError: If the file is missing or empty, or the stride is invalid
        """
        if not file_bytes:
            raise InputError("No file provided")
        return engine.resolve_sample_rate(video_sample_rate, self.overrides)

    def scan(
        self,
        file_bytes: bytes,
        filename: Optional[str] = None,
        video_sample_rate: Any = None,
    ) -> Dict[str, Any]:
        """
        Scan a file and return its result document.

        Raises:
            InputError: Invalid request or oversized file
            AnalysisError: The engine could not produce a result
        """
        stride = self.validate_request(file_bytes, video_sample_rate)
        return engine.scan(file_bytes, filename, stride, self.overrides).to_dict()

    async def submit(
        self,
        file_bytes: bytes,
        filename: Optional[str] = None,
        video_sample_rate: Any = None,
        verbose: bool = False,
    ) -> Dict[str, str]:
        """
        Queue a file for scanning.

        Args:
            file_bytes: Uploaded file contents
            filename: Original filename
            video_sample_rate: Analyze every Nth video frame (default from config)
            verbose: Log the verdict of the finished job at INFO

        Returns:
            Dict with the new ``analysis_id`` and ``status`` "processing"

        Raises:
            InputError: If the request is invalid; no job is created
        """
        stride = self.validate_request(file_bytes, video_sample_rate)
        record = self.store.create()
        logger.info(f"Job {record.analysis_id} queued for {filename or '<buffer>'}")

        task = asyncio.create_task(
            self._run_job(record.analysis_id, bytes(file_bytes), filename, stride, verbose)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return {"analysis_id": record.analysis_id, "status": JobStatus.PROCESSING.value}

    async def poll(self, analysis_id: str) -> Dict[str, Any]:
        """
        Get the state of a submitted job.

        Returns:
            ``{"status": "processing"}``, ``{"status": "completed", "result": ...}``
            or ``{"status": "failed", "error": ...}``

        Raises:
            JobNotFoundError: If the id is unknown
        """
        record = self.store.get(analysis_id)
        if record.status is JobStatus.COMPLETED:
            return {"status": record.status.value, "result": record.result}
        if record.status is JobStatus.FAILED:
            return {"status": record.status.value, "error": record.error}
        return {"status": JobStatus.PROCESSING.value}

    async def drain(self) -> None:
        """Wait until every submitted job has reached a terminal state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _limiter(self) -> asyncio.Semaphore:
        # Semaphores belong to the loop they were first used on
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_workers)
            self._semaphore_loop = loop
        return self._semaphore

    async def _run_job(
        self,
        analysis_id: str,
        file_bytes: bytes,
        filename: Optional[str],
        stride: int,
        verbose: bool,
    ) -> None:
        async with self._limiter():
            self.store.mark_processing(analysis_id)
            logger.debug(f"Job {analysis_id} processing")
            loop = asyncio.get_running_loop()
            try:
                result = await loop.run_in_executor(
                    self._executor,
                    functools.partial(engine.scan, file_bytes, filename, stride, self.overrides),
                )
            except (InputError, AnalysisError) as e:
                logger.warning(f"Job {analysis_id} failed: {e}")
                self.store.fail(analysis_id, str(e))
                return
            except Exception:
                logger.exception(f"Job {analysis_id} failed unexpectedly")
                self.store.fail(analysis_id, INTERNAL_ERROR)
                return

        self.store.complete(analysis_id, result.to_dict())
        if verbose:
            logger.info(
                f"Job {analysis_id} completed: detected={result.summary.steganography_detected}, "
                f"confidence={result.summary.confidence_level.value}, "
                f"indicators={list(result.summary.threat_indicators)}"
            )
        else:
            logger.info(f"Job {analysis_id} completed")
