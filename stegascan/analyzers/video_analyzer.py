"""
Video analysis by frame sampling.

Every ``sample_rate``-th frame is decoded and run through the same LSB
routine used for still images. Frames are analyzed on a bounded thread pool;
frame indices are re-sorted afterwards so results never depend on completion
order.
"""
import os
import tempfile
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import cv2
import numpy as np

from stegascan import config
from stegascan.analyzers.lsb_analyzer import RGB_CHANNELS, analyze_lsb
from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.core.errors import DecodeError
from stegascan.models import AnalysisStatus, VideoAnalysis

Frame = Tuple[int, Optional[np.ndarray]]


@contextmanager
def materialized(data: bytes, suffix: str = "") -> Iterator[str]:
    """
    Write a buffer to a temporary file for decoders that only accept paths.

    Args:
        data: Bytes to write
        suffix: File suffix, helps the demuxer pick a container

    Yields:
        Path of the temporary file, removed on exit
    """
    fd, path = tempfile.mkstemp(prefix="stegascan_", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        try:
            os.unlink(path)
        except OSError:
            pass


class SampledFrameReader:
    """
    Iterate over the sampled frames of a video file.

    Frame ``i`` (0-based) is sampled when ``(i + 1) % stride == 0``, so a
    video of N frames yields floor(N / stride) samples. Frames in between are
    only grabbed, never decoded to pixels.
    """

    def __init__(self, path: str, stride: int) -> None:
        if stride < 1:
            raise ValueError(f"Sample rate must be at least 1, got {stride}")
        self.path = path
        self.stride = stride
        self.frames_decoded = 0

    def __iter__(self) -> Iterator[Frame]:
        capture = cv2.VideoCapture(self.path)
        try:
            if not capture.isOpened():
                raise DecodeError("Could not open video container")
            index = 0
            while capture.grab():
                self.frames_decoded += 1
                if (index + 1) % self.stride == 0:
                    ok, frame = capture.retrieve()
                    yield index, (frame if ok and frame is not None else None)
                index += 1
        finally:
            capture.release()


class VideoAnalyzer(BaseAnalyzer):
    """Sample video frames and run LSB analysis on each."""

    name: str = "video"
    description: str = "Frame sampling with per-frame LSB analysis"
    config_section = "VIDEO"

    def __init__(
        self,
        config_overrides: Optional[Dict[str, Any]] = None,
        lsb_overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(config_overrides)
        self.lsb_config = config.section("LSB", lsb_overrides)

    def analyze(self, data: bytes, extension: Optional[str] = None, sample_rate: Optional[int] = None) -> VideoAnalysis:
        """
        Analyze a video file.

        Args:
            data: Raw video bytes
            extension: Original file extension, used for the temporary file
            sample_rate: Analyze every Nth frame (default from config)

        Returns:
            VideoAnalysis; status is failed when no frame could be decoded
        """
        stride = int(sample_rate or self.config["default_sample_rate"])
        suffix = f".{extension}" if extension else ""

        try:
            with materialized(data, suffix) as path:
                reader = SampledFrameReader(path, stride)
                processed, errors, suspicious = self.analyze_frames(reader)
        except DecodeError as e:
            self.logger.warning(str(e))
            return self._failed(stride, str(e))

        if reader.frames_decoded == 0:
            return self._failed(stride, "No decodable video frames")
        if processed == 0 and errors > 0:
            return self._failed(
                stride, f"All {errors} sampled frames failed to decode", errors, reader.frames_decoded
            )

        self.logger.info(
            f"Processed {processed} of {reader.frames_decoded} frames "
            f"(every {stride}), {len(suspicious)} suspicious, {errors} errors"
        )
        return VideoAnalysis(
            frames_processed=processed,
            errors_encountered=errors,
            suspicious_frames=tuple(suspicious),
            frames_decoded=reader.frames_decoded,
            sample_rate=stride,
        )

    def analyze_frames(self, frames: Iterable[Frame]) -> Tuple[int, int, List[int]]:
        """
        Run LSB analysis over sampled frames.

        A frame given as None, or one whose analysis raises, counts as an
        error and is skipped.

        Args:
            frames: Iterable of (frame index, BGR frame or None)

        Returns:
            Tuple of (frames processed, errors encountered, sorted suspicious frame indices)
        """
        max_workers = max(1, int(self.config["max_workers"]))
        processed = 0
        errors = 0
        suspicious: List[int] = []

        def collect(future: Future, index: int) -> None:
            nonlocal processed, errors
            try:
                flagged = future.result()
            except (cv2.error, ValueError) as e:
                self.logger.warning(f"Frame {index} analysis failed: {e}")
                errors += 1
                return
            processed += 1
            if flagged:
                suspicious.append(index)

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            pending: Dict[Future, int] = {}
            for index, frame in frames:
                if frame is None:
                    self.logger.warning(f"Frame {index} could not be decoded")
                    errors += 1
                    continue
                pending[pool.submit(self._frame_is_suspicious, frame)] = index
                if len(pending) >= max_workers * 2:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        collect(future, pending.pop(future))
            for future, index in pending.items():
                collect(future, index)

        suspicious.sort()
        return processed, errors, suspicious

    def _frame_is_suspicious(self, frame: np.ndarray) -> bool:
        if frame.ndim == 3 and frame.shape[2] == 3:
            pixels, names = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), RGB_CHANNELS
        else:
            pixels, names = frame, None
        result = analyze_lsb(
            pixels,
            names,
            chi_square_threshold=self.lsb_config["chi_square_threshold"],
            entropy_threshold=self.lsb_config["entropy_threshold"],
            min_pair_count=self.lsb_config["min_pair_count"],
        )
        return result.is_suspicious

    @staticmethod
    def _failed(stride: int, message: str, errors: int = 0, decoded: int = 0) -> VideoAnalysis:
        return VideoAnalysis(
            frames_processed=0,
            errors_encountered=errors,
            frames_decoded=decoded,
            sample_rate=stride,
            status=AnalysisStatus.FAILED,
            errors=(message,),
        )
