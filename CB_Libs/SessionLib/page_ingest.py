"""
Background worker for photo ingestion.

Preprocessing a 2048 pixel photo or merging two line art passes takes long
enough to stall an interactive caller, so these jobs run on a single worker
thread. Jobs run one after another and each job's stages stay sequential.

Cancellation is coarse: cancelling a job sets its event, the pipeline notices
between stages and raises PipelineCancelled, and whatever it had computed is
dropped. Nothing is written anywhere until a job's result is collected.

Example:
    >>> with PageIngestWorker() as worker:
    ...     job = worker.submit_preprocess(photo_bytes, outline_strength=70)
    ...     outline_png = job.result(timeout=30)
"""

import concurrent.futures
import logging
import threading
from typing import Any, Callable, List, Optional

from CB_Libs.LineArtLib.line_art_preprocessor import LineArtConfig, preprocess
from CB_Libs.MaskingLib.subject_masking import MaskingConfig, mask_and_composite
from CB_Libs.constants import DEFAULT_OUTLINE_STRENGTH
from CB_Libs.errors import PipelineCancelled

logger = logging.getLogger(__name__)


class IngestJob:
    """Handle to one submitted ingest job."""

    def __init__(self, name: str, future: concurrent.futures.Future, cancel_event: threading.Event):
        self.name = name
        self._future = future
        self._cancel_event = cancel_event

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> None:
        """Ask the job to stop; a job that has not started yet never runs."""
        self._cancel_event.set()
        self._future.cancel()
        logger.debug(f"Cancellation requested for ingest job '{self.name}'")

    def result(self, timeout: Optional[float] = None) -> bytes:
        """
        Wait for the job's PNG bytes.

        Raises:
            PipelineCancelled: If the job was cancelled
            DecodeFailure: If the photo could not be decoded
            concurrent.futures.TimeoutError: If timeout elapsed first
        """
        try:
            return self._future.result(timeout=timeout)
        except concurrent.futures.CancelledError as e:
            raise PipelineCancelled(f"Ingest job '{self.name}' was cancelled") from e


class PageIngestWorker:
    """Single-thread executor for preprocessing and compositing jobs."""

    def __init__(
        self,
        line_art_config: Optional[LineArtConfig] = None,
        masking_config: Optional[MaskingConfig] = None,
    ):
        self.line_art_config = line_art_config or LineArtConfig()
        self.masking_config = masking_config or MaskingConfig()
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="page-ingest",
        )
        self._jobs: List[IngestJob] = []

    def __enter__(self) -> "PageIngestWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(cancel_pending=exc_type is not None)

    def _submit(self, name: str, fn: Callable[..., bytes], *args: Any) -> IngestJob:
        cancel_event = threading.Event()

        def run() -> bytes:
            if cancel_event.is_set():
                raise PipelineCancelled(f"Ingest job '{name}' cancelled before start")
            logger.debug(f"Starting ingest job '{name}'")
            return fn(*args, cancel_event)

        job = IngestJob(name, self._executor.submit(run), cancel_event)
        self._jobs = [j for j in self._jobs if not j.done()]
        self._jobs.append(job)
        return job

    def submit_preprocess(
        self,
        photo_bytes: bytes,
        outline_strength: float = DEFAULT_OUTLINE_STRENGTH,
    ) -> IngestJob:
        """Queue photo to line art conversion; the result is outline PNG bytes."""
        config = self.line_art_config

        def work(data: bytes, strength: float, cancel_event: threading.Event) -> bytes:
            return preprocess(data, strength, config, cancel_event)

        return self._submit("preprocess", work, photo_bytes, outline_strength)

    def submit_mask_and_composite(
        self,
        photo_bytes: bytes,
        background_bytes: bytes,
        subject_bytes: bytes,
    ) -> IngestJob:
        """Queue the subject/background merge; the result is line art PNG bytes."""
        config = self.masking_config

        def work(photo: bytes, background: bytes, subject: bytes, cancel_event: threading.Event) -> bytes:
            return mask_and_composite(photo, background, subject, config)

        return self._submit("mask_and_composite", work, photo_bytes, background_bytes, subject_bytes)

    def cancel_all(self) -> None:
        for job in self._jobs:
            if not job.done():
                job.cancel()

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        if cancel_pending:
            self.cancel_all()
        self._executor.shutdown(wait=wait)
