"""
Progress and cancellation state for video jobs.

A ProcessingStatus is handed to process_video (which writes it) and kept by
whoever wants to poll or cancel the job. Callers that don't pass one share
`default_status`, so one job at a time is the convention there.
"""

import time
import threading

from watermark_types import ProcessingProgress


class CancellationToken:
    """One-shot cancel flag, checked once per frame by the job."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProcessingStatus:
    """Frame counters for one in-flight job, safe to read from any thread."""

    def __init__(self, token=None):
        self.token = token or CancellationToken()
        self._lock = threading.Lock()
        self._current_frame = 0
        self._total_frames = 0
        self._started_at = None

    def start(self, total_frames: int):
        """Reset counters and clear any stale cancel request for a new job."""
        self.token.reset()
        self.reset_counters(total_frames)

    def reset_counters(self, total_frames: int):
        """Reset counters only; a pending cancel request is kept."""
        with self._lock:
            self._current_frame = 0
            self._total_frames = max(0, int(total_frames))
            self._started_at = time.monotonic()

    def set_total(self, total_frames: int):
        with self._lock:
            self._total_frames = max(0, int(total_frames))

    def advance(self, current_frame: int):
        with self._lock:
            self._current_frame = int(current_frame)

    def request_cancel(self):
        self.token.cancel()

    def is_cancelled(self) -> bool:
        return self.token.cancelled

    def snapshot(self) -> ProcessingProgress:
        with self._lock:
            current = self._current_frame
            total = self._total_frames
            started_at = self._started_at

        percent = (current / total) * 100.0 if total > 0 else 0.0

        remaining = None
        if started_at is not None and total > 0 and current > 0:
            per_frame = (time.monotonic() - started_at) / current
            remaining = max(0.0, per_frame * (total - current))

        return ProcessingProgress(
            current_frame=current,
            total_frames=total,
            percent=percent,
            estimated_remaining_secs=remaining,
        )


default_status = ProcessingStatus()


def get_progress(status=None) -> ProcessingProgress:
    return (status or default_status).snapshot()


def request_cancel(status=None):
    (status or default_status).request_cancel()
