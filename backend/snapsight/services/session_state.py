"""
SessionState: latest analysis result + throughput statistics for one capture session.

Single writer: only the CaptureScheduler mutates it. Readers (control API,
presentation) take snapshots. Completion handlers run on dispatch worker
threads, so every mutation goes through one lock.

Each reset() starts a new epoch. Completions stamped with an older epoch
belong to a previous session and are dropped, so a restart always begins
from zeroed stats. Within one session, overlapping completions are
last-write-wins: a slow early dispatch can overwrite a newer result.
"""

import threading
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

from snapsight.errors import FrameSourceFailure
from snapsight.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class CaptureMode(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero (non-negative inputs)."""
    return (2 * numerator + denominator) // (2 * denominator)


@dataclass
class SessionStats:
    processed_count: int = 0
    total_response_time_ms: int = 0
    last_response_time_ms: int = 0
    average_response_time_ms: int = 0

    def record(self, response_time_ms: int):
        self.processed_count += 1
        self.total_response_time_ms += response_time_ms
        self.last_response_time_ms = response_time_ms
        self.average_response_time_ms = round_half_up(self.total_response_time_ms, self.processed_count)


class SessionState:
    def __init__(self):
        self._lock = threading.Lock()
        self._epoch = 0
        self._result: Optional[AnalysisResult] = None
        self._stats = SessionStats()
        self._mode = CaptureMode.STOPPED
        self._error_message: Optional[str] = None
        self._error_kind: Optional[FrameSourceFailure] = None

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    @property
    def result(self) -> Optional[AnalysisResult]:
        with self._lock:
            return self._result

    @property
    def stats(self) -> SessionStats:
        """Copy of the current statistics."""
        with self._lock:
            return SessionStats(**asdict(self._stats))

    @property
    def mode(self) -> CaptureMode:
        with self._lock:
            return self._mode

    @property
    def error_message(self) -> Optional[str]:
        with self._lock:
            return self._error_message

    def reset(self) -> int:
        """Start a new session epoch with empty result and zeroed stats."""
        with self._lock:
            self._epoch += 1
            self._result = None
            self._stats = SessionStats()
            self._error_message = None
            self._error_kind = None
            logger.debug(f"[SessionState] Reset (epoch={self._epoch})")
            return self._epoch

    def invalidate(self):
        """Tear down: completions still in flight will no longer be applied."""
        with self._lock:
            self._epoch += 1

    def set_mode(self, mode: CaptureMode):
        with self._lock:
            self._mode = mode

    def set_error(self, message: Optional[str], kind: Optional[FrameSourceFailure] = None):
        """Record a capture-side failure (camera or encoding) for presentation."""
        with self._lock:
            self._error_message = message
            self._error_kind = kind

    def apply_completion(self, epoch: int, result: AnalysisResult, response_time_ms: int) -> bool:
        """
        Fold one finished dispatch into the session.

        Returns False (and changes nothing) if the dispatch belongs to an
        earlier epoch.
        """
        with self._lock:
            if epoch != self._epoch:
                logger.debug(f"[SessionState] Dropping stale completion (epoch {epoch} != {self._epoch})")
                return False
            self._stats.record(response_time_ms)
            self._result = result
            self._error_message = None
            self._error_kind = None
            return True

    def snapshot(self) -> dict:
        """Consistent view for presentation."""
        with self._lock:
            return {
                "mode": self._mode.value,
                "stats": asdict(self._stats),
                "result": self._result.model_dump() if self._result else None,
                "error_message": self._error_message,
                "error_kind": self._error_kind.value if self._error_kind else None,
            }
