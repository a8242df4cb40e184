import time
import threading
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional

from snapsight.errors import EncodingError, FrameSourceError, TransportError
from snapsight.schemas.analysis import AnalysisResult
from snapsight.services.analysis_client import AnalysisClient
from snapsight.services.frame_source import FrameSource
from snapsight.services.request_encoder import ImageFormat, encode
from snapsight.services.session_state import CaptureMode, SessionState

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    CAPTURING = "CAPTURING"
    DISPATCHING = "DISPATCHING"
    STOPPED = "STOPPED"


class CaptureScheduler:
    """
    Periodic capture-and-dispatch loop.

    Timing model:
    1. A timer thread ticks every ``capture_interval_ms``, whatever the state of
       earlier dispatches (no backpressure from slow responses)
    2. A tick is skipped when the previous capture STARTED less than
       ``min_capture_gap_ms`` ago; this gate bounds in-flight requests
    3. Capture + encode run on the timer thread (local, bounded); the network
       round trip runs on a worker pool so it never blocks the timer
    4. Each completion, success or transport failure, is folded into the
       SessionState (stats + last-write-wins result)

    Every per-cycle error is contained in its cycle; the timer keeps ticking.
    """

    def __init__(self, frame_source: FrameSource, client: AnalysisClient, session: SessionState,
                 capture_interval_ms: int = 2000, min_capture_gap_ms: int = 500,
                 encode_quality: int = 90, image_format: ImageFormat = ImageFormat.JPEG,
                 max_in_flight: int = 4, clock: Callable[[], float] = time.monotonic,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.frame_source = frame_source
        self.client = client
        self.session = session
        self.capture_interval_ms = capture_interval_ms
        self.min_capture_gap_ms = min_capture_gap_ms
        self.encode_quality = encode_quality
        self.image_format = ImageFormat(image_format)
        self.clock = clock

        self._executor = executor or ThreadPoolExecutor(max_workers=max_in_flight,
                                                        thread_name_prefix="snapsight-dispatch")
        self._owns_executor = executor is None

        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._stop_event = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None
        self._last_capture_start: Optional[float] = None
        self._in_flight = 0
        self._torn_down = False

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            if self._state == SchedulerState.CAPTURING and self._in_flight > 0:
                return SchedulerState.DISPATCHING
            return self._state

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state in (SchedulerState.STARTING, SchedulerState.CAPTURING)

    @property
    def has_timer(self) -> bool:
        with self._lock:
            return self._timer_thread is not None and self._timer_thread.is_alive()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    # ------------------------------------------------------------------ lifecycle

    def start(self) -> bool:
        """
        Begin a new session: reset stats, open the frame source, arm the timer
        and capture once immediately.

        Returns False if already running or if the frame source failed to open
        (the failure is recorded on the session).
        """
        with self._lock:
            if self._torn_down:
                raise RuntimeError("CaptureScheduler has been shut down")
            if self._state in (SchedulerState.STARTING, SchedulerState.CAPTURING):
                return False
            self._state = SchedulerState.STARTING

        self.session.reset()
        logger.info(f"[Scheduler] Starting session: interval={self.capture_interval_ms}ms, "
                    f"min_gap={self.min_capture_gap_ms}ms, quality={self.encode_quality}")

        try:
            self.frame_source.open()
        except FrameSourceError as e:
            logger.error(f"[Scheduler] Frame source unavailable ({e.kind.value}): {e}")
            self.session.set_error(str(e), e.kind)
            with self._lock:
                self._state = SchedulerState.STOPPED
            self.session.set_mode(CaptureMode.STOPPED)
            return False

        with self._lock:
            if self._state != SchedulerState.STARTING:
                # stop() arrived while the source was opening
                self.frame_source.close()
                return False
            self._state = SchedulerState.CAPTURING
            self._last_capture_start = None
            self._stop_event = threading.Event()
            self._timer_thread = threading.Thread(target=self._run, args=(self._stop_event,),
                                                  name="snapsight-capture-timer", daemon=True)
            timer_thread = self._timer_thread

        self.session.set_mode(CaptureMode.RUNNING)
        timer_thread.start()
        return True

    def stop(self):
        """Cancel the timer and release the frame source. Safe to call repeatedly."""
        with self._lock:
            was_active = self._state in (SchedulerState.STARTING, SchedulerState.CAPTURING)
            self._state = SchedulerState.STOPPED
            stop_event = self._stop_event
            timer_thread = self._timer_thread
            self._timer_thread = None

        stop_event.set()
        if timer_thread is not None and timer_thread is not threading.current_thread():
            timer_thread.join(timeout=2.0)

        self.session.set_mode(CaptureMode.STOPPED)
        if was_active:
            self.frame_source.close()
            logger.info("[Scheduler] Session stopped (in-flight dispatches will still be applied)")

    def toggle(self) -> bool:
        """Running -> stop, otherwise start. Returns True if now running."""
        if self.is_running:
            self.stop()
            return False
        return self.start()

    def shutdown(self):
        """Stop and tear down: late completions are discarded, worker pool released."""
        self.stop()
        self.session.invalidate()
        with self._lock:
            self._torn_down = True
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        logger.info("[Scheduler] Shut down")

    # ------------------------------------------------------------------ loop

    def _run(self, stop_event: threading.Event):
        interval_s = self.capture_interval_ms / 1000.0
        while True:
            try:
                self.tick()
            except Exception as e:
                logger.exception("[Scheduler] Unexpected error in capture tick: %s", e)
            if stop_event.wait(interval_s):
                break
        logger.debug("[Scheduler] Timer thread exited")

    def tick(self) -> Optional[Future]:
        """
        One capture cycle. Returns the dispatch Future, or None when the tick
        was gated, the scheduler is not capturing, or capture/encode failed.
        """
        now = self.clock()
        with self._lock:
            if self._state != SchedulerState.CAPTURING:
                return None
            if (self._last_capture_start is not None
                    and (now - self._last_capture_start) * 1000.0 < self.min_capture_gap_ms):
                logger.debug("[Scheduler] Tick skipped: previous capture started too recently")
                return None
            self._last_capture_start = now

        epoch = self.session.epoch

        try:
            frame = self.frame_source.read()
            height, width = frame.shape[:2]
            capture = encode(frame, width, height, self.encode_quality, self.image_format)
        except FrameSourceError as e:
            logger.warning(f"[Scheduler] Capture failed ({e.kind.value}): {e}")
            self.session.set_error(str(e), e.kind)
            return None
        except EncodingError as e:
            logger.warning(f"[Scheduler] Encoding failed: {e}")
            self.session.set_error(str(e))
            return None

        dispatch_start = self.clock()
        with self._lock:
            self._in_flight += 1
        try:
            return self._executor.submit(self._dispatch, capture, epoch, dispatch_start)
        except RuntimeError:
            # pool already shut down
            with self._lock:
                self._in_flight -= 1
            return None

    def _dispatch(self, capture, epoch: int, dispatch_start: float) -> AnalysisResult:
        try:
            result = self.client.analyze(capture)
        except TransportError as e:
            logger.warning(f"[Scheduler] Transport error: {e}")
            result = AnalysisResult(success=False, message=f"Transport error: {e}")
        except Exception as e:
            logger.exception("[Scheduler] Analysis client failed: %s", e)
            result = AnalysisResult(success=False, message=f"Transport error: {e}")

        response_time_ms = max(0, int(round((self.clock() - dispatch_start) * 1000.0)))
        applied = self.session.apply_completion(epoch, result, response_time_ms)

        with self._lock:
            self._in_flight -= 1

        if applied:
            logger.debug(f"[Scheduler] Cycle complete in {response_time_ms}ms "
                         f"(success={result.success}, boxes={len(result.bounding_boxes)})")
        return result
