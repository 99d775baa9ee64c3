"""Study timer with streak tracking, frame scheduling and wake-lock handling."""
from __future__ import annotations

import enum
import logging
import math
import sys
import threading
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, List, Optional, Protocol, TextIO

from .models import AppState
from .storage import StateStore

LOGGER = logging.getLogger(__name__)

MIN_TARGET_MINUTES = 1
MAX_TARGET_MINUTES = 24 * 60
PRESET_MINUTES = (25, 50)

FrameCallback = Callable[[float], None]


@dataclass
class FrameHandle:
    callback: FrameCallback
    cancelled: bool = False
    timer: Optional[threading.Timer] = field(default=None, repr=False)


class FrameScheduler(Protocol):
    def schedule(self, callback: FrameCallback) -> FrameHandle:
        ...

    def cancel(self, handle: FrameHandle) -> None:
        ...


class ThreadedFrameScheduler:
    """Runs each frame on a short-lived ``threading.Timer``."""

    def __init__(self, interval: float = 0.25, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval = interval
        self.clock = clock

    def schedule(self, callback: FrameCallback) -> FrameHandle:
        handle = FrameHandle(callback)
        handle.timer = threading.Timer(self.interval, self._fire, args=(handle,))
        handle.timer.daemon = True
        handle.timer.start()
        return handle

    def _fire(self, handle: FrameHandle) -> None:
        if handle.cancelled:
            return
        try:
            handle.callback(self.clock())
        except Exception:  # pragma: no cover - defensive
            LOGGER.exception("Timer frame failed")

    def cancel(self, handle: FrameHandle) -> None:
        handle.cancelled = True
        if handle.timer is not None:
            handle.timer.cancel()


class ManualFrameScheduler:
    """Queues frames until the host loop calls :meth:`pump`."""

    def __init__(self) -> None:
        self.pending: List[FrameHandle] = []

    def schedule(self, callback: FrameCallback) -> FrameHandle:
        handle = FrameHandle(callback)
        self.pending.append(handle)
        return handle

    def cancel(self, handle: FrameHandle) -> None:
        handle.cancelled = True
        if handle in self.pending:
            self.pending.remove(handle)

    def pump(self, now: float) -> int:
        """Run the frames queued so far; frames they schedule wait for the next pump."""
        due, self.pending = self.pending, []
        ran = 0
        for handle in due:
            if handle.cancelled:
                continue
            handle.callback(now)
            ran += 1
        return ran


class WakeLock(Protocol):
    def request(self) -> bool:
        ...

    def release(self) -> None:
        ...


class NullWakeLock:
    """Used when the platform cannot keep the display awake."""

    def request(self) -> bool:
        return False

    def release(self) -> None:
        return None


class Feedback(Protocol):
    def notify(self, finished: bool) -> None:
        ...


class NullFeedback:
    def notify(self, finished: bool) -> None:
        return None


class TerminalBellFeedback:
    """Rings the terminal bell: twice for a finished session, once for a manual stop."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def notify(self, finished: bool) -> None:
        self.stream.write("\a\a" if finished else "\a")
        self.stream.flush()


class TimerStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


def format_clock(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"


class StudyTimer:
    """Frame-driven study timer that banks time and maintains the streak.

    The timer follows a small state machine: idle -> running -> paused ->
    running, and any state -> idle on stop. While running, each scheduled
    frame adds the wall-clock delta since the previous frame. When a target is
    set and reached, the frame stops the timer as a finished session instead of
    scheduling another one.
    """

    def __init__(
        self,
        state: AppState,
        store: StateStore,
        scheduler: FrameScheduler,
        wake_lock: WakeLock | None = None,
        feedback: Feedback | None = None,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
        on_tick: Callable[["StudyTimer"], None] | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.state = state
        self.store = store
        self.scheduler = scheduler
        self.wake_lock = wake_lock or NullWakeLock()
        self.feedback = feedback or NullFeedback()
        self.clock = clock
        self.today = today
        self.on_tick = on_tick
        self.on_change = on_change
        self.status = TimerStatus.IDLE
        self.elapsed_seconds = 0.0
        self.target_seconds = 0
        self._last: float = 0.0
        self._frame: Optional[FrameHandle] = None
        self._wake_held = False
        self._lock = threading.RLock()

    # Capabilities
    def _acquire_wake_lock(self) -> None:
        if self._wake_held:
            return
        try:
            self._wake_held = bool(self.wake_lock.request())
        except Exception:  # noqa: BLE001
            LOGGER.debug("Wake lock request failed", exc_info=True)
            self._wake_held = False

    def _release_wake_lock(self) -> None:
        if self._wake_held:
            try:
                self.wake_lock.release()
            except Exception:  # noqa: BLE001
                LOGGER.debug("Wake lock release failed", exc_info=True)
        self._wake_held = False

    def _notify(self, finished: bool) -> None:
        try:
            self.feedback.notify(finished)
        except Exception:  # noqa: BLE001
            LOGGER.debug("Feedback unavailable", exc_info=True)

    def _changed(self) -> None:
        if self.on_change:
            try:
                self.on_change()
            except Exception:  # pragma: no cover - defensive
                LOGGER.exception("Timer change callback failed")

    def handle_wake_lock_revoked(self) -> None:
        with self._lock:
            self._wake_held = False

    def handle_visibility_change(self, visible: bool) -> None:
        with self._lock:
            if visible and self.status is TimerStatus.RUNNING:
                self._acquire_wake_lock()

    # Loop
    def _cancel_frame(self) -> None:
        if self._frame is not None:
            self.scheduler.cancel(self._frame)
            self._frame = None

    def _schedule_frame(self) -> None:
        handle: Optional[FrameHandle] = None

        def frame(now: float) -> None:
            with self._lock:
                if self._frame is not handle:
                    return
                self._frame = None
                self.tick(now)

        handle = self.scheduler.schedule(frame)
        self._frame = handle

    def start(self) -> None:
        with self._lock:
            if self.status is TimerStatus.RUNNING:
                return
            self._last = self.clock()
            self.status = TimerStatus.RUNNING
            self._acquire_wake_lock()
            self._schedule_frame()
            LOGGER.debug("Timer started (target=%ss)", self.target_seconds)

    def tick(self, now: float) -> None:
        with self._lock:
            if self.status is not TimerStatus.RUNNING:
                return
            dt = max(now - self._last, 0.0)
            self._last = now
            self.elapsed_seconds += dt
            if self.target_seconds and self.elapsed_seconds >= self.target_seconds:
                self.stop(finished=True)
                return
            if self.on_tick:
                try:
                    self.on_tick(self)
                except Exception:  # pragma: no cover - defensive
                    LOGGER.exception("Timer tick callback failed")
            if self._frame is None:
                self._schedule_frame()

    def pause(self) -> None:
        with self._lock:
            self._cancel_frame()
            self._release_wake_lock()
            if self.status is TimerStatus.RUNNING:
                self.status = TimerStatus.PAUSED
                LOGGER.debug("Timer paused at %.1fs", self.elapsed_seconds)

    def stop(self, finished: bool = False) -> int:
        """Bank the elapsed time; a finished session also counts toward the streak."""
        with self._lock:
            self._cancel_frame()
            self._release_wake_lock()
            self.status = TimerStatus.IDLE
            banked = int(self.elapsed_seconds + 0.5)
            self.state.study_seconds += banked
            if finished:
                self.state.sessions += 1
                self.update_streak()
            self.store.save(self.state)
            self.elapsed_seconds = 0.0
            LOGGER.info("Timer stopped: banked %ss (finished=%s)", banked, finished)
        self._notify(finished)
        self._changed()
        return banked

    def reset(self) -> None:
        with self._lock:
            self.pause()
            self.status = TimerStatus.IDLE
            self.elapsed_seconds = 0.0

    def set_target(self, minutes: Any) -> int:
        """Set the countdown target in minutes; None or 0 means count up."""
        with self._lock:
            if minutes is None or minutes == "":
                self.target_seconds = 0
                return 0
            try:
                value = float(minutes)
            except (TypeError, ValueError):
                LOGGER.debug("Ignored non-numeric target %r", minutes)
                return self.target_seconds
            if math.isnan(value):
                LOGGER.debug("Ignored non-numeric target %r", minutes)
                return self.target_seconds
            if value == 0:
                self.target_seconds = 0
            else:
                # +inf clamps to the ceiling, -inf and small fractions to one minute.
                value = max(MIN_TARGET_MINUTES, min(MAX_TARGET_MINUTES, value))
                self.target_seconds = int(round(value)) * 60
            return self.target_seconds

    def apply_preset(self, minutes: int) -> int:
        if minutes not in PRESET_MINUTES:
            LOGGER.debug("%s is not a preset, applying anyway", minutes)
        return self.set_target(minutes)

    def update_streak(self) -> int:
        with self._lock:
            today = self.today()
            last = self.state.last_study_date
            if last == today:
                return self.state.streak_days
            if last == today - timedelta(days=1):
                self.state.streak_days += 1
            else:
                self.state.streak_days = 1
            self.state.last_study_date = today
            self.store.save(self.state)
            LOGGER.info("Streak is now %s days", self.state.streak_days)
            return self.state.streak_days

    # Read accessors
    @property
    def remaining_seconds(self) -> float:
        if not self.target_seconds:
            return 0.0
        return max(self.target_seconds - self.elapsed_seconds, 0.0)

    @property
    def progress_percent(self) -> float:
        if not self.target_seconds:
            return 0.0
        return max(0.0, min(100.0, self.elapsed_seconds / self.target_seconds * 100))

    @property
    def display(self) -> str:
        return format_clock(self.remaining_seconds if self.target_seconds else self.elapsed_seconds)

    @property
    def target_info(self) -> str:
        if not self.target_seconds:
            return "No target set"
        return f"Target set: {round(self.target_seconds / 60)} min"

    @property
    def streak_days(self) -> int:
        return self.state.streak_days

    @property
    def wake_lock_active(self) -> bool:
        return self._wake_held

    @property
    def is_running(self) -> bool:
        return self.status is TimerStatus.RUNNING
