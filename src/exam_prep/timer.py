"""Study timer: Pomodoro cycles, custom countdowns and a stopwatch.

The timer is driven by ``tick()``, one call per elapsed second. Each tick is
handled to completion before the next one, so phase changes never overlap.
"""
import logging

from exam_prep.errors import ValidationError
from exam_prep.models import StudySession
from exam_prep.store import AppStore

logger = logging.getLogger(__name__)

MODES = ("pomodoro", "custom", "stopwatch")

POMODORO_SECONDS = 25 * 60
SHORT_BREAK_SECONDS = 5 * 60
LONG_BREAK_SECONDS = 15 * 60
LONG_BREAK_EVERY = 4
POMODORO_REWARD = 25


def format_time(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class StudyTimer:
    def __init__(self, store: AppStore, mode: str = "pomodoro", duration_minutes: int = 25):
        if mode not in MODES:
            raise ValidationError(f"Timer mode must be one of {', '.join(MODES)}")
        if mode == "custom" and duration_minutes < 1:
            raise ValidationError("Custom timers need at least one minute")
        self.store = store
        self.mode = mode
        self.duration = POMODORO_SECONDS if mode == "pomodoro" else duration_minutes * 60
        self.time_left = 0 if mode == "stopwatch" else self.duration
        self.elapsed = 0
        self.running = False
        self.is_break = False
        self.pomodoro_count = 0
        self.subject_id = None
        self.session = None

    def start(self, subject_id: str | None = None) -> None:
        if subject_id is None and self.mode != "stopwatch":
            raise ValidationError("Pick a subject before starting the timer")
        self.subject_id = subject_id
        if subject_id is not None and not self.is_break and self.session is None:
            self.session = self.store.start_study_session(subject_id)
        self.running = True

    def pause(self) -> None:
        self.running = False

    def resume(self) -> None:
        self.running = True

    def reset(self) -> StudySession | None:
        """Stop the timer, closing its study session, and rewind to a fresh phase."""
        closed = self.stop()
        self.is_break = False
        self.elapsed = 0
        self.time_left = 0 if self.mode == "stopwatch" else self.duration
        return closed

    def stop(self) -> StudySession | None:
        """Stop the timer and close the open study session, if any."""
        self.running = False
        if self.session is None:
            return None
        closed = self.store.stop_study_session(self.session.id)
        self.session = None
        return closed

    def tick(self) -> str | None:
        """Advance one second. Returns a completion event name when a phase ends."""
        if not self.running:
            return None
        self.elapsed += 1
        if self.mode == "stopwatch":
            return None
        self.time_left -= 1
        if self.time_left > 0:
            return None
        return self._complete()

    def _complete(self) -> str:
        self.running = False
        if self.mode != "pomodoro":
            event = "timer_complete"
        elif self.is_break:
            self.is_break = False
            self.time_left = POMODORO_SECONDS
            event = "break_complete"
        else:
            self.pomodoro_count += 1
            long_break = self.pomodoro_count % LONG_BREAK_EVERY == 0
            self.is_break = True
            self.time_left = LONG_BREAK_SECONDS if long_break else SHORT_BREAK_SECONDS
            self.store.award_coins(POMODORO_REWARD, reason="pomodoro")
            event = "pomodoro_complete"
        self.stop()
        logger.info("Timer %s: %s", self.mode, event)
        return event

    @property
    def display(self) -> str:
        return format_time(self.elapsed if self.mode == "stopwatch" else self.time_left)
