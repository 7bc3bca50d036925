from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Sequence

from .clock import Clock

SESSION_TARGET_S = 10 * 60.0
TRAINING_BLOCK_SIZE = 7
BOOSTER_INTERVALS_DAYS = (7, 30, 90)
BOOSTER_WINDOW_BEFORE_DAYS = 1
BOOSTER_WINDOW_AFTER_DAYS = 3
MIN_ROUNDS_FOR_TREND = 6

IMPROVING = "improving"
STABLE = "stable"
DECLINING = "declining"


@dataclass(frozen=True, slots=True)
class SessionRound:
    correct: bool
    reaction_ms: float
    flash_duration_ms: float
    difficulty_level: int
    timestamp: float


@dataclass(frozen=True, slots=True)
class SessionStats:
    elapsed_s: float
    rounds_played: int
    accuracy_pct: int
    avg_reaction_ms: int
    best_reaction_ms: int
    difficulty_level: int
    speed_trend: str
    target_s: float
    progress_pct: float


@dataclass(frozen=True, slots=True)
class SessionSummary:
    date: str
    duration_ms: int
    rounds_played: int
    accuracy_pct: int
    avg_reaction_ms: int
    best_reaction_ms: int
    ending_difficulty_level: int
    speed_trend: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionSummary":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__})


@dataclass(frozen=True, slots=True)
class BoosterStatus:
    is_due: bool
    interval_days: int | None
    blocks_completed: int
    sessions_in_block: int
    block_size: int = TRAINING_BLOCK_SIZE


@dataclass(frozen=True, slots=True)
class ProgressSummary:
    total_sessions: int
    total_rounds: int
    avg_accuracy_pct: int
    best_accuracy_pct: int
    total_time_hrs: float


def speed_trend(rounds: Sequence[SessionRound]) -> str:
    """Compare mean flash duration of correct rounds, first half vs second."""
    if len(rounds) < MIN_ROUNDS_FOR_TREND:
        return STABLE
    half = len(rounds) // 2
    first = [r.flash_duration_ms for r in rounds[:half] if r.correct]
    second = [r.flash_duration_ms for r in rounds[half:] if r.correct]
    if not first or not second:
        return STABLE
    avg_first = sum(first) / len(first)
    avg_second = sum(second) / len(second)
    if avg_second <= avg_first * 0.92:
        return IMPROVING
    if avg_second >= avg_first * 1.08:
        return DECLINING
    return STABLE


class SessionTracker:
    """Groups rounds into a ten-minute training session.

    - Exactly one session is active at a time; starting again discards the
      current one.
    - Paused time does not count toward the target.
    - Time is entirely via injected Clock.
    """

    def __init__(self, clock: Clock, *, target_s: float = SESSION_TARGET_S) -> None:
        self._clock = clock
        self._target_s = float(target_s)
        self._active = False
        self._started_at_s = 0.0
        self._paused_at_s: float | None = None
        self._paused_total_s = 0.0
        self._rounds: list[SessionRound] = []

    @property
    def active(self) -> bool:
        return self._active

    @property
    def rounds(self) -> list[SessionRound]:
        return list(self._rounds)

    def start_session(self) -> None:
        self._active = True
        self._started_at_s = self._clock.now()
        self._paused_at_s = None
        self._paused_total_s = 0.0
        self._rounds = []

    def pause(self) -> None:
        if self._active and self._paused_at_s is None:
            self._paused_at_s = self._clock.now()

    def resume(self) -> None:
        if self._paused_at_s is None:
            return
        self._paused_total_s += self._clock.now() - self._paused_at_s
        self._paused_at_s = None

    def record_round(self, *, correct: bool, reaction_ms: float, flash_duration_ms: float, difficulty_level: int) -> None:
        if not self._active:
            return
        self._rounds.append(
            SessionRound(
                correct=bool(correct),
                reaction_ms=float(reaction_ms),
                flash_duration_ms=float(flash_duration_ms),
                difficulty_level=int(difficulty_level),
                timestamp=self._clock.now(),
            )
        )

    def elapsed_s(self) -> float:
        if not self._active:
            return 0.0
        now = self._paused_at_s if self._paused_at_s is not None else self._clock.now()
        return max(0.0, now - self._started_at_s - self._paused_total_s)

    def should_end_session(self) -> bool:
        return self._active and self.elapsed_s() >= self._target_s

    def stats(self) -> SessionStats:
        # Capped so an idle session does not count up forever
        elapsed = min(self.elapsed_s(), self._target_s)
        progress = min(100.0, elapsed / self._target_s * 100.0)
        rounds = self._rounds
        if not rounds:
            return SessionStats(elapsed, 0, 0, 0, 0, 0, STABLE, self._target_s, progress)

        correct = [r for r in rounds if r.correct]
        reactions = [r.reaction_ms for r in correct]
        return SessionStats(
            elapsed_s=elapsed,
            rounds_played=len(rounds),
            accuracy_pct=int(round(len(correct) / len(rounds) * 100)),
            avg_reaction_ms=int(round(sum(reactions) / len(reactions))) if reactions else 0,
            best_reaction_ms=int(round(min(reactions))) if reactions else 0,
            difficulty_level=rounds[-1].difficulty_level,
            speed_trend=speed_trend(rounds),
            target_s=self._target_s,
            progress_pct=progress,
        )

    def end_session(self) -> SessionSummary | None:
        if not self._active:
            return None
        s = self.stats()
        self._active = False
        return SessionSummary(
            date=self._clock.utcnow().isoformat(),
            duration_ms=int(round(s.elapsed_s * 1000.0)),
            rounds_played=s.rounds_played,
            accuracy_pct=s.accuracy_pct,
            avg_reaction_ms=s.avg_reaction_ms,
            best_reaction_ms=s.best_reaction_ms,
            ending_difficulty_level=s.difficulty_level,
            speed_trend=s.speed_trend,
        )


def booster_status(sessions: Sequence[SessionSummary], last_booster: datetime | None, now: datetime) -> BoosterStatus:
    """Whether a booster reminder is due.

    Only after a full training block. Due when days since the last booster
    (or, failing that, the last session) fall within [interval-1, interval+3]
    for any booster interval.
    """
    count = len(sessions)
    in_block = count % TRAINING_BLOCK_SIZE
    if count < TRAINING_BLOCK_SIZE:
        return BoosterStatus(False, None, 0, count)

    blocks = count // TRAINING_BLOCK_SIZE
    reference = last_booster or datetime.fromisoformat(sessions[-1].date)
    days_since = (now - reference).total_seconds() / 86400.0
    for interval in BOOSTER_INTERVALS_DAYS:
        if interval - BOOSTER_WINDOW_BEFORE_DAYS <= days_since <= interval + BOOSTER_WINDOW_AFTER_DAYS:
            return BoosterStatus(True, interval, blocks, in_block)
    return BoosterStatus(False, None, blocks, in_block)


def progress_summary(sessions: Sequence[SessionSummary]) -> ProgressSummary:
    if not sessions:
        return ProgressSummary(0, 0, 0, 0, 0.0)
    total_ms = sum(s.duration_ms for s in sessions)
    return ProgressSummary(
        total_sessions=len(sessions),
        total_rounds=sum(s.rounds_played for s in sessions),
        avg_accuracy_pct=int(round(sum(s.accuracy_pct for s in sessions) / len(sessions))),
        best_accuracy_pct=max(s.accuracy_pct for s in sessions),
        total_time_hrs=round(total_ms / 3_600_000.0, 1),
    )
