from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date

from neurolink.rules import Tier

from .difficulty import DEFAULT_FLASH_MS
from .session_tracker import SessionSummary

HISTORY_LIMIT = 500
SESSION_HISTORY_LIMIT = 100


@dataclass
class PlayerState:
    """Local view of one player. Score and tier mirror what the judge returned."""

    name: str
    score: int = 0
    peak_score: int = 0
    tier: Tier = Tier.T1
    speed: float = DEFAULT_FLASH_MS
    streak: int = 0
    pin: str | None = None
    session_zone: int = 0
    difficulty: dict | None = None
    sessions: list[SessionSummary] = field(default_factory=list)
    total_sessions: int = 0
    training_block: int = 0
    last_booster_date: str | None = None
    history: list[int] = field(default_factory=lambda: [int(DEFAULT_FLASH_MS)])
    results_history: list[dict] = field(default_factory=list)
    daily_streak: int = 0
    last_play_date: str | None = None
    daily_casual_date: str | None = None
    daily_death_date: str | None = None
    daily_casual_streak: int = 0
    daily_death_streak: int = 0
    daily_casual_score: int = 0
    daily_death_score: int = 0

    def record_speed(self, speed: float) -> None:
        self.history.append(int(round(speed)))
        del self.history[:-HISTORY_LIMIT]

    def record_result(self, correct: bool, reaction_ms: float, day: str) -> None:
        self.results_history.append({"correct": correct, "reactionMs": reaction_ms, "date": day})
        del self.results_history[:-HISTORY_LIMIT]

    def add_session(self, summary: SessionSummary) -> None:
        self.sessions.append(summary)
        del self.sessions[:-SESSION_HISTORY_LIMIT]
        self.total_sessions += 1
        self.training_block = self.total_sessions // 7

    def to_dict(self) -> dict:
        data = asdict(self)
        data["tier"] = self.tier.value
        data["sessions"] = [s.to_dict() for s in self.sessions]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerState":
        data = dict(data)
        data["tier"] = Tier.parse(data.get("tier", "T1"))
        data["sessions"] = [SessionSummary.from_dict(s) for s in data.get("sessions") or []]
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class TrainerContext:
    """Every local profile plus who is playing. Passed explicitly, never global."""

    users: dict[str, PlayerState] = field(default_factory=dict)
    current_user: str | None = None

    @property
    def player(self) -> PlayerState | None:
        if self.current_user is None:
            return None
        return self.users.get(self.current_user)

    def select(self, name: str) -> PlayerState:
        if name not in self.users:
            self.users[name] = PlayerState(name=name)
        self.current_user = name
        return self.users[name]

    def to_dict(self) -> dict:
        return {
            "users": {name: p.to_dict() for name, p in self.users.items()},
            "currentUser": self.current_user,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrainerContext":
        users = {name: PlayerState.from_dict(p) for name, p in (data.get("users") or {}).items()}
        current = data.get("currentUser")
        return cls(users=users, current_user=current if current in users else None)


def check_daily_streak(player: PlayerState, today: date) -> None:
    """Roll the main daily streak forward and expire lapsed daily-mode streaks.

    Playing on consecutive days extends the streak; a gap of two or more days
    restarts it at 1. Mode streaks are only reset here; they grow when a
    daily run is actually played.
    """
    today_s = today.isoformat()
    if player.last_play_date is None:
        player.daily_streak = 1
    elif player.last_play_date != today_s:
        gap = (today - date.fromisoformat(player.last_play_date)).days
        if gap == 1:
            player.daily_streak += 1
        elif gap >= 2:
            player.daily_streak = 1
    player.last_play_date = today_s

    if player.daily_casual_date != today_s and _days_since(player.daily_casual_date, today) >= 2:
        player.daily_casual_streak = 0
    if player.daily_death_date != today_s and _days_since(player.daily_death_date, today) >= 2:
        player.daily_death_streak = 0


def _days_since(day: str | None, today: date) -> int:
    if day is None:
        return 2
    return (today - date.fromisoformat(day)).days
