"""Client-side training engine.

Everything here runs without Flask: the round state machine, adaptive
difficulty, session tracking and the local profile snapshot. Time comes from
an injected Clock and the server is reached through a RoundApi.
"""

from .clock import Clock, RealClock
from .difficulty import DifficultyController, DifficultyParameters
from .profile import PlayerState, TrainerContext, check_daily_streak
from .session_tracker import SessionTracker, booster_status, progress_summary
from .snapshot import SnapshotStore
from .state_machine import FlashScene, Presenter, RoundResult, RoundState, RoundStateMachine
from .transport import HttpRoundApi, RoundApi, RoundData, TransportError, Verdict
