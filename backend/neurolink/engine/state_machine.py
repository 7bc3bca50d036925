"""Client round loop: IDLE -> FETCHING -> FLASHING -> QUESTIONING -> VALIDATING -> IDLE.

The machine is single threaded and cooperatively scheduled. The display loop
drives it by awaiting ``tick()`` every frame; the only other suspension points
are the two server calls. Anything that resumes after a suspension re-checks
the state (and the round token) before touching it, so a response that
arrives after the round was abandoned or already finalized is dropped.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from neurolink.rules import (
    ANSWER_LOCK_MS,
    CENTER,
    DAILY_CASUAL,
    DAILY_DEATH,
    QUESTION_FIELDS,
    QUESTION_TIMEOUT_MS,
    ROULETTE_SIZE,
    STANDARD,
    STATIC_BURST_MS,
    Tier,
    parse_mode,
    question_pool,
)

from .clock import Clock
from .difficulty import DifficultyController
from .profile import PlayerState, TrainerContext
from .session_tracker import SessionSummary, SessionTracker
from .transport import RoundApi, RoundData, TransportError, Verdict

logger = logging.getLogger(__name__)

ANOMALY_CHANCE = 0.1
SATELLITE_CLEARANCE_RAD = 0.6
POSITION_JITTER = 0.02  # fraction of the screen's smaller side

REASON_TIMEOUT = "ran out of time"
REASON_WRONG = "wrong answer"
REASON_STALE = "stale round"


class RoundState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    FLASHING = "FLASHING"
    QUESTIONING = "QUESTIONING"
    VALIDATING = "VALIDATING"


class Presenter(Protocol):
    """The presentation layer. Rendering, audio and UI live behind it."""

    def render_flash_scene(self, scene: "FlashScene") -> None:
        ...

    def play_sound(self, name: str) -> None:
        ...

    def present_message(self, text: str, kind: str = "info") -> None:
        ...


@dataclass(frozen=True, slots=True)
class Distractor:
    angle: float
    radius: float  # fraction of the screen's smaller side
    shape: str


@dataclass(frozen=True, slots=True)
class FlashScene:
    round: RoundData
    tier: Tier
    flash_duration_ms: int
    peripheral_distance: float
    distractors: tuple[Distractor, ...]
    anomaly: bool


@dataclass(frozen=True, slots=True)
class RoundResult:
    correct: bool
    verdict: Verdict
    reaction_ms: float
    timed_out: bool
    reason: str | None
    promoted: bool
    run_over: bool
    session_summary: SessionSummary | None


def build_question_queue(tier: Tier, rng: random.Random) -> list[str]:
    """Core shape first, then the tier's questions.

    T1-T3 ask every unlocked question in order. From T4 the pool is large
    enough that a random sample of ROULETTE_SIZE is asked instead.
    """
    pool = question_pool(tier)
    if tier.uses_roulette:
        pool = rng.sample(pool, min(ROULETTE_SIZE, len(pool)))
    return [CENTER, *pool]


def layout_distractors(
    round_data: RoundData,
    difficulty: DifficultyController,
    rng: random.Random,
) -> tuple[Distractor, ...]:
    """Ring of distractors at the peripheral distance, leaving a gap around
    the satellite's direction so it is never covered."""
    params = difficulty.current_parameters()
    count = max(1, params.distractor_count)
    shapes = difficulty.generate_distractor_shapes(round_data.target_shape, count, rng)
    sat_angle = round_data.sat_dir_idx * math.pi * 0.25
    step = 2 * math.pi / count
    placed = []
    for i in range(count):
        a = i * step
        if abs(math.atan2(math.sin(a - sat_angle), math.cos(a - sat_angle))) <= SATELLITE_CLEARANCE_RAD:
            continue
        radius = params.peripheral_distance + rng.uniform(-POSITION_JITTER, POSITION_JITTER)
        placed.append(Distractor(angle=a, radius=radius, shape=shapes[i]))
    return tuple(placed)


class RoundStateMachine:
    def __init__(
        self,
        *,
        context: TrainerContext,
        api: RoundApi,
        presenter: Presenter,
        clock: Clock,
        session: SessionTracker | None = None,
        persist: Callable[[TrainerContext], None] | None = None,
        rng: random.Random | None = None,
        mode: str = STANDARD,
    ) -> None:
        self._context = context
        self._api = api
        self._presenter = presenter
        self._clock = clock
        self._session = session or SessionTracker(clock)
        self._persist = persist
        self._rng = rng or random.Random()
        self._mode = parse_mode(mode)

        self._state = RoundState.IDLE
        self._token = 0
        self.difficulty = self._difficulty_for(context.player)
        self._daily_tier = Tier.T1

        self._round: RoundData | None = None
        self._round_tier = Tier.T1
        self._flash_ms = 0
        self._flash_started_at = 0.0
        self._static_played = False
        self._queue: list[str] = []
        self._current_question: str | None = None
        self._question_started_at = 0.0
        self._answers: dict[str, object] = {}
        self._pending: object | None = None
        self._locked_until: float | None = None
        self._timed_out = False
        self.last_scene: FlashScene | None = None

    # ─── read-only views ────────────────────────────────────
    @property
    def state(self) -> RoundState:
        return self._state

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def session(self) -> SessionTracker:
        return self._session

    @property
    def current_question(self) -> str | None:
        return self._current_question if self._state is RoundState.QUESTIONING else None

    @property
    def input_locked(self) -> bool:
        return self._locked_until is not None

    def question_time_remaining_s(self) -> float | None:
        if self._state is not RoundState.QUESTIONING:
            return None
        elapsed = self._clock.now() - self._question_started_at
        return max(0.0, QUESTION_TIMEOUT_MS / 1000.0 - elapsed)

    def set_mode(self, mode: str) -> None:
        if self._state is not RoundState.IDLE:
            raise RuntimeError("mode can only change between rounds")
        mode = parse_mode(mode)
        if mode != self._mode and self._session.active:
            self._close_session(self._context.player)
        self._mode = mode
        if mode == STANDARD:
            self.difficulty = self._difficulty_for(self._context.player)

    # ─── IDLE -> FETCHING -> FLASHING ───────────────────────
    async def start_round(self) -> bool:
        if self._state is not RoundState.IDLE:
            return False
        player = self._context.player
        if player is None:
            self._presenter.present_message("Select a player first", "alert")
            return False

        self._state = RoundState.FETCHING
        self._token += 1
        token = self._token
        self._reset_round()

        if not self._session.active:
            self._session.start_session()
            if self._mode != STANDARD:
                # Every daily run starts from scratch
                self.difficulty = DifficultyController()
                self._daily_tier = Tier.T1

        try:
            round_data = await self._api.generate_round(player.name)
        except TransportError as exc:
            if token == self._token and self._state is RoundState.FETCHING:
                logger.warning("round fetch failed: %s", exc)
                self._state = RoundState.IDLE
                self._presenter.present_message("Server link lost, try again", "alert")
            return False

        if token != self._token or self._state is not RoundState.FETCHING:
            logger.info("discarding round fetched for an abandoned attempt")
            return False

        self._enter_flashing(player, round_data)
        return True

    def _enter_flashing(self, player: PlayerState, round_data: RoundData) -> None:
        self._round = round_data
        self._round_tier = player.tier if self._mode == STANDARD else self._daily_tier
        params = self.difficulty.current_parameters()

        anomaly = self._round_tier.has_color and self._rng.random() < ANOMALY_CHANCE
        flash_ms = params.flash_duration_ms
        if anomaly:
            flash_ms = int(round(flash_ms * 0.5))
            self._presenter.present_message("Anomaly detected: temporal compression", "alert")

        self._flash_ms = flash_ms
        self._state = RoundState.FLASHING
        self._flash_started_at = self._clock.now()
        self._static_played = False
        self.last_scene = FlashScene(
            round=round_data,
            tier=self._round_tier,
            flash_duration_ms=flash_ms,
            peripheral_distance=params.peripheral_distance,
            distractors=layout_distractors(round_data, self.difficulty, self._rng),
            anomaly=anomaly,
        )
        self._presenter.render_flash_scene(self.last_scene)
        self._presenter.play_sound("flash")

    # ─── frame driver ───────────────────────────────────────
    async def tick(self) -> RoundResult | None:
        """Advance timers. Returns the result when this tick finished a round."""
        now = self._clock.now()

        if self._state is RoundState.FLASHING:
            elapsed_ms = (now - self._flash_started_at) * 1000.0
            if elapsed_ms >= self._flash_ms and not self._static_played:
                self._static_played = True
                self._presenter.play_sound("static")
            if elapsed_ms >= self._flash_ms + STATIC_BURST_MS:
                self._enter_questioning(now)
            return None

        if self._state is not RoundState.QUESTIONING:
            return None

        if (now - self._question_started_at) * 1000.0 >= QUESTION_TIMEOUT_MS:
            self._timed_out = True
            self._locked_until = None
            self._pending = None
            return await self.finalize()

        if self._locked_until is not None and now >= self._locked_until:
            return await self._apply_pending()
        return None

    def _enter_questioning(self, now: float) -> None:
        self._state = RoundState.QUESTIONING
        self._queue = build_question_queue(self._round_tier, self._rng)
        self._current_question = self._queue.pop(0)
        self._question_started_at = now
        self._locked_until = None

    # ─── QUESTIONING ────────────────────────────────────────
    def select(self, value: object) -> bool:
        """Player picked an answer for the current question.

        The pick is locked in for a short delay before the next question is
        asked; ticks apply it once the delay has passed.
        """
        if self._state is not RoundState.QUESTIONING or self._locked_until is not None:
            return False
        self._pending = value
        self._locked_until = self._clock.now() + ANSWER_LOCK_MS / 1000.0
        self._presenter.play_sound("lock")
        return True

    async def _apply_pending(self) -> RoundResult | None:
        if self._state is not RoundState.QUESTIONING:
            return None
        self._locked_until = None
        if self._current_question is None:
            return None
        self._answers[QUESTION_FIELDS[self._current_question]] = self._pending
        self._pending = None
        if self._queue:
            self._current_question = self._queue.pop(0)
            return None
        return await self.finalize()

    # ─── QUESTIONING -> VALIDATING -> IDLE ──────────────────
    async def finalize(self) -> RoundResult | None:
        # The state check and the move to VALIDATING happen before the first
        # await, so a timeout tick and a last answer cannot both get here.
        if self._state is not RoundState.QUESTIONING:
            return None
        player = self._context.player
        if player is None or self._round is None:
            self.abandon()
            return None
        self._state = RoundState.VALIDATING
        token = self._token

        reaction_ms = (self._clock.now() - self._flash_started_at) * 1000.0
        answer = {k: v for k, v in self._answers.items() if v is not None}
        speed_claim = player.speed if self._mode == STANDARD else float(self.difficulty.current_parameters().flash_duration_ms)

        try:
            verdict = await self._api.submit_round(
                player.name, answer, speed_claim, self._round.salt, self._mode, timed_out=self._timed_out
            )
        except TransportError as exc:
            if token == self._token and self._state is RoundState.VALIDATING:
                logger.warning("round validation failed: %s", exc)
                self._state = RoundState.IDLE
                self._presenter.present_message("Network error, round not counted", "alert")
            return None

        if token != self._token or self._state is not RoundState.VALIDATING:
            logger.info("discarding verdict for an abandoned round")
            return None

        return self._apply_verdict(player, verdict, reaction_ms)

    def _apply_verdict(self, player: PlayerState, verdict: Verdict, reaction_ms: float) -> RoundResult:
        correct = verdict.correct and not self._timed_out
        today = self._clock.utcnow().date().isoformat()
        promoted = False

        if self._mode == STANDARD:
            player.score = verdict.new_score
            player.peak_score = max(player.peak_score, player.score)
            promoted = verdict.new_tier.rank > player.tier.rank
            player.tier = verdict.new_tier
        else:
            self._daily_tier = verdict.new_tier
            if self._mode == DAILY_CASUAL:
                if player.daily_casual_date != today:
                    player.daily_casual_streak += 1
                player.daily_casual_score = verdict.new_score
                player.daily_casual_date = today
            elif self._mode == DAILY_DEATH:
                if player.daily_death_date != today:
                    player.daily_death_streak += 1
                player.daily_death_score = verdict.new_score
                player.daily_death_date = today

        self.difficulty.adapt(correct, reaction_ms)
        params = self.difficulty.current_parameters()
        if self._mode == STANDARD:
            player.speed = float(params.flash_duration_ms)
            player.difficulty = self.difficulty.serialize()

        self._session.record_round(
            correct=correct,
            reaction_ms=reaction_ms,
            flash_duration_ms=params.flash_duration_ms,
            difficulty_level=self.difficulty.difficulty_level(),
        )

        reason = None
        if correct:
            player.session_zone += 1
            player.streak = max(0, player.streak) + 1
            self._presenter.play_sound("success")
            if promoted:
                self._presenter.present_message(f"Promotion: {verdict.new_tier.value} unlocked", "upgrade")
        else:
            player.session_zone = 0
            player.streak = min(0, player.streak) - 1
            if self._timed_out:
                reason = REASON_TIMEOUT
            elif verdict.reason:
                reason = REASON_STALE
            else:
                reason = REASON_WRONG
            self._presenter.play_sound("fail")
            self._presenter.present_message(reason, "alert")

        player.record_speed(player.speed if self._mode == STANDARD else params.flash_duration_ms)
        player.record_result(correct, reaction_ms, today)

        run_over = self._mode == DAILY_DEATH and not correct
        summary = None
        if run_over or self._session.should_end_session():
            summary = self._close_session(player)

        logger.info(
            "round done user=%s mode=%s correct=%s rt=%.0f tier=%s score=%s",
            player.name, self._mode, correct, reaction_ms, verdict.new_tier.value, verdict.new_score,
        )
        self._state = RoundState.IDLE
        self._save()
        return RoundResult(
            correct=correct,
            verdict=verdict,
            reaction_ms=reaction_ms,
            timed_out=self._timed_out,
            reason=reason,
            promoted=promoted,
            run_over=run_over,
            session_summary=summary,
        )

    # ─── cancellation ───────────────────────────────────────
    def abandon(self) -> None:
        """Drop the round in progress. The server key is left to be superseded."""
        self._token += 1
        self._state = RoundState.IDLE
        self._reset_round()

    def switch_user(self, name: str) -> PlayerState:
        """Abandon the round and hand over. The outgoing player keeps the
        session played so far."""
        self.abandon()
        if self._session.active:
            self._close_session(self._context.player)
        player = self._context.select(name)
        self.difficulty = self._difficulty_for(player)
        self._save()
        return player

    # ─── helpers ────────────────────────────────────────────
    def _close_session(self, player: PlayerState | None) -> SessionSummary | None:
        summary = self._session.end_session()
        # A session with no judged rounds is not worth a history entry
        if summary is not None and player is not None and summary.rounds_played:
            player.add_session(summary)
        return summary

    def _reset_round(self) -> None:
        self._round = None
        self._queue = []
        self._current_question = None
        self._answers = {}
        self._pending = None
        self._locked_until = None
        self._timed_out = False

    def _difficulty_for(self, player: PlayerState | None) -> DifficultyController:
        if player is None or not player.difficulty:
            return DifficultyController()
        return DifficultyController.restore(player.difficulty)

    def _save(self) -> None:
        if self._persist is not None:
            self._persist(self._context)
