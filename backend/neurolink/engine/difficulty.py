"""Adaptive difficulty across four stimulus dimensions.

The controller aims for roughly 75% accuracy. Rolling accuracy over the last
20 rounds picks the regime (push harder, hold, or back off); the round's
reaction time only scales how big the flash-duration step is. Dimensions:

- flash duration (ms the stimulus stays up), the most sensitive one
- distractor count
- distractor similarity (0 = random shapes, 1 = always confusable)
- peripheral distance (satellite radius as a fraction of the screen's
  smaller side; closer in is harder to separate from the distractor ring)
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass

from neurolink.rules import SHAPES

logger = logging.getLogger(__name__)

DEFAULT_FLASH_MS = 450.0
DEFAULT_DISTRACTORS = 12.0
DEFAULT_SIMILARITY = 0.0
DEFAULT_PERIPHERAL = 0.35

FLASH_FLOOR_MS = 30.0
FLASH_CEILING_MS = 800.0
DISTRACTOR_FLOOR = 6.0
DISTRACTOR_CEILING = 18.0
PERIPHERAL_FLOOR = 0.22
PERIPHERAL_CEILING = 0.45

ACCURACY_TARGET = 0.75
ACCURACY_WINDOW = 20
ACCURACY_UPPER = 0.82
ACCURACY_LOWER = 0.62


@dataclass(frozen=True, slots=True)
class DifficultyParameters:
    flash_duration_ms: int
    distractor_count: int
    distractor_similarity: float
    peripheral_distance: float


@dataclass(frozen=True, slots=True)
class RoundOutcome:
    correct: bool
    reaction_ms: float


def reaction_factor(reaction_ms: float) -> float:
    """0.0 for 5s or slower, 1.0 for 500ms or faster."""
    return max(0.0, min(1.0, (5000.0 - reaction_ms) / 4500.0))


class DifficultyController:
    def __init__(self, *, window: int = ACCURACY_WINDOW) -> None:
        self.flash_duration_ms = DEFAULT_FLASH_MS
        self.distractor_count = DEFAULT_DISTRACTORS
        self.distractor_similarity = DEFAULT_SIMILARITY
        self.peripheral_distance = DEFAULT_PERIPHERAL
        self.recent: deque[RoundOutcome] = deque(maxlen=window)
        self.total_rounds = 0

    # ─── adaptation ─────────────────────────────────────────
    def adapt(self, correct: bool, reaction_ms: float) -> None:
        self.total_rounds += 1
        self.recent.append(RoundOutcome(bool(correct), float(reaction_ms)))

        accuracy = self.rolling_accuracy()
        factor = reaction_factor(reaction_ms)

        if correct:
            if accuracy > ACCURACY_UPPER:
                self._increase(factor)
            elif accuracy > ACCURACY_LOWER:
                # In the zone: only flash duration moves, and only for fast answers
                if factor > 0.8:
                    self.flash_duration_ms = max(FLASH_FLOOR_MS, self.flash_duration_ms * 0.99)
        elif accuracy < ACCURACY_LOWER:
            self._recover()
        else:
            self.flash_duration_ms = min(FLASH_CEILING_MS, self.flash_duration_ms + 8.0)

        logger.debug(
            "adapt correct=%s rt=%.0f acc=%.2f flash=%.1f distractors=%.1f sim=%.2f dist=%.3f",
            correct, reaction_ms, accuracy, self.flash_duration_ms,
            self.distractor_count, self.distractor_similarity, self.peripheral_distance,
        )

    def _increase(self, factor: float) -> None:
        step = 0.92 if factor > 0.7 else 0.96
        self.flash_duration_ms = max(FLASH_FLOOR_MS, self.flash_duration_ms * step)
        if self.total_rounds > 5:
            self.distractor_count = min(DISTRACTOR_CEILING, self.distractor_count + 0.3)
        if self.total_rounds > 10:
            self.distractor_similarity = min(1.0, self.distractor_similarity + 0.02)
        if self.total_rounds > 15:
            self.peripheral_distance = max(PERIPHERAL_FLOOR, self.peripheral_distance - 0.003)

    def _recover(self) -> None:
        # Recovery shrinks as the player accumulates rounds: 40ms early, 16ms from round 50
        progress = min(1.0, self.total_rounds / 50.0)
        self.flash_duration_ms = min(FLASH_CEILING_MS, self.flash_duration_ms + 40.0 * (1.0 - 0.6 * progress))
        if self.distractor_count > 8:
            self.distractor_count = max(DISTRACTOR_FLOOR, self.distractor_count - 0.5)
        if self.distractor_similarity > 0.05:
            self.distractor_similarity = max(0.0, self.distractor_similarity - 0.03)
        if self.peripheral_distance < 0.42:
            self.peripheral_distance = min(PERIPHERAL_CEILING, self.peripheral_distance + 0.005)

    # ─── readings ───────────────────────────────────────────
    def rolling_accuracy(self) -> float:
        if not self.recent:
            return ACCURACY_TARGET
        return sum(1 for r in self.recent if r.correct) / len(self.recent)

    def current_parameters(self) -> DifficultyParameters:
        return DifficultyParameters(
            flash_duration_ms=int(round(self.flash_duration_ms)),
            distractor_count=int(round(self.distractor_count)),
            distractor_similarity=min(1.0, max(0.0, self.distractor_similarity)),
            peripheral_distance=self.peripheral_distance,
        )

    def difficulty_level(self) -> int:
        """0-100 composite for display and session telemetry."""
        flash = max(0.0, (DEFAULT_FLASH_MS - self.flash_duration_ms) / 400.0) * 40
        distractors = max(0.0, (self.distractor_count - 6) / 12.0) * 20
        similarity = self.distractor_similarity * 20
        distance = max(0.0, (PERIPHERAL_CEILING - self.peripheral_distance) / 0.2) * 20
        return min(100, int(round(flash + distractors + similarity + distance)))

    def generate_distractor_shapes(self, target_shape: str, count: int, rng: random.Random | None = None) -> list[str]:
        """Distractor shapes; with probability similarity*0.6 each one is a
        neighbour of the target in SHAPES order, otherwise uniform."""
        rng = rng or random.Random()
        similarity = self.current_parameters().distractor_similarity
        target_idx = SHAPES.index(target_shape)
        shapes = []
        for _ in range(count):
            if similarity > 0 and rng.random() < similarity * 0.6:
                offset = 1 if rng.random() < 0.5 else -1
                shapes.append(SHAPES[(target_idx + offset) % len(SHAPES)])
            else:
                shapes.append(rng.choice(SHAPES))
        return shapes

    # ─── persistence ────────────────────────────────────────
    def serialize(self) -> dict:
        return {
            "flashDuration": self.flash_duration_ms,
            "distractorCount": self.distractor_count,
            "distractorSimilarity": self.distractor_similarity,
            "peripheralDistance": self.peripheral_distance,
            "recentResults": [{"correct": r.correct, "reactionMs": r.reaction_ms} for r in self.recent],
            "totalRounds": self.total_rounds,
        }

    @classmethod
    def restore(cls, state: dict | None, *, window: int = ACCURACY_WINDOW) -> "DifficultyController":
        """Rebuild from ``serialize()`` output. Missing keys take defaults."""
        controller = cls(window=window)
        if not state:
            return controller
        controller.flash_duration_ms = float(state.get("flashDuration", DEFAULT_FLASH_MS))
        controller.distractor_count = float(state.get("distractorCount", DEFAULT_DISTRACTORS))
        controller.distractor_similarity = float(state.get("distractorSimilarity", DEFAULT_SIMILARITY))
        controller.peripheral_distance = float(state.get("peripheralDistance", DEFAULT_PERIPHERAL))
        for r in state.get("recentResults") or []:
            controller.recent.append(RoundOutcome(bool(r.get("correct")), float(r.get("reactionMs", 0.0))))
        controller.total_rounds = int(state.get("totalRounds", 0))
        return controller
