from dataclasses import dataclass

from neurolink.rules import DEMOTE_ABOVE_MS, PROMOTE_AT_MS, Tier

SMOOTHING = 0.15
MISS_PENALTY = 0.20
PERFORMANCE_CEILING_MS = 1500
PERFORMANCE_FLOOR = 100


@dataclass(frozen=True)
class RoundScore:
    score: float
    tier: Tier


def performance(speed_ms: float) -> float:
    return max(PERFORMANCE_FLOOR, PERFORMANCE_CEILING_MS - speed_ms)


def score_correct(score: float, speed_ms: float, tier: Tier) -> float:
    """Move ``score`` 15% of the way toward this round's raw points.

    A correct answer never lowers the score, even when the raw points for a
    slow round sit below the current score.
    """
    raw_points = performance(speed_ms) * tier.multiplier * 10
    delta = (raw_points - score) * SMOOTHING
    return score + max(0.0, delta)


def score_incorrect(score: float) -> float:
    return max(0.0, score - score * MISS_PENALTY)


def next_tier(tier: Tier, correct: bool, speed_ms: float) -> Tier:
    """One step along the ladder at most.

    Promotion and demotion thresholds are separate tables; the gap between a
    tier's demotion line and the promotion line below it keeps borderline
    speeds from bouncing a player between tiers.
    """
    if correct:
        threshold = PROMOTE_AT_MS.get(tier)
        if threshold is not None and speed_ms <= threshold:
            return tier.promoted()
        return tier
    threshold = DEMOTE_ABOVE_MS.get(tier)
    if threshold is not None and speed_ms > threshold:
        return tier.demoted()
    return tier


def apply_round(score: float, tier: Tier, correct: bool, speed_ms: float) -> RoundScore:
    if correct:
        new_score = score_correct(score, speed_ms, tier)
    else:
        new_score = score_incorrect(score)
    return RoundScore(score=new_score, tier=next_tier(tier, correct, speed_ms))
