"""Game rules shared by the dealer, the judge and the client engine.

Shape/color/direction vocabularies, the tier ladder and everything derived
from a tier (capabilities, score multiplier, promotion/demotion thresholds,
which answer fields a tier probes).
"""

from enum import Enum
from typing import Dict, List, Optional

SHAPES = ['circle', 'square', 'triangle', 'diamond', 'cross']
COLORS = ['#22d3ee', '#4ade80', '#f472b6', '#fbbf24']
DIRECTION_COUNT = 8  # compass points, index 0 = east, clockwise in 45deg steps

QUESTION_TIMEOUT_MS = 15000
STATIC_BURST_MS = 60
ANSWER_LOCK_MS = 320

STANDARD = 'STANDARD'
DAILY_CASUAL = 'DAILY_CASUAL'
DAILY_DEATH = 'DAILY_DEATH'
MODES = (STANDARD, DAILY_CASUAL, DAILY_DEATH)
DAILY_MODES = (DAILY_CASUAL, DAILY_DEATH)

# Answer payload keys as sent over the wire, mapped to AnswerKey columns
ANSWER_FIELDS: Dict[str, str] = {
    'uShape': 'target_shape',
    'uSat': 'sat_shape',
    'uColor': 'sat_color_idx',
    'uDir': 'sat_dir_idx',
    'uTargetColor': 'target_color_idx',
    'uSat2Shape': 'sat2_shape',
    'uSat2Dir': 'sat2_dir_idx',
    'uSolid': 'target_solid',
}


class Tier(str, Enum):
    T1 = 'T1'
    T2 = 'T2'
    T3 = 'T3'
    T4 = 'T4'
    T5 = 'T5'
    T6 = 'T6'

    @property
    def rank(self) -> int:
        return int(self.value[1:])

    @classmethod
    def from_rank(cls, rank: int) -> 'Tier':
        rank = max(1, min(6, int(rank)))
        return cls(f'T{rank}')

    @classmethod
    def parse(cls, value) -> 'Tier':
        """Lenient parse for stored values; anything unknown is T1."""
        if isinstance(value, Tier):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.T1

    # Capability predicates
    @property
    def has_color(self) -> bool:
        return self.rank >= 2

    @property
    def has_direction(self) -> bool:
        return self.rank >= 3

    @property
    def has_target_color(self) -> bool:
        return self.rank >= 4

    @property
    def has_second_satellite(self) -> bool:
        return self.rank >= 5

    @property
    def has_polarity(self) -> bool:
        return self.rank >= 6

    @property
    def uses_roulette(self) -> bool:
        return self.rank >= 4

    @property
    def multiplier(self) -> float:
        return TIER_MULTIPLIERS[self]

    def promoted(self) -> 'Tier':
        return Tier.from_rank(self.rank + 1)

    def demoted(self) -> 'Tier':
        return Tier.from_rank(self.rank - 1)


TIER_MULTIPLIERS: Dict[Tier, float] = {
    Tier.T1: 1.0,
    Tier.T2: 1.5,
    Tier.T3: 2.5,
    Tier.T4: 3.2,
    Tier.T5: 4.0,
    Tier.T6: 5.0,
}

# A correct answer at or under this speed moves the player up from the key tier
PROMOTE_AT_MS: Dict[Tier, int] = {
    Tier.T1: 350,
    Tier.T2: 250,
    Tier.T3: 200,
    Tier.T4: 160,
    Tier.T5: 130,
}

# A miss slower than this drops the player from the key tier. Each value sits
# above the promotion threshold of the tier below.
DEMOTE_ABOVE_MS: Dict[Tier, int] = {
    Tier.T2: 550,
    Tier.T3: 450,
    Tier.T4: 380,
    Tier.T5: 320,
    Tier.T6: 260,
}

# Question kinds, in the order the sequential (T1-T3) interrogation asks them
CENTER = 'CENTER'
SATELLITE = 'SATELLITE'
COLOR = 'COLOR'
DIRECTION = 'DIRECTION'
TARGET_COLOR = 'TARGET_COLOR'
SAT2_SHAPE = 'SAT2_SHAPE'
SAT2_DIR = 'SAT2_DIR'
POLARITY = 'POLARITY'

QUESTION_FIELDS: Dict[str, str] = {
    CENTER: 'uShape',
    SATELLITE: 'uSat',
    COLOR: 'uColor',
    DIRECTION: 'uDir',
    TARGET_COLOR: 'uTargetColor',
    SAT2_SHAPE: 'uSat2Shape',
    SAT2_DIR: 'uSat2Dir',
    POLARITY: 'uSolid',
}

ROULETTE_SIZE = 3


def question_pool(tier: Tier) -> List[str]:
    """Questions unlocked at ``tier`` beyond the mandatory core shape."""
    pool = [SATELLITE]
    if tier.has_color:
        pool.append(COLOR)
    if tier.has_direction:
        pool.append(DIRECTION)
    if tier.has_target_color:
        pool.append(TARGET_COLOR)
    if tier.has_second_satellite:
        pool.extend([SAT2_SHAPE, SAT2_DIR])
    if tier.has_polarity:
        pool.append(POLARITY)
    return pool


def missing_mandatory_fields(tier: Tier, answer: dict) -> List[str]:
    """Answer keys a hardened judge requires from ``tier`` but did not get.

    T1-T3 must answer every unlocked question. T4+ players are asked a random
    sample, so the judge only requires the core shape plus ROULETTE_SIZE pool
    answers.
    """
    present = {k for k, v in answer.items() if v is not None}
    missing = [] if 'uShape' in present else ['uShape']
    pool_fields = [QUESTION_FIELDS[q] for q in question_pool(tier)]
    if not tier.uses_roulette:
        missing.extend(f for f in pool_fields if f not in present)
        return missing
    answered = [f for f in pool_fields if f in present]
    needed = min(ROULETTE_SIZE, len(pool_fields))
    if len(answered) < needed:
        missing.extend(f for f in pool_fields if f not in present)
    return missing


def parse_mode(mode: Optional[str]) -> str:
    if mode is None or mode == '':
        return STANDARD
    mode = str(mode).upper()
    if mode not in MODES:
        raise ValueError(f'unknown mode {mode!r}')
    return mode
