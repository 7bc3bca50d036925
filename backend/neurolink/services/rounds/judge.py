import math
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from neurolink import db
from neurolink.errors import Internal, InvalidArgument
from neurolink.models import PlayerProfile
from neurolink.rules import (
    ANSWER_FIELDS,
    STANDARD,
    Tier,
    missing_mandatory_fields,
    parse_mode,
)
from .daily import load_daily_profile, utc_day
from .scoring import apply_round
from .store import RoundKeyStore

TEMPORAL_ANOMALY = 'TEMPORAL_ANOMALY'
INCOMPLETE_ANSWER = 'INCOMPLETE_ANSWER'

_STRING_FIELDS = {'uShape', 'uSat', 'uSat2Shape'}
_BOOL_FIELDS = {'uSolid'}


@dataclass(frozen=True)
class JudgeResult:
    correct: bool
    new_score: int
    new_tier: Tier
    reason: Optional[str] = None

    @classmethod
    def rejected(cls, reason: Optional[str] = None) -> 'JudgeResult':
        return cls(correct=False, new_score=0, new_tier=Tier.T1, reason=reason)

    def to_dict(self):
        payload = {
            'correct': self.correct,
            'newScore': self.new_score,
            'newTier': self.new_tier.value,
        }
        if self.reason:
            payload['reason'] = self.reason
        return payload


def _clean_answer(answer) -> dict:
    if answer is None:
        return {}
    if not isinstance(answer, dict):
        raise InvalidArgument('answer must be an object')
    cleaned = {}
    for field in ANSWER_FIELDS:
        value = answer.get(field)
        if value is None:
            continue  # omitted: not probed at this tier
        if field in _STRING_FIELDS:
            ok = isinstance(value, str)
        elif field in _BOOL_FIELDS:
            ok = isinstance(value, bool)
        else:
            ok = isinstance(value, int) and not isinstance(value, bool)
        if not ok:
            raise InvalidArgument(f'answer.{field} has the wrong type')
        cleaned[field] = value
    return cleaned


def _clean_speed(speed) -> float:
    if isinstance(speed, bool) or not isinstance(speed, (int, float)):
        raise InvalidArgument('speed must be a number')
    speed = float(speed)
    if not math.isfinite(speed) or speed < 0:
        raise InvalidArgument('speed must be a non-negative number')
    return speed


def answer_matches(key, answer: dict) -> bool:
    """True when every supplied field equals the key. Omitted fields pass."""
    for field, column in ANSWER_FIELDS.items():
        if field in answer and answer[field] != getattr(key, column):
            return False
    return True


def submit_round(user_id, answer, speed, salt=None, mode=None, timed_out=False,
                 store=None, now=None) -> JudgeResult:
    """Judge one submission against the stored key.

    Missing/inactive keys and salt mismatches are soft rejections that touch
    nothing. Otherwise the key is consumed and the profile written in one
    transaction, so a retried request can never score twice. A round the
    client reports as timed out is judged incorrect whatever it carries.
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidArgument('userId is required')
    if salt is not None and not isinstance(salt, str):
        raise InvalidArgument('manifest.salt must be a string')
    try:
        mode = parse_mode(mode)
    except ValueError as exc:
        raise InvalidArgument(str(exc)) from exc
    answer = _clean_answer(answer)
    speed = _clean_speed(speed)

    log = current_app.logger
    store = store or RoundKeyStore()
    try:
        key = store.get_active(user_id)
        if key is None:
            log.info(f"[judge-stale] user={user_id} no active round")
            return JudgeResult.rejected()
        if salt is not None and salt != key.session_salt:
            log.info(f"[judge-stale] user={user_id} salt mismatch")
            return JudgeResult.rejected(TEMPORAL_ANOMALY)

        if mode == STANDARD:
            profile = db.session.get(PlayerProfile, user_id)
            if profile is None:
                profile = PlayerProfile(user_id=user_id, name=user_id, score=0.0,
                                        tier=Tier.T1.value, streak=0, session_zone=0)
                db.session.add(profile)
        else:
            profile = load_daily_profile(user_id, mode, utc_day(now))
        tier = Tier.parse(profile.tier)

        correct = not timed_out and answer_matches(key, answer)
        reason = None
        if correct and current_app.config.get('ENFORCE_TIER_FIELDS'):
            missing = missing_mandatory_fields(tier, answer)
            if missing:
                correct = False
                reason = INCOMPLETE_ANSWER
                log.info(f"[judge] user={user_id} missing mandatory fields {missing}")

        outcome = apply_round(float(profile.score or 0.0), tier, correct, speed)

        if not store.claim(user_id, key.session_salt):
            db.session.rollback()
            log.info(f"[judge-stale] user={user_id} round already judged")
            return JudgeResult.rejected()

        profile.score = outcome.score
        profile.tier = outcome.tier.value
        if mode == STANDARD:
            profile.speed = speed
            profile.streak = max(0, profile.streak or 0) + 1 if correct else min(0, profile.streak or 0) - 1
        else:
            profile.speed = speed
            profile.rounds = (profile.rounds or 0) + 1
        db.session.add(profile)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        log.error(f"[storage-fault] judge user={user_id}: {exc}")
        raise Internal('could not record round') from exc

    log.info(
        f"[judge] user={user_id} mode={mode} correct={correct} speed={speed:.0f} "
        f"tier={tier.value}->{outcome.tier.value} score={int(outcome.score)}"
    )
    return JudgeResult(correct=correct, new_score=int(outcome.score), new_tier=outcome.tier, reason=reason)
