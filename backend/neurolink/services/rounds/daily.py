from datetime import datetime, timezone
from typing import Optional

from neurolink import db
from neurolink.models import DailyProfile
from neurolink.rules import Tier


def utc_day(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime('%Y-%m-%d')


def load_daily_profile(user_id: str, mode: str, day: str, session=None) -> DailyProfile:
    """Return today's profile for ``mode``, starting a fresh run if needed.

    A row left over from an earlier day is reset in place: score and round
    count go back to zero and the tier back to T1. Nothing is committed.
    """
    session = session or db.session
    row = session.query(DailyProfile).filter_by(user_id=user_id, mode=mode).first()
    if row is None:
        row = DailyProfile(user_id=user_id, mode=mode, day=day, score=0.0, tier=Tier.T1.value, rounds=0)
        session.add(row)
        return row
    if row.day != day:
        row.day = day
        row.score = 0.0
        row.tier = Tier.T1.value
        row.rounds = 0
    return row
