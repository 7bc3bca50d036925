from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request

from neurolink import db
from neurolink.errors import InvalidArgument
from neurolink.models import DailyProfile, PlayerProfile, utcnow
from neurolink.rules import STANDARD, parse_mode

leaderboard = Blueprint('leaderboard', __name__)


def fetch_leaderboard(mode: str, count: int) -> list:
    """Ranked rows for ``mode``, best score first.

    ``count`` is capped at the per-mode fetch size. Daily boards drop any row
    not written within DAILY_STALE_HOURS.
    """
    cfg = current_app.config
    if mode == STANDARD:
        cap = int(cfg.get('LEADERBOARD_FETCH_SIZE', 50))
        rows = (
            db.session.query(PlayerProfile)
            .order_by(PlayerProfile.score.desc())
            .limit(min(count, cap))
            .all()
        )
        entries = [
            {
                'name': p.name,
                'score': int(p.score or 0),
                'tier': p.tier_value.value,
                'speed': p.speed,
                'secured': p.secured,
                'updated_at': p.updated_at.isoformat() if p.updated_at else None,
            }
            for p in rows
        ]
    else:
        cap = int(cfg.get('DAILY_LEADERBOARD_FETCH_SIZE', 100))
        cutoff = utcnow() - timedelta(hours=int(cfg.get('DAILY_STALE_HOURS', 24)))
        rows = (
            db.session.query(DailyProfile)
            .filter(DailyProfile.mode == mode, DailyProfile.updated_at >= cutoff)
            .order_by(DailyProfile.score.desc())
            .limit(min(count, cap))
            .all()
        )
        players = {
            p.user_id: p
            for p in db.session.query(PlayerProfile).filter(PlayerProfile.user_id.in_([r.user_id for r in rows]))
        }
        entries = [r.to_dict(players.get(r.user_id)) for r in rows]
    for rank, entry in enumerate(entries, start=1):
        entry['rank'] = rank
    return entries


@leaderboard.route('', methods=['GET'])
def get_leaderboard():
    try:
        mode = parse_mode(request.args.get('mode'))
    except ValueError as exc:
        raise InvalidArgument(str(exc)) from exc
    try:
        count = int(request.args.get('count', 20))
    except ValueError as exc:
        raise InvalidArgument('count must be an integer') from exc
    if count < 1:
        raise InvalidArgument('count must be positive')
    return jsonify({'results': fetch_leaderboard(mode, count)})
