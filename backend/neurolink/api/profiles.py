from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError
import json

from neurolink import db
from neurolink.errors import Internal, InvalidArgument, Unauthenticated
from neurolink.models import PlayerProfile
from neurolink.rules import Tier

profiles = Blueprint('profiles', __name__)

# Display fields the client may push. Score and tier are owned by the judge.
SYNCABLE_FIELDS = {
    'history',
    'resultsHistory',
    'sessions',
    'achievements',
    'totalSessions',
    'trainingBlock',
    'lastBoosterDate',
    'dailyStreak',
    'lastPlayDate',
    'dailyCasualStreak',
    'dailyDeathStreak',
    'accuracy',
    'peakScore',
    'totalTimeMs',
    'difficulty',
}


def _require_user_id(data) -> str:
    user_id = data.get('userId')
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidArgument('userId is required')
    return user_id


def _is_owner(profile: PlayerProfile) -> bool:
    return current_user.is_authenticated and current_user.get_id() == profile.user_id


def _get_or_create(user_id: str) -> PlayerProfile:
    profile = db.session.get(PlayerProfile, user_id)
    if profile is None:
        profile = PlayerProfile(user_id=user_id, name=user_id, score=0.0,
                                tier=Tier.T1.value, streak=0, session_zone=0)
        db.session.add(profile)
    return profile


def _commit(what: str, user_id: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[storage-fault] {what} user={user_id}: {exc}")
        raise Internal(f'could not {what}') from exc


@profiles.route('/<string:user_id>', methods=['GET'])
def lookup_profile(user_id):
    profile = db.session.get(PlayerProfile, user_id)
    if profile is None:
        return jsonify({'error': 'not-found', 'message': 'Profile not found'}), 404
    return jsonify(profile.to_dict())


@profiles.route('/pin', methods=['POST'])
def set_pin():
    data = request.get_json(silent=True) or {}
    user_id = _require_user_id(data)
    pin = data.get('pin')
    length = int(current_app.config.get('PIN_LENGTH', 4))
    if not isinstance(pin, str) or len(pin) != length or not pin.isdigit():
        raise InvalidArgument(f'pin must be {length} digits')

    profile = _get_or_create(user_id)
    if profile.secured and not _is_owner(profile):
        db.session.rollback()
        raise Unauthenticated('log in with the current pin first')
    profile.set_pin(pin)
    _commit('set pin', user_id)
    current_app.logger.info(f"[pin] user={user_id} secured")
    return jsonify({'success': True})


@profiles.route('/sync', methods=['POST'])
def sync_profile():
    data = request.get_json(silent=True) or {}
    user_id = _require_user_id(data)
    incoming = data.get('profileData')
    if not isinstance(incoming, dict):
        raise InvalidArgument('profileData must be an object')

    profile = _get_or_create(user_id)
    if profile.secured and not _is_owner(profile):
        db.session.rollback()
        raise Unauthenticated('profile is pin protected')

    extra = profile.extra
    for field in SYNCABLE_FIELDS:
        if field in incoming:
            extra[field] = incoming[field]
    name = incoming.get('name')
    if isinstance(name, str) and name.strip():
        profile.name = name.strip()[:64]
    zone = incoming.get('sessionZone')
    if isinstance(zone, int) and not isinstance(zone, bool):
        profile.session_zone = max(0, zone)
    profile.profile_data = json.dumps(extra)
    _commit('sync profile', user_id)
    return jsonify(profile.to_dict())


@profiles.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user_id = _require_user_id(data)
    profile = db.session.get(PlayerProfile, user_id)
    if profile and profile.check_pin(data.get('pin')):
        login_user(profile, remember=True)
        return jsonify({'success': True, 'profile': profile.to_dict()})
    current_app.logger.info(f"[login-failed] user={user_id}")
    return jsonify({'success': False, 'message': 'Invalid user or pin'}), 401


@profiles.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})
