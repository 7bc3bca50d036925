from flask import Blueprint, jsonify, request
from neurolink import db, socketio
from neurolink.models import PlayerProfile
from neurolink.rules import STANDARD
from neurolink.services.rounds import generate_round, submit_round


rounds = Blueprint('rounds', __name__)


def _emit_profile_update(user_id: str) -> None:
    profile = db.session.get(PlayerProfile, user_id)
    if profile is None:
        return
    socketio.emit('profile_update', profile.to_dict(), to=f"user:{user_id}", namespace='/ws')


@rounds.route('/generate', methods=['POST'])
def generate():
    data = request.get_json(silent=True) or {}
    return jsonify(generate_round(data.get('userId')))


@rounds.route('/submit', methods=['POST'])
def submit():
    data = request.get_json(silent=True) or {}
    manifest = data.get('manifest') or {}
    salt = manifest.get('salt') if isinstance(manifest, dict) else None
    mode = data.get('mode') or STANDARD
    result = submit_round(
        data.get('userId'),
        data.get('answer'),
        data.get('speed'),
        salt=salt,
        mode=mode,
        timed_out=data.get('timedOut') is True,
    )
    if str(mode).upper() == STANDARD:
        _emit_profile_update(data.get('userId'))
    return jsonify(result.to_dict())
