from flask import request
from flask_socketio import join_room, leave_room, emit
from neurolink import socketio, db
from neurolink.models import PlayerProfile
from typing import Dict


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    _sid_to_user.pop(_get_sid(), None)


def handle_subscribe_profile(data):
    """Join the user's room; judged rounds push `profile_update` there."""
    user_id = (data or {}).get('user_id')
    if not user_id:
        emit('error', {'message': 'user_id is required'})
        return
    # One live subscription per socket, like a single snapshot listener
    previous = _sid_to_user.get(_get_sid())
    if previous and previous != user_id:
        leave_room(f"user:{previous}")
    room = f"user:{user_id}"
    join_room(room)
    _sid_to_user[_get_sid()] = user_id
    emit('subscribed', {'room': room})
    profile = db.session.get(PlayerProfile, user_id)
    if profile is not None:
        emit('profile_update', profile.to_dict())


def handle_unsubscribe_profile(data=None):
    user_id = _sid_to_user.pop(_get_sid(), None)
    if not user_id:
        return
    room = f"user:{user_id}"
    leave_room(room)
    emit('unsubscribed', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


_sid_to_user: Dict[str, str] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('subscribe_profile', handle_subscribe_profile, namespace=namespace)
        socketio.on_event('unsubscribe_profile', handle_unsubscribe_profile, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
