import random
import secrets

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from neurolink import db
from neurolink.errors import Internal, InvalidArgument
from neurolink.rules import COLORS, DIRECTION_COUNT, SHAPES
from .store import RoundKeyStore


def deal_fields(rng=None) -> dict:
    """Draw every answer-key field independently and uniformly."""
    rng = rng or random.SystemRandom()
    return {
        'target_shape': rng.choice(SHAPES),
        'sat_shape': rng.choice(SHAPES),
        'sat_color_idx': rng.randrange(len(COLORS)),
        'sat_dir_idx': rng.randrange(DIRECTION_COUNT),
        'target_color_idx': rng.randrange(len(COLORS)),
        'sat2_shape': rng.choice(SHAPES),
        'sat2_dir_idx': rng.randrange(DIRECTION_COUNT),
        'target_solid': rng.random() < 0.5,
    }


def generate_round(user_id, rng=None, store=None) -> dict:
    """Deal a fresh round for ``user_id`` and return its public data.

    The client needs every value to draw the stimulus; what it cannot do is
    change the server's copy, which is what the judge reads. The returned
    ``sessionSalt`` must be echoed back on submission.
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidArgument('userId is required')

    store = store or RoundKeyStore()
    fields = deal_fields(rng)
    fields['session_salt'] = secrets.token_hex(16)
    try:
        key = store.put(user_id, **fields)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[storage-fault] deal user={user_id}: {exc}")
        raise Internal('could not store round') from exc

    current_app.logger.info(f"[deal] user={user_id} salt={key.session_salt[:6]}...")
    return key.to_public_dict()
