from neurolink import db, bcrypt
from neurolink.rules import Tier
from flask_login import UserMixin
from datetime import datetime, timezone
import json


def utcnow():
    # Naive UTC so sqlite and postgres compare the same way
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AnswerKey(db.Model):
    """The server's copy of one round. One slot per user; a new deal overwrites it."""
    __tablename__ = 'private_session'
    user_id = db.Column(db.String(64), primary_key=True)
    target_shape = db.Column(db.String(16), nullable=False)
    sat_shape = db.Column(db.String(16), nullable=False)
    sat_color_idx = db.Column(db.Integer, nullable=False)
    sat_dir_idx = db.Column(db.Integer, nullable=False)
    target_color_idx = db.Column(db.Integer, nullable=False)
    sat2_shape = db.Column(db.String(16), nullable=False)
    sat2_dir_idx = db.Column(db.Integer, nullable=False)
    target_solid = db.Column(db.Boolean, nullable=False)
    session_salt = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)

    def to_public_dict(self):
        return {
            'targetShape': self.target_shape,
            'satShape': self.sat_shape,
            'satColorIdx': self.sat_color_idx,
            'satDirIdx': self.sat_dir_idx,
            'targetColorIdx': self.target_color_idx,
            'sat2Shape': self.sat2_shape,
            'sat2DirIdx': self.sat2_dir_idx,
            'targetSolid': self.target_solid,
            'sessionSalt': self.session_salt,
        }


class PlayerProfile(UserMixin, db.Model):
    __tablename__ = 'leaderboard'
    user_id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Float, default=0.0, nullable=False)
    tier = db.Column(db.String(2), default=Tier.T1.value, nullable=False)
    speed = db.Column(db.Float, nullable=True)
    streak = db.Column(db.Integer, default=0, nullable=False)
    pin_hash = db.Column(db.String(128), nullable=True)
    session_zone = db.Column(db.Integer, default=0, nullable=False)
    profile_data = db.Column(db.Text, nullable=True)  # JSON-encoded display fields
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False, index=True)

    def get_id(self):
        return self.user_id

    @property
    def tier_value(self) -> Tier:
        return Tier.parse(self.tier)

    @property
    def secured(self) -> bool:
        return self.pin_hash is not None

    def set_pin(self, pin):
        self.pin_hash = bcrypt.generate_password_hash(pin).decode('utf-8')

    def check_pin(self, pin):
        if not self.pin_hash or not pin:
            return False
        return bcrypt.check_password_hash(self.pin_hash, pin)

    @property
    def extra(self) -> dict:
        try:
            return json.loads(self.profile_data) if self.profile_data else {}
        except ValueError:
            return {}

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'name': self.name,
            'score': int(self.score or 0),
            'tier': self.tier_value.value,
            'speed': self.speed,
            'streak': self.streak,
            'secured': self.secured,
            'session_zone': self.session_zone,
            'profile': self.extra,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class DailyProfile(db.Model):
    """Per-mode score for one UTC day. A row for an older day counts as absent."""
    __tablename__ = 'daily_profile'
    __table_args__ = (db.UniqueConstraint('user_id', 'mode', name='uq_daily_profile_user_mode'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    mode = db.Column(db.String(16), nullable=False)
    day = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD (UTC)
    score = db.Column(db.Float, default=0.0, nullable=False)
    tier = db.Column(db.String(2), default=Tier.T1.value, nullable=False)
    rounds = db.Column(db.Integer, default=0, nullable=False)
    speed = db.Column(db.Float, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False, index=True)

    def to_dict(self, player=None):
        """Leaderboard row. ``player`` supplies the display name and pin state."""
        return {
            'user_id': self.user_id,
            'name': player.name if player is not None else self.user_id,
            'mode': self.mode,
            'day': self.day,
            'score': int(self.score or 0),
            'tier': Tier.parse(self.tier).value,
            'rounds': self.rounds,
            'speed': self.speed,
            'secured': player.secured if player is not None else False,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
