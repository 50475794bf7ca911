from blindclock import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import string
import random

from blindclock.services.timer.state import REGISTERING, format_timestamp


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    games = db.relationship('Game', back_populates='creator')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


def generate_game_code(length=6):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(game_code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(8), unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    note = db.Column(db.Text, nullable=True)
    game_date_time = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    created_by_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    creator = db.relationship('User', back_populates='games')
    tournament_status = db.Column(db.String(32), default=REGISTERING, nullable=False)  # Registering, In Progress, Finished
    blind_structure = db.Column(db.Text, nullable=True)  # JSON-encoded list of levels
    # Replicated tournament clock, written only by the creator's client
    current_blind_level = db.Column(db.Integer, default=0, nullable=False)
    time_remaining_seconds = db.Column(db.Integer, nullable=True)
    timer_running = db.Column(db.Boolean, default=False, nullable=False)
    timer_paused = db.Column(db.Boolean, default=False, nullable=False)
    timer_last_update = db.Column(db.DateTime(timezone=True), nullable=True)
    timer_version = db.Column(db.Integer, default=0, nullable=False)

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code()

    @property
    def blind_levels(self):
        try:
            levels = json.loads(self.blind_structure) if self.blind_structure else []
        except ValueError:
            levels = []
        return levels if isinstance(levels, list) else []

    def is_created_by(self, user):
        return bool(user is not None and getattr(user, 'is_authenticated', False) and user.id == self.created_by_id)

    def timer_state_dict(self):
        return {
            'currentBlindLevel': self.current_blind_level or 0,
            'timeRemainingSeconds': self.time_remaining_seconds,
            'timerRunning': bool(self.timer_running),
            'timerPaused': bool(self.timer_paused),
            'timerLastUpdate': format_timestamp(self.timer_last_update),
            'timerVersion': self.timer_version or 0,
        }

    def to_dict(self):
        data = {
            'id': self.game_code,
            'name': self.name,
            'createdBy': self.creator.username if self.creator else None,
            'createdAt': format_timestamp(self.created_at),
            'gameDateTime': self.game_date_time.isoformat() if self.game_date_time else None,
            'note': self.note,
            'config': {
                'blindStructure': self.blind_levels,
                'tournamentStatus': self.tournament_status or REGISTERING,
            },
        }
        data.update(self.timer_state_dict())
        return data


class SavedBlindStructure(db.Model):
    __tablename__ = 'saved_blind_structure'
    __table_args__ = (db.UniqueConstraint('owner_id', 'name', name='uq_saved_blind_structure_owner_name'),)
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    levels = db.Column(db.Text, nullable=False)  # JSON-encoded list of levels
    enable_bb_antes = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'levels': json.loads(self.levels),
            'enableBBAntes': bool(self.enable_bb_antes),
            'savedAt': format_timestamp(self.created_at),
        }
