from app import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import enum
import json


class GameStatus(enum.Enum):
    SETUP = 'SETUP'
    IN_PROGRESS = 'IN_PROGRESS'
    FINISHED = 'FINISHED'


class PlayerStatus(enum.Enum):
    ALIVE = 'ALIVE'
    SAFE = 'SAFE'
    KILLED = 'KILLED'
    DISQUALIFIED = 'DISQUALIFIED'


class PlayerRole(enum.Enum):
    ADMIN = 'ADMIN'
    PLAYER = 'PLAYER'
    NONE = 'NONE'


class AssignmentStatus(enum.Enum):
    PENDING = 'PENDING'
    COMPLETE = 'COMPLETE'
    EXPIRED = 'EXPIRED'


# Statuses of players still taking part in the game
LIVE_STATUSES = (PlayerStatus.ALIVE, PlayerStatus.SAFE)
OUT_STATUSES = (PlayerStatus.KILLED, PlayerStatus.DISQUALIFIED)


def _load_list(raw):
    try:
        return json.loads(raw) if raw else []
    except ValueError:
        return []


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(64), nullable=False, default='')
    surname = db.Column(db.String(64), nullable=False, default='')
    password_hash = db.Column(db.String(256), nullable=False)

    @property
    def full_name(self):
        return f"{self.first_name} {self.surname}"

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'surname': self.surname,
        }


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, default='')
    status = db.Column(db.Enum(GameStatus, native_enum=False, length=16), nullable=False, default=GameStatus.SETUP)
    admin_emails = db.Column(db.Text, nullable=True)  # JSON-encoded list of emails
    whitelist = db.Column(db.Text, nullable=True)  # JSON-encoded list of emails, empty means open
    players = db.relationship('Player', back_populates='game')

    @property
    def admins(self):
        return _load_list(self.admin_emails)

    @admins.setter
    def admins(self, emails):
        self.admin_emails = json.dumps([e.lower() for e in emails])

    @property
    def whitelisted_emails(self):
        return _load_list(self.whitelist)

    @whitelisted_emails.setter
    def whitelisted_emails(self, emails):
        self.whitelist = json.dumps([e.lower() for e in emails])

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status.value,
            'admins': self.admins,
            'player_count': len(self.players),
        }


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (db.UniqueConstraint('game_id', 'user_id', name='uq_player_game_user'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    status = db.Column(db.Enum(PlayerStatus, native_enum=False, length=16), nullable=False, default=PlayerStatus.ALIVE)
    team_partner_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    invited_ids = db.Column(db.Text, nullable=True)  # JSON-encoded list of user ids this player invited
    invited_by_ids = db.Column(db.Text, nullable=True)  # JSON-encoded list of user ids who invited this player
    version = db.Column(db.Integer, nullable=False)
    game = db.relationship('Game', back_populates='players')
    user = db.relationship('User')

    __mapper_args__ = {'version_id_col': version}

    @property
    def invited(self):
        return _load_list(self.invited_ids)

    @invited.setter
    def invited(self, user_ids):
        self.invited_ids = json.dumps(list(user_ids))

    @property
    def invited_by(self):
        return _load_list(self.invited_by_ids)

    @invited_by.setter
    def invited_by(self, user_ids):
        self.invited_by_ids = json.dumps(list(user_ids))

    @property
    def is_live(self):
        return self.status in LIVE_STATUSES

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'user_id': self.user_id,
            'status': self.status.value,
            'team_partner_id': self.team_partner_id,
        }


class TargetAssignment(db.Model):
    __tablename__ = 'target_assignment'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    target_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False, index=True)
    status = db.Column(db.Enum(AssignmentStatus, native_enum=False, length=16), nullable=False, default=AssignmentStatus.PENDING)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    version = db.Column(db.Integer, nullable=False)

    player = db.relationship('Player', foreign_keys=[player_id])
    target = db.relationship('Player', foreign_keys=[target_id])

    __mapper_args__ = {'version_id_col': version}
    __table_args__ = (
        db.CheckConstraint('player_id <> target_id', name='ck_target_assignment_not_self'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'player_id': self.player_id,
            'target_id': self.target_id,
            'status': self.status.value,
        }
