from codeclicker import db
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime, timezone
from decimal import Decimal


def utcnow():
    return datetime.now(timezone.utc)


# Native JSONB on PostgreSQL, generic JSON elsewhere (SQLite in tests)
JsonCollection = db.JSON().with_variant(JSONB(), 'postgresql')


def format_number(value) -> str:
    """Render a counter as a plain decimal string: no exponent, no trailing zeros."""
    if value is None:
        return '0'
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    if d == 0:
        return '0'
    return format(d.normalize(), 'f')


def json_number(value):
    """Counter as a JSON number; integral values stay exact integers."""
    if value is None:
        return 0
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    if d == d.to_integral_value():
        return int(d)
    return float(d)


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    save = db.relationship('GameSave', back_populates='user', uselist=False)
    leaderboard_entry = db.relationship('LeaderboardEntry', back_populates='user', uselist=False)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class GameSave(db.Model):
    __tablename__ = 'game_saves'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    loc = db.Column(db.Numeric(asdecimal=True), nullable=False, default=0)
    loc_per_second = db.Column(db.Numeric(asdecimal=True), nullable=False, default=0)
    loc_per_click = db.Column(db.Numeric(asdecimal=True), nullable=False, default=1)
    upgrades = db.Column(JsonCollection, nullable=False, default=list)
    buildings = db.Column(JsonCollection, nullable=False, default=list)
    game_version = db.Column(db.String(32), nullable=False, default='0.1')
    last_updated = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    user = db.relationship('User', back_populates='save')


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    total_loc = db.Column(db.Numeric(asdecimal=True), nullable=False, default=0)
    loc_per_second = db.Column(db.Numeric(asdecimal=True), nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    user = db.relationship('User', back_populates='leaderboard_entry')

    def to_dict(self):
        return {
            'username': self.user.username if self.user else None,
            'total_loc': json_number(self.total_loc),
            'loc_per_second': json_number(self.loc_per_second),
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }
