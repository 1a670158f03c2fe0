from datetime import datetime, timezone

from flask_login import UserMixin

from mathdash import db, bcrypt


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    avatar_url = db.Column(db.String(512), nullable=True)
    scores = db.relationship('Score', back_populates='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'avatar_url': self.avatar_url,
        }


class Score(db.Model):
    __tablename__ = 'math_scores'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    operation_type = db.Column(db.String(32), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    user = db.relationship('User', back_populates='scores')

    def to_dict(self):
        return {
            'id': self.id,
            'score': self.score,
            'operation_type': self.operation_type,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'username': self.user.username if self.user else None,
            'avatar_url': self.user.avatar_url if self.user else None,
        }


class LevelProgress(db.Model):
    """Last difficulty level reached, per player and operation."""
    __tablename__ = 'level_progress'
    __table_args__ = (db.UniqueConstraint('owner_key', 'operation', name='uq_level_progress_owner_operation'),)
    id = db.Column(db.Integer, primary_key=True)
    owner_key = db.Column(db.String(64), nullable=False, index=True)
    operation = db.Column(db.String(32), nullable=False)
    level = db.Column(db.Integer, default=0, nullable=False)
