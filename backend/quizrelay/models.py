from quizrelay import db
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timezone


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    game_pin = db.Column(db.String(16), nullable=False, index=True)
    game_id = db.Column(db.String(64), nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False)
    question_count = db.Column(db.Integer, default=0, nullable=False)
    current_question = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.String(40), nullable=False, default=utc_timestamp)
    questions = db.relationship('Question', backref='game_session', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'gamePin': self.game_pin,
            'gameId': self.game_id,
            'active': self.active,
            'questionCount': self.question_count,
            'currentQuestion': self.current_question,
            'createdAt': self.created_at,
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    question_index = db.Column(db.Integer, nullable=False)
    question_text = db.Column(db.Text, nullable=True)
    question_type = db.Column(db.String(64), nullable=True)
    # [{'text', 'color', 'shape', 'isCorrect'}]; isCorrect is None until revealed
    answers = db.Column(db.JSON, nullable=True)
    correct_answer = db.Column(db.JSON, nullable=True)
    time_limit = db.Column(db.Float, nullable=True)
    points = db.Column(db.Integer, default=0)
    # Set once the external service reveals the correct answers
    revealed = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'gameSessionId': self.game_session_id,
            'questionIndex': self.question_index,
            'questionText': self.question_text,
            'questionType': self.question_type,
            'answers': self.answers or [],
            'correctAnswer': self.correct_answer,
            'timeLimit': self.time_limit,
            'points': self.points,
            'revealed': self.revealed,
        }
