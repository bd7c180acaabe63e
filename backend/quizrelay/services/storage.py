"""Record store for users, game sessions and questions.

Thin CRUD helpers over the SQLAlchemy models. Lookups that miss return
None rather than raising so callers can treat them as no-ops.
"""
from typing import Any, Dict, Iterable, List, Optional

from quizrelay import db
from quizrelay.models import User, GameSession, Question


# ---- Users ----

def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def get_user_by_username(username: str) -> Optional[User]:
    return User.query.filter_by(username=username).first()


def create_user(username: str, password: str) -> User:
    user = User(username=username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


# ---- Game sessions ----

def create_game_session(game_pin: str, game_id: Optional[str] = None, **fields) -> GameSession:
    session = GameSession(game_pin=game_pin, game_id=game_id, **fields)
    db.session.add(session)
    db.session.commit()
    return session


def get_game_session(session_id: int) -> Optional[GameSession]:
    return db.session.get(GameSession, session_id)


def get_game_session_by_pin(game_pin: str) -> Optional[GameSession]:
    """Return the active session for a pin, if any."""
    for session in GameSession.query.order_by(GameSession.id).all():
        if session.game_pin == game_pin and session.active:
            return session
    return None


def update_game_session(session_id: int, **fields) -> Optional[GameSession]:
    session = get_game_session(session_id)
    if not session:
        return None
    for key, value in fields.items():
        setattr(session, key, value)
    db.session.add(session)
    db.session.commit()
    return session


# ---- Questions ----

def create_question(game_session_id: int, question_index: int, **fields) -> Question:
    question = Question(game_session_id=game_session_id, question_index=question_index, **fields)
    db.session.add(question)
    db.session.commit()
    return question


def get_questions_by_game_session(game_session_id: int) -> List[Question]:
    return (
        Question.query.filter_by(game_session_id=game_session_id)
        .order_by(Question.question_index)
        .all()
    )


def get_question_by_index(game_session_id: int, index: int) -> Optional[Question]:
    return Question.query.filter_by(game_session_id=game_session_id, question_index=index).first()


def update_question(question_id: int, **fields) -> Optional[Question]:
    question = db.session.get(Question, question_id)
    if not question:
        return None
    for key, value in fields.items():
        setattr(question, key, value)
    db.session.add(question)
    db.session.commit()
    return question


def reveal_correct_answers(game_session_id: int, index: int, correct_indices: Iterable[int]) -> Optional[Question]:
    """Mark which answers of one question are correct.

    Correctness is write-once: returns None when the question is unknown or
    has already been revealed, leaving the stored row untouched.
    """
    question = get_question_by_index(game_session_id, index)
    if not question or question.revealed:
        return None
    correct = set(correct_indices)
    answers: List[Dict[str, Any]] = [
        dict(ans, isCorrect=idx in correct) for idx, ans in enumerate(question.answers or [])
    ]
    first_correct = next((ans for ans in answers if ans['isCorrect']), None)
    return update_question(question.id, answers=answers, correct_answer=first_correct, revealed=True)
