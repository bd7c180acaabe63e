"""Game event relay.

Joins the external quiz service through a game client, reshapes each
lifecycle event into the display state the browser renders, and fans it out
to every Socket.IO connection registered for the join code.
"""
import functools
import random
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context

from quizrelay import socketio
from quizrelay.clients import GameClient, load_client_factory
from quizrelay.services import storage
from quizrelay.services.registry import ActiveGame, SessionRegistry
from quizrelay.services.auto_answer import schedule_auto_answer

NAMESPACE = '/ws'

# Answer colour/shape by choice index
COLORS = ['red', 'blue', 'yellow', 'green']
SHAPES = ['triangle', 'square', 'circle', 'diamond']

DEFAULT_QUESTION_TEXT = 'Unknown question'
DEFAULT_QUESTION_TYPE = 'Multiple Choice'
JOIN_FAILED_MESSAGE = 'Could not join game. Invalid PIN or game not found.'


def get_relay(app=None) -> 'GameRelay':
    return (app or current_app).extensions['game_relay']


def map_answers(choices: List[Any]) -> List[Dict[str, Any]]:
    """Attach colour and shape to each choice; correctness starts unknown."""
    answers = []
    for index, choice in enumerate(choices or []):
        text = choice.get('answer') if isinstance(choice, dict) else choice
        answers.append({
            'text': '' if text is None else str(text),
            'color': COLORS[index % len(COLORS)],
            'shape': SHAPES[index % len(SHAPES)],
            'isCorrect': None,
        })
    return answers


def display_answers(answers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {'text': a.get('text', ''), 'color': a.get('color'), 'shape': a.get('shape'), 'isCorrect': bool(a.get('isCorrect'))}
        for a in answers or []
    ]


def correct_indices_from(flags: List[Any]) -> List[int]:
    return [index for index, flag in enumerate(flags or []) if flag]


def _game_state(data: Dict[str, Any]) -> Dict[str, Any]:
    return {'type': 'gameState', 'data': data}


def _error(message: str) -> Dict[str, Any]:
    return {'type': 'error', 'message': message}


class GameRelay:

    def __init__(self, app):
        self.app = app
        self.registry = SessionRegistry()
        self._join_guard = threading.Lock()
        self._join_locks: Dict[str, threading.Lock] = {}

    # ---- plumbing ----

    @contextmanager
    def app_context(self):
        if has_app_context() and current_app._get_current_object() is self.app:
            yield
        else:
            with self.app.app_context():
                yield

    def send(self, sid: str, envelope: Dict[str, Any]) -> bool:
        try:
            socketio.emit('message', envelope, to=sid, namespace=NAMESPACE)
            return True
        except Exception as exc:
            self.app.logger.warning(f"[relay] send to sid={sid} failed: {exc}")
            return False

    def _broadcast(self, game_pin: str, envelope: Dict[str, Any]) -> int:
        delivered = 0
        for record in self.registry.listeners(game_pin):
            if self.send(record.sid, envelope):
                delivered += 1
        return delivered

    def _new_client(self) -> GameClient:
        factory = load_client_factory(self.app.config.get('GAME_CLIENT_FACTORY'))
        return factory()

    def _bind(self, client: GameClient, game_pin: str) -> None:
        handlers = {
            'quizStart': self.on_quiz_start,
            'questionStart': self.on_question_start,
            'questionEnd': self.on_question_end,
            'quizEnd': self.on_quiz_end,
            'error': self.on_error,
            'disconnect': self.on_disconnect,
        }
        for event, handler in handlers.items():
            client.on(event, functools.partial(self._dispatch, client, game_pin, handler))

    def _dispatch(self, client: GameClient, game_pin: str, handler, payload: Any) -> None:
        with self.app_context():
            game = self.registry.get_game(game_pin)
            if game is None or game.client is not client:
                self.app.logger.info(f"[relay] pin={game_pin} ignoring event from inactive client")
                return
            handler(game_pin, payload)

    def _progress(self, game: ActiveGame, current: Optional[int] = None) -> Dict[str, int]:
        return {
            'current': game.current_question_index + 1 if current is None else current,
            'total': game.total_questions,
            'points': game.points,
        }

    def _retire_game(self, game: ActiveGame, leave_client: bool = True) -> None:
        self.registry.remove_game(game.game_pin)
        try:
            if leave_client:
                game.client.leave()
            else:
                game.client.close()
        except Exception as exc:
            self.app.logger.warning(f"[leave] pin={game.game_pin} client shutdown failed: {exc}")
        if game.session_id is not None:
            storage.update_game_session(game.session_id, active=False)

    def _join_lock(self, game_pin: str) -> threading.Lock:
        with self._join_guard:
            return self._join_locks.setdefault(game_pin, threading.Lock())

    # ---- transport lifecycle ----

    def connect(self, sid: str) -> None:
        self.registry.add_connection(sid)
        self.app.logger.info(f"[ws] client connected sid={sid}")

    def drop_connection(self, sid: str) -> None:
        self.disconnect_from_game(sid, notify=False)
        self.registry.remove_connection(sid)
        self.app.logger.info(f"[ws] client disconnected sid={sid}")

    def connection_count(self) -> int:
        return self.registry.connection_count()

    # ---- commands ----

    def join_game(self, sid: str, game_pin: Any) -> bool:
        """Follow a live game; sends exactly one notification to ``sid``."""
        pin = str(game_pin or '').strip()
        record = self.registry.add_connection(sid)
        if not pin.isdigit():
            self.send(sid, _error(JOIN_FAILED_MESSAGE))
            return False

        if record.game_pin and record.game_pin != pin:
            self.disconnect_from_game(sid, notify=False)

        # One join per pin at a time so a pin never gets two clients
        with self._join_lock(pin):
            game = self.registry.get_game(pin)
            if game is None:
                name = f"{self.app.config.get('PLAYER_NAME_PREFIX', 'Player_')}{random.randint(0, 9999)}"
                self.app.logger.info(f"[join] pin={pin} joining as {name}")
                client = None
                try:
                    client = self._new_client()
                    self._bind(client, pin)
                    client.join(pin, name)
                except Exception as exc:
                    self.app.logger.warning(f"[join] pin={pin} failed: {exc}")
                    if client is not None:
                        client.close()
                    self.send(sid, _error(JOIN_FAILED_MESSAGE))
                    return False
                session = storage.create_game_session(
                    pin,
                    game_id=f'kahoot-{pin}',
                    active=True,
                    question_count=0,
                    current_question=0,
                )
                game = self.registry.create_game(pin, client, session.id)
            else:
                self.app.logger.info(f"[join] pin={pin} sharing existing client")

            self.registry.attach(sid, game)
        self.send(sid, _game_state(self._snapshot(game)))
        return True

    def disconnect_from_game(self, sid: str, notify: bool = True) -> bool:
        record = self.registry.get_connection(sid)
        if record is None or record.game_pin is None:
            return False
        pin = record.game_pin
        with self._join_lock(pin):
            game = self.registry.detach(sid)
            if game is not None and not game.connections:
                self._retire_game(game)
        self.app.logger.info(f"[leave] sid={sid} left pin={pin}")
        if notify:
            self.send(sid, _game_state({'connected': False}))
        return True

    def select_answer(self, sid: str, answer_index: int) -> bool:
        record = self.registry.get_connection(sid)
        if record is None or record.game_pin is None:
            return False
        game = self.registry.get_game(record.game_pin)
        if game is None or not game.question_live or answer_index < 0:
            return False
        self.app.logger.info(
            f"[answer] pin={game.game_pin} question={game.current_question_index + 1} choice={answer_index}"
        )
        try:
            game.client.answer_question(answer_index)
        except Exception as exc:
            self.app.logger.warning(f"[answer] pin={game.game_pin} failed: {exc}")
            self.send(sid, _error(f'Error with game: {exc}'))
            return False
        game.answered_index = answer_index
        record.selected = (game.current_question_index, answer_index)
        return True

    def set_auto_answer(self, sid: str, enabled: bool) -> bool:
        record = self.registry.get_connection(sid)
        if record is None:
            return False
        record.auto_answer = bool(enabled)
        self.app.logger.info(f"[auto-answer] sid={sid} enabled={record.auto_answer}")
        game = self.registry.get_game(record.game_pin) if record.game_pin else None
        if record.auto_answer and game and game.question_live and game.answered_index is None:
            schedule_auto_answer(self.app, self, sid, game.game_pin, game.current_question_index, record.answer_delay)
        return True

    def set_answer_delay(self, sid: str, enabled: bool) -> bool:
        record = self.registry.get_connection(sid)
        if record is None:
            return False
        record.answer_delay = bool(enabled)
        self.app.logger.info(f"[auto-answer] sid={sid} delay={record.answer_delay}")
        return True

    def auto_answer(self, sid: str, game_pin: str, question_index: int) -> bool:
        """Answer on behalf of ``sid`` unless the question moved on or was answered."""
        record = self.registry.get_connection(sid)
        game = self.registry.get_game(game_pin)
        if record is None or game is None or not record.auto_answer or record.game_pin != game_pin:
            return False
        if not game.question_live or game.current_question_index != question_index or game.answered_index is not None:
            return False
        choice = 0
        stored = storage.get_question_by_index(game.session_id, question_index)
        if stored is not None:
            known = correct_indices_from([a.get('isCorrect') for a in stored.answers or []])
            if known:
                choice = known[0]
        return self.select_answer(sid, choice)

    # ---- queries ----

    def _snapshot(self, game: ActiveGame) -> Dict[str, Any]:
        state: Dict[str, Any] = {'gamePin': game.game_pin, 'connected': True}
        index = game.current_question_index
        current = storage.get_question_by_index(game.session_id, index) if game.question_live else None
        if current is not None:
            state['currentQuestion'] = {
                'text': current.question_text,
                'type': current.question_type,
                'answers': display_answers(current.answers),
                'timeLeft': current.time_limit,
            }
        previous = storage.get_question_by_index(game.session_id, index - 1) if index > 0 else None
        if previous is not None:
            state['previousQuestion'] = {
                'text': previous.question_text,
                'correctAnswer': (previous.correct_answer or {}).get('text'),
            }
        started = game.question_live or index > 0
        state['gameProgress'] = self._progress(game, None if started else 0)
        return state

    def get_game_state(self, game_pin: str) -> Optional[Dict[str, Any]]:
        game = self.registry.get_game(str(game_pin))
        if game is None:
            return None
        return self._snapshot(game)

    def session_for(self, game_pin: str):
        game = self.registry.get_game(str(game_pin))
        if game is not None and game.session_id is not None:
            return storage.get_game_session(game.session_id)
        return storage.get_game_session_by_pin(str(game_pin))

    # ---- external client events ----

    def on_quiz_start(self, game_pin: str, quiz: Dict[str, Any]) -> None:
        game = self.registry.get_game(game_pin)
        if game is None:
            return
        quiz = quiz or {}
        self.registry.update_game(
            game_pin,
            quiz_name=quiz.get('name'),
            total_questions=int(quiz.get('questionCount') or 0),
            points=0,
        )
        self.app.logger.info(f"[relay] pin={game_pin} quiz started: {game.quiz_name}")
        storage.update_game_session(game.session_id, question_count=game.total_questions)
        self._broadcast(game_pin, _game_state({
            'gamePin': game_pin,
            'connected': True,
            'gameProgress': self._progress(game, 0),
        }))

    def on_question_start(self, game_pin: str, question: Dict[str, Any]) -> None:
        game = self.registry.get_game(game_pin)
        if game is None:
            return
        question = question or {}
        index = int(question.get('index') or 0)
        total = int((question.get('quiz') or {}).get('questionCount') or 0)
        if total:
            game.total_questions = total
        answers = map_answers(question.get('choices') or [])
        text = question.get('question') or DEFAULT_QUESTION_TEXT
        question_type = question.get('type') or DEFAULT_QUESTION_TYPE
        time_left = float(question.get('timeLimit') or 0) / 1000
        points = int(question.get('points') or 0)

        game.current_question_index = index
        game.question_live = True
        game.answered_index = None
        self.app.logger.info(f"[relay] pin={game_pin} question {index + 1}/{game.total_questions}")

        stored = storage.get_question_by_index(game.session_id, index)
        if stored is None:
            storage.create_question(
                game.session_id,
                index,
                question_text=text,
                question_type=question_type,
                answers=answers,
                correct_answer=None,
                time_limit=time_left,
                points=points,
            )
        else:
            fields = dict(question_text=text, question_type=question_type, time_limit=time_left, points=points)
            if not stored.revealed:
                fields['answers'] = answers
            storage.update_question(stored.id, **fields)
        storage.update_game_session(game.session_id, current_question=index)

        self._broadcast(game_pin, _game_state({
            'gamePin': game_pin,
            'connected': True,
            'currentQuestion': {
                'text': text,
                'type': question_type,
                'answers': display_answers(answers),
                'timeLeft': time_left,
            },
            'gameProgress': self._progress(game),
        }))

        for record in self.registry.listeners(game_pin):
            if record.auto_answer:
                schedule_auto_answer(self.app, self, record.sid, game_pin, index, record.answer_delay)

    def on_question_end(self, game_pin: str, result: Dict[str, Any]) -> None:
        game = self.registry.get_game(game_pin)
        if game is None:
            return
        result = result or {}
        index = result.get('questionIndex')
        index = game.current_question_index if index is None else int(index)
        correct = correct_indices_from(result.get('correctChoices'))
        if index == game.current_question_index:
            game.question_live = False
        if result.get('totalScore') is not None:
            game.points = int(result['totalScore'])
        self.app.logger.info(f"[relay] pin={game_pin} question {index + 1} ended correct={correct}")

        if storage.reveal_correct_answers(game.session_id, index, correct) is None:
            self.app.logger.info(f"[relay] pin={game_pin} question {index + 1} already revealed or unknown")

        for record in self.registry.listeners(game_pin):
            selected = record.selected[1] if record.selected and record.selected[0] == index else None
            self.send(record.sid, {
                'type': 'questionResult',
                'data': {'correctIndices': correct, 'questionIndex': index, 'selectedIndex': selected},
            })
            if selected is not None:
                self.send(record.sid, {
                    'type': 'answerResult',
                    'data': {'answerIndex': selected, 'correct': selected in correct},
                })

    def on_quiz_end(self, game_pin: str, quiz: Dict[str, Any]) -> None:
        game = self.registry.get_game(game_pin)
        if game is None:
            return
        total = int((quiz or {}).get('questionCount') or game.total_questions)
        game.question_live = False
        self.app.logger.info(f"[relay] pin={game_pin} quiz ended")
        storage.update_game_session(game.session_id, active=False)
        self._broadcast(game_pin, _game_state({
            'gamePin': game_pin,
            'connected': True,
            'gameProgress': {'current': total, 'total': total, 'points': game.points},
            'quizEnded': True,
        }))

    def on_error(self, game_pin: str, error: Any) -> None:
        self.app.logger.warning(f"[relay] pin={game_pin} client error: {error}")
        self._broadcast(game_pin, _error(f'Error with game: {error}'))

    def on_disconnect(self, game_pin: str, reason: Any) -> None:
        game = self.registry.get_game(game_pin)
        if game is None:
            return
        self.app.logger.info(f"[relay] pin={game_pin} disconnected from game: {reason}")
        self._broadcast(game_pin, _game_state({'connected': False}))
        for record in self.registry.listeners(game_pin):
            self.registry.detach(record.sid)
        self._retire_game(game, leave_client=False)
