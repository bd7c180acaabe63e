"""Kahoot client backed by the KahootPY library.

KahootPY is asyncio based, so each client owns a private event loop running
on a daemon thread. Calls from the relay are submitted to that loop and
waited on; library callbacks are re-dispatched as relay events with the
payload shape the relay expects:

- quizStart:     {'name', 'questionCount'}
- questionStart: {'index', 'question', 'type', 'choices': [{'answer'}],
                  'timeLimit' (ms), 'points', 'quiz': {'questionCount'}}
- questionEnd:   {'questionIndex', 'correctChoices': [bool], 'totalScore'}
- quizEnd:       {'questionCount'}
"""
import asyncio
import threading
from typing import Any, Optional

from flask import current_app, has_app_context

from quizrelay.clients import GameClient, GameClientError


def _field(obj: Any, *names, default=None):
    """Read the first present key/attribute from a dict-like or object payload."""
    for name in names:
        if isinstance(obj, dict):
            if obj.get(name) is not None:
                return obj[name]
        elif getattr(obj, name, None) is not None:
            return getattr(obj, name)
    return default


class KahootClient(GameClient):

    def __init__(self, join_timeout: Optional[float] = None):
        super().__init__()
        from KahootPY import KahootClient as _LibraryClient

        if join_timeout is None:
            join_timeout = current_app.config.get('JOIN_TIMEOUT_SEC', 15) if has_app_context() else 15
        self._join_timeout = float(join_timeout)
        self._loop = asyncio.new_event_loop()
        # Unhandled failures inside library tasks surface as relay errors
        self._loop.set_exception_handler(self._on_loop_error)
        self._thread = threading.Thread(target=self._loop.run_forever, name='kahoot-client', daemon=True)
        self._thread.start()
        self._client = _LibraryClient()
        self._question_count = 0
        self._choice_count = 0
        self._client.on('QuizStart', self._on_quiz_start)
        self._client.on('QuestionStart', self._on_question_start)
        self._client.on('QuestionEnd', self._on_question_end)
        self._client.on('QuizEnd', self._on_quiz_end)
        self._client.on('Disconnect', self._on_disconnect)
        self._client.on('HandshakeFailed', self._on_error)

    def _run(self, coro, timeout: Optional[float] = None):
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout)
        except GameClientError:
            raise
        except Exception as exc:
            future.cancel()
            raise GameClientError(str(exc) or exc.__class__.__name__) from exc

    def join(self, game_pin: str, name: str) -> None:
        try:
            pin = int(game_pin)
        except (TypeError, ValueError) as exc:
            raise GameClientError(f'invalid game pin: {game_pin!r}') from exc
        self._run(self._client.join(pin, name), timeout=self._join_timeout)

    def leave(self) -> None:
        try:
            self._run(self._client.leave(), timeout=self._join_timeout)
        finally:
            self.close()

    def close(self) -> None:
        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._loop.stop)

    def answer_question(self, choice: int) -> None:
        self._run(self._client.answer(choice), timeout=self._join_timeout)

    # ---- library callbacks (run on the client loop) ----

    def _safe_dispatch(self, event: str, payload: Any) -> None:
        try:
            self.dispatch(event, payload)
        except Exception as exc:
            # Relay failures must not kill the library's receive loop
            self.dispatch('error', exc)

    def _on_quiz_start(self, quiz=None):
        per_question = _field(quiz, 'quizQuestionAnswers')
        if isinstance(per_question, list):
            self._question_count = len(per_question)
        else:
            self._question_count = int(_field(quiz, 'questionCount', default=0) or 0)
        self._safe_dispatch('quizStart', {
            'name': _field(quiz, 'name', 'quizTitle', default=''),
            'questionCount': self._question_count,
        })

    def _on_question_start(self, question=None):
        index = int(_field(question, 'questionIndex', 'gameBlockIndex', default=0))
        total = int(_field(question, 'totalGameBlockCount', default=self._question_count) or 0)
        if total:
            self._question_count = total
        choices = _field(question, 'choices')
        if choices is None:
            count = int(_field(question, 'numberOfChoices', default=4) or 0)
            choices = [{'answer': ''} for _ in range(count)]
        self._choice_count = len(choices)
        self._safe_dispatch('questionStart', {
            'index': index,
            'question': _field(question, 'question', 'title'),
            'type': _field(question, 'type', 'gameBlockType'),
            'choices': choices,
            'timeLimit': _field(question, 'timeAvailable', 'timeLimit', default=0),
            'points': _field(question, 'points', 'pointsMultiplier', default=0),
            'quiz': {'questionCount': self._question_count},
        })

    def _on_question_end(self, result=None):
        raw = _field(result, 'correctChoices', default=[]) or []
        if raw and not all(isinstance(c, bool) for c in raw):
            # Library reports indices; the relay expects one flag per choice
            size = max(self._choice_count, max(raw) + 1)
            raw = [idx in raw for idx in range(size)]
        # None lets the relay fall back to the question currently live
        index = _field(result, 'questionIndex', 'gameBlockIndex')
        self._safe_dispatch('questionEnd', {
            'questionIndex': None if index is None else int(index),
            'correctChoices': list(raw),
            'totalScore': _field(result, 'totalScore'),
        })

    def _on_quiz_end(self, quiz=None):
        self._safe_dispatch('quizEnd', {'questionCount': self._question_count})

    def _on_disconnect(self, reason=None):
        self._safe_dispatch('disconnect', reason)

    def _on_error(self, error=None):
        self.dispatch('error', error)

    def _on_loop_error(self, loop, context):
        self.dispatch('error', context.get('exception') or context.get('message'))
