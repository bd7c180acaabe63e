import random

from quizrelay import socketio


def pick_delay(config, answer_delay: bool) -> float:
    """Seconds to wait before auto-answering.

    With answer delay on, a random pause in [ANSWER_DELAY_MIN_SEC,
    ANSWER_DELAY_MAX_SEC]; otherwise the short fixed AUTO_ANSWER_DELAY_SEC.
    """
    if answer_delay:
        low = float(config.get('ANSWER_DELAY_MIN_SEC', 2))
        high = float(config.get('ANSWER_DELAY_MAX_SEC', 5))
        return random.uniform(min(low, high), max(low, high))
    return float(config.get('AUTO_ANSWER_DELAY_SEC', 0.5))


def schedule_auto_answer(app, relay, sid: str, game_pin: str, question_index: int, answer_delay: bool) -> None:
    """Answer the given question for ``sid`` after the configured delay.

    - Runs inline without sleeping in TESTING mode
    - The relay re-checks on fire, so a stale or already answered question is skipped
    """
    delay = pick_delay(app.config, answer_delay)
    app.logger.info(f"[auto-answer] sid={sid} pin={game_pin} question={question_index + 1} in {delay:.1f}s")

    def _worker(wait: float):
        if wait > 0:
            socketio.sleep(wait)
        with relay.app_context():
            if not relay.auto_answer(sid, game_pin, question_index):
                app.logger.info(f"[auto-answer] sid={sid} pin={game_pin} question={question_index + 1} skipped")

    if app.config.get('TESTING'):
        _worker(0)
    else:
        socketio.start_background_task(_worker, delay)
