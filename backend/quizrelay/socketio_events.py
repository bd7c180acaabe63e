import json

from flask import current_app, request
from flask_socketio import emit
from pydantic import ValidationError

from quizrelay import socketio
from quizrelay.schemas import ClientMessage
from quizrelay.services.relay import NAMESPACE, get_relay

INVALID_MESSAGE = 'Invalid message format or action'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    get_relay().connect(_get_sid())


def handle_disconnect():
    get_relay().drop_connection(_get_sid())


def handle_message(data):
    """Parse one client command and hand it to the relay."""
    sid = _get_sid()
    relay = get_relay()
    try:
        payload = json.loads(data) if isinstance(data, (str, bytes, bytearray)) else data
        message = ClientMessage.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        current_app.logger.info(f"[ws] sid={sid} rejected message: {exc}")
        emit('message', {'type': 'error', 'message': INVALID_MESSAGE})
        return

    if message.type == 'join':
        relay.join_game(sid, message.gamePin)
    elif message.type == 'disconnect':
        relay.disconnect_from_game(sid)
    elif message.type == 'selectAnswer':
        if message.answer is not None and message.answer.index is not None:
            relay.select_answer(sid, message.answer.index)
    elif message.type == 'toggleAutoAnswer':
        if message.autoAnswer is not None:
            relay.set_auto_answer(sid, message.autoAnswer)
    elif message.type == 'toggleAnswerDelay':
        if message.answerDelay is not None:
            relay.set_answer_delay(sid, message.answerDelay)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the relay namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('message', handle_message, namespace=NAMESPACE)
