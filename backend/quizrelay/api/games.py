from flask import Blueprint, jsonify
from quizrelay.services import storage
from quizrelay.services.relay import get_relay


games = Blueprint('games', __name__)


@games.route('/<string:game_pin>/state', methods=['GET'])
def get_game_state(game_pin):
    state = get_relay().get_game_state(game_pin)
    if state is None:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(state)


@games.route('/<string:game_pin>/questions', methods=['GET'])
def get_question_history(game_pin):
    session = get_relay().session_for(game_pin)
    if session is None:
        return jsonify({'error': 'Game not found'}), 404
    questions = storage.get_questions_by_game_session(session.id)
    return jsonify({
        'session': session.to_dict(),
        'questions': [q.to_dict() for q in questions],
    })
