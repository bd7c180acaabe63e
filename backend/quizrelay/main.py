from flask import Blueprint, jsonify
from quizrelay.services.relay import get_relay

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the quiz relay server!'})

@main.route('/api/status')
def status():
    return jsonify({'status': 'ok', 'clients': get_relay().connection_count()})
