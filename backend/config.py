import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizrelay.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list of browser origins allowed to connect
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5000,http://127.0.0.1:5000',
    ).split(',') if o.strip()]
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    # External game client, as "module:attribute" or a callable
    GAME_CLIENT_FACTORY = os.environ.get('GAME_CLIENT_FACTORY', 'quizrelay.clients.kahoot:KahootClient')
    PLAYER_NAME_PREFIX = os.environ.get('PLAYER_NAME_PREFIX', 'Player_')
    # Seconds to wait for the external client to join before giving up
    JOIN_TIMEOUT_SEC = float(os.environ.get('JOIN_TIMEOUT_SEC', '15'))
    # Auto-answer timing (seconds)
    AUTO_ANSWER_DELAY_SEC = float(os.environ.get('AUTO_ANSWER_DELAY_SEC', '0.5'))
    ANSWER_DELAY_MIN_SEC = float(os.environ.get('ANSWER_DELAY_MIN_SEC', '2'))
    ANSWER_DELAY_MAX_SEC = float(os.environ.get('ANSWER_DELAY_MAX_SEC', '5'))
