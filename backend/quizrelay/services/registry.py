"""In-process session registry.

Maps transport connections to the game they follow, and join codes to the
single external client that is authoritative for that code. Everything here
lives only as long as the process.
"""
from typing import Dict, List, Optional, Set

from quizrelay.clients import GameClient


class ConnectionRecord:
    def __init__(self, sid: str):
        self.sid = sid
        self.game_pin: Optional[str] = None
        self.auto_answer = False
        self.answer_delay = False
        # (question index, answer index) of the last selection made by this connection
        self.selected: Optional[tuple] = None

    def detach(self) -> None:
        self.game_pin = None
        self.selected = None


class ActiveGame:
    def __init__(self, game_pin: str, client: GameClient, session_id: Optional[int] = None):
        self.game_pin = game_pin
        self.client = client
        self.session_id = session_id
        self.connections: Set[str] = set()
        self.quiz_name: Optional[str] = None
        self.total_questions = 0
        self.current_question_index = 0
        self.question_live = False
        self.points = 0
        # Answer index already sent to the service for the current question
        self.answered_index: Optional[int] = None


class SessionRegistry:
    def __init__(self):
        self._connections: Dict[str, ConnectionRecord] = {}
        self._games: Dict[str, ActiveGame] = {}

    # ---- connections ----

    def add_connection(self, sid: str) -> ConnectionRecord:
        record = self._connections.get(sid)
        if record is None:
            record = self._connections[sid] = ConnectionRecord(sid)
        return record

    def get_connection(self, sid: str) -> Optional[ConnectionRecord]:
        return self._connections.get(sid)

    def remove_connection(self, sid: str) -> Optional[ConnectionRecord]:
        return self._connections.pop(sid, None)

    def connection_count(self) -> int:
        return len(self._connections)

    # ---- games ----

    def create_game(self, game_pin: str, client: GameClient, session_id: Optional[int] = None) -> ActiveGame:
        game = ActiveGame(game_pin, client, session_id)
        self._games[game_pin] = game
        return game

    def get_game(self, game_pin: str) -> Optional[ActiveGame]:
        return self._games.get(game_pin)

    def update_game(self, game_pin: str, **fields) -> Optional[ActiveGame]:
        game = self._games.get(game_pin)
        if game is None:
            return None
        for key, value in fields.items():
            setattr(game, key, value)
        return game

    def remove_game(self, game_pin: str) -> Optional[ActiveGame]:
        return self._games.pop(game_pin, None)

    def attach(self, sid: str, game: ActiveGame) -> ConnectionRecord:
        record = self.add_connection(sid)
        record.game_pin = game.game_pin
        record.selected = None
        game.connections.add(sid)
        return record

    def detach(self, sid: str) -> Optional[ActiveGame]:
        """Unlink a connection from its game; returns the game it left."""
        record = self._connections.get(sid)
        if record is None or record.game_pin is None:
            return None
        game = self._games.get(record.game_pin)
        record.detach()
        if game is not None:
            game.connections.discard(sid)
        return game

    def listeners(self, game_pin: str) -> List[ConnectionRecord]:
        game = self._games.get(game_pin)
        if game is None:
            return []
        return [self._connections[sid] for sid in list(game.connections) if sid in self._connections]
