"""External quiz-game clients.

The relay only talks to the small interface below. Concrete clients wrap a
third-party library that speaks the quiz service's protocol and translate
its callbacks into the six relay events with kahoot.js-shaped payloads.
"""
import importlib
from collections import defaultdict
from typing import Any, Callable, Dict, List

EVENTS = ('quizStart', 'questionStart', 'questionEnd', 'quizEnd', 'error', 'disconnect')


class GameClientError(Exception):
    """Raised by a client when it cannot join or act on a game."""


class GameClient:
    """A connected participant in the remote quiz service."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        if event not in EVENTS:
            raise ValueError(f'unknown game client event: {event}')
        self._handlers[event].append(handler)

    def dispatch(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event, ())):
            handler(payload)

    def join(self, game_pin: str, name: str) -> None:
        raise NotImplementedError

    def leave(self) -> None:
        raise NotImplementedError

    def answer_question(self, choice: int) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release local resources without talking to the service."""


def load_client_factory(target) -> Callable[[], GameClient]:
    """Resolve GAME_CLIENT_FACTORY: a callable, or a 'module:attribute' string."""
    if callable(target):
        return target
    module_name, _, attr = str(target).partition(':')
    if not attr:
        raise ValueError(f'GAME_CLIENT_FACTORY must look like "module:attribute", got {target!r}')
    return getattr(importlib.import_module(module_name), attr)
