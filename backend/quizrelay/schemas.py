from typing import Literal, Optional

from pydantic import BaseModel, StrictBool


class AnswerIn(BaseModel):
    index: Optional[int] = None
    color: Optional[str] = None


class ClientMessage(BaseModel):
    type: Literal['join', 'disconnect', 'selectAnswer', 'toggleAutoAnswer', 'toggleAnswerDelay']
    gamePin: Optional[str] = None
    answer: Optional[AnswerIn] = None
    autoAnswer: Optional[StrictBool] = None
    answerDelay: Optional[StrictBool] = None
