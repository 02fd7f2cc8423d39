from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel


class PollCreate(BaseModel):
    poll_question: Optional[str] = None
    options: Optional[List[Any]] = None


class VoteRequest(BaseModel):
    vote_id: Optional[Any] = None


class PollStatusUpdate(BaseModel):
    is_active: Optional[Any] = None


class PollOptionResponse(BaseModel):
    id: str
    text: str
    vote_count: int = 0


class PollResponse(BaseModel):
    id: str
    question: str
    is_active: bool
    created_at: datetime
    total_votes: int = 0
    options: List[PollOptionResponse] = []
    user_has_voted: bool = False
    user_vote: Optional[str] = None


class PollResultRow(BaseModel):
    id: str
    text: str
    vote_count: int
    percentage: float


class PollResults(BaseModel):
    poll_id: str
    results: List[PollResultRow]
    total_votes: int
