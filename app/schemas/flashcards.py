from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

FlashcardStatus = Literal["proposal", "approved"]
SortField = Literal["created_at", "front"]
SortOrder = Literal["asc", "desc"]


# -------------------
# Commands
# -------------------
class FlashcardCreateIn(BaseModel):
    front: str = Field(min_length=1, max_length=1000)
    back: str = Field(min_length=1, max_length=1000)
    source: Optional[str] = Field(default=None, max_length=500)
    status: Optional[FlashcardStatus] = None


class FlashcardUpdateIn(BaseModel):
    front: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    back: Optional[str] = Field(default=None, min_length=1, max_length=1000)


# -------------------
# Responses
# -------------------
class FlashcardListItem(BaseModel):
    id: int
    front: str
    back: str
    created_at: datetime
    status: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class FlashcardsPageOut(BaseModel):
    flashcards: List[FlashcardListItem]
    pagination: Pagination


class FlashcardOut(BaseModel):
    id: int
    front: str
    back: str
    source: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class FlashcardCreatedOut(BaseModel):
    flashcard_id: int
    message: str = "Flashcard created successfully"


class MessageOut(BaseModel):
    message: str
