from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerateCandidateIn(BaseModel):
    # longueur 10..10000 vérifiée après trim par le service
    source_text: str = Field(description="Texte source à transformer en flashcard")


class CandidateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    front: str
    back: str
    model: str
    created_at: datetime
    expires_at: datetime


class CandidateListOut(BaseModel):
    items: List[CandidateOut]


class AcceptCandidateIn(BaseModel):
    # champs absents = candidate acceptée telle quelle
    front: Optional[str] = Field(default=None, min_length=1, max_length=200)
    back: Optional[str] = Field(default=None, min_length=1, max_length=500)
