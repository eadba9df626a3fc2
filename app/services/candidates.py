from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import FlashcardCandidate
from app.services.ai_generator import CandidateGenerator
from app.services.flashcards_service import FlashcardQueryService, FlashcardStoreError
from app.services.user_identity import UserIdentityResolver

logger = logging.getLogger(__name__)

SOURCE_AI = "AI Generated"
SOURCE_AI_EDITED = "AI Generated (Edited)"


class CandidateNotFoundError(Exception):
    pass


class CandidateExpiredError(Exception):
    pass


def utcnow():
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    # sqlite rend des datetimes naïfs (UTC)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class CandidateReviewService:
    """
    Cartes proposées par l'IA, conservées côté serveur jusqu'à revue.
    Chaque candidate est consommée une seule fois (accept ou discard) et expire après le TTL.
    """

    def __init__(
        self,
        db: Session,
        resolver: UserIdentityResolver,
        flashcards: FlashcardQueryService,
        generator: CandidateGenerator,
        ttl_minutes: int = 30,
    ):
        self.db = db
        self.resolver = resolver
        self.flashcards = flashcards
        self.generator = generator
        self.ttl = timedelta(minutes=ttl_minutes)

    def propose(self, external_id: str, source_text: str) -> FlashcardCandidate:
        user_id = self.resolver.resolve(external_id)
        card = self.generator.generate_single(source_text)

        now = utcnow()
        cand = FlashcardCandidate(
            user_id=user_id,
            front=card.front,
            back=card.back,
            source_text=source_text.strip(),
            model=card.model,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self.db.add(cand)
        self.db.commit()
        logger.info("Candidate %s proposed for user %s (model=%s)", cand.id, user_id, card.model)
        return cand

    def list_pending(self, external_id: str) -> List[FlashcardCandidate]:
        user_id = self.resolver.resolve(external_id)
        now = utcnow()

        purged = self.db.execute(
            delete(FlashcardCandidate)
            .where(FlashcardCandidate.user_id == user_id, FlashcardCandidate.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        if purged.rowcount:
            self.db.commit()
            logger.info("Purged %s expired candidates for user %s", purged.rowcount, user_id)

        return list(
            self.db.execute(
                select(FlashcardCandidate)
                .where(FlashcardCandidate.user_id == user_id, FlashcardCandidate.expires_at > now)
                .order_by(FlashcardCandidate.created_at.desc(), FlashcardCandidate.id)
            ).scalars()
        )

    def _consume(self, user_id: int, candidate_id: str) -> None:
        # une seule requête gagne : les autres voient 0 ligne supprimée
        result = self.db.execute(
            delete(FlashcardCandidate)
            .where(FlashcardCandidate.id == candidate_id, FlashcardCandidate.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise CandidateNotFoundError("Candidate not found")

    def _owned(self, user_id: int, candidate_id: str) -> FlashcardCandidate:
        c = self.db.execute(
            select(FlashcardCandidate).where(
                FlashcardCandidate.id == candidate_id,
                FlashcardCandidate.user_id == user_id,
            )
        ).scalar_one_or_none()
        if c is None:
            raise CandidateNotFoundError("Candidate not found")
        if _aware(c.expires_at) <= utcnow():
            self._consume(user_id, candidate_id)
            self.db.commit()
            raise CandidateExpiredError("Candidate expired")
        return c

    def get(self, external_id: str, candidate_id: str) -> FlashcardCandidate:
        user_id = self.resolver.resolve(external_id)
        return self._owned(user_id, candidate_id)

    def accept(
        self,
        external_id: str,
        candidate_id: str,
        front: Optional[str] = None,
        back: Optional[str] = None,
    ) -> int:
        user_id = self.resolver.resolve(external_id)
        c = self._owned(user_id, candidate_id)

        final_front = front if front is not None else c.front
        final_back = back if back is not None else c.back
        edited = final_front != c.front or final_back != c.back

        # suppression + insertion dans la même transaction
        self._consume(user_id, candidate_id)
        try:
            flashcard_id = self.flashcards.create(
                external_id,
                front=final_front,
                back=final_back,
                source=SOURCE_AI_EDITED if edited else SOURCE_AI,
                status="approved",
                commit=False,
            )
            self.db.commit()
        except FlashcardStoreError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise FlashcardStoreError(f"Failed to create flashcard: {e}")

        logger.info("Candidate %s accepted as flashcard %s (edited=%s)", candidate_id, flashcard_id, edited)
        return flashcard_id

    def discard(self, external_id: str, candidate_id: str) -> None:
        user_id = self.resolver.resolve(external_id)
        self._owned(user_id, candidate_id)
        self._consume(user_id, candidate_id)
        self.db.commit()
        logger.info("Candidate %s discarded", candidate_id)
