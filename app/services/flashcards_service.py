from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Flashcard
from app.services.user_identity import UserIdentityResolver

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "desc"
SORT_ORDERS = ("asc", "desc")

LIST_COLUMNS = (Flashcard.id, Flashcard.front, Flashcard.back, Flashcard.created_at, Flashcard.status)


class InvalidQueryError(ValueError):
    pass


class FlashcardStoreError(Exception):
    pass


class FlashcardNotFoundError(Exception):
    pass


def page_range(page: int, limit: int) -> Tuple[int, int]:
    """
    Plage inclusive [offset, offset + limit - 1] pour une page donnée.
    """
    offset = (page - 1) * limit
    return offset, offset + limit - 1


def _store_message(e: SQLAlchemyError) -> str:
    return str(getattr(e, "orig", None) or e)


class FlashcardQueryService:
    """
    Lecture/écriture des flashcards d'un utilisateur.
    Toutes les requêtes sont filtrées par (id, user_id) : pas d'accès croisé possible.
    """

    def __init__(self, db: Session, resolver: UserIdentityResolver):
        self.db = db
        self.resolver = resolver

    # =========================================================
    # Helpers
    # =========================================================
    def _fail(self, prefix: str, e: SQLAlchemyError) -> FlashcardStoreError:
        self.db.rollback()
        return FlashcardStoreError(f"{prefix}: {_store_message(e)}")

    def _scoped(self, flashcard_id: int, user_id: int):
        return (Flashcard.id == flashcard_id, Flashcard.user_id == user_id)

    def _mutate(self, stmt, prefix: str) -> None:
        try:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(prefix, e)
        if not result.rowcount:
            raise FlashcardNotFoundError("Flashcard not found")

    # =========================================================
    # Reads
    # =========================================================
    def list(
        self,
        external_id: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_order: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        user_id = self.resolver.resolve(external_id)

        page = DEFAULT_PAGE if page is None else page
        limit = DEFAULT_LIMIT if limit is None else limit
        sort_field = sort_field or DEFAULT_SORT_FIELD
        sort_order = sort_order or DEFAULT_SORT_ORDER

        if page < 1 or limit < 1:
            raise InvalidQueryError("page and limit must be positive integers")
        if sort_order not in SORT_ORDERS:
            raise InvalidQueryError("sort_order must be 'asc' or 'desc'")

        column = Flashcard.__table__.c.get(sort_field)
        if column is None:
            raise FlashcardStoreError(f"Database query failed: unknown sort column '{sort_field}'")

        start, end = page_range(page, limit)

        conds = [Flashcard.user_id == user_id]
        if status:
            conds.append(Flashcard.status == status)

        if sort_order == "desc":
            order_by = (column.desc(), Flashcard.id.desc())
        else:
            order_by = (column.asc(), Flashcard.id.asc())

        stmt = (
            select(*LIST_COLUMNS)
            .where(*conds)
            .order_by(*order_by)
            .offset(start)
            .limit(end - start + 1)
        )

        try:
            rows = self.db.execute(stmt).all()
            count = self.db.execute(
                select(func.count()).select_from(Flashcard).where(*conds)
            ).scalar()
        except SQLAlchemyError as e:
            raise self._fail("Database query failed", e)

        items = [
            {
                "id": r.id,
                "front": r.front,
                "back": r.back,
                "created_at": r.created_at,
                "status": r.status,
            }
            for r in (rows or [])
        ]

        return {
            "flashcards": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": int(count or 0),
            },
        }

    def get_by_id(self, external_id: str, flashcard_id: int) -> Optional[Dict[str, Any]]:
        user_id = self.resolver.resolve(external_id)

        try:
            c = self.db.execute(
                select(Flashcard)
                .where(*self._scoped(flashcard_id, user_id))
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._fail("Database query failed", e)

        if c is None:
            return None

        return {
            "id": c.id,
            "front": c.front,
            "back": c.back,
            "source": c.source,
            "status": c.status,
            "created_at": c.created_at,
            "updated_at": c.updated_at,
        }

    # =========================================================
    # Writes
    # =========================================================
    def create(
        self,
        external_id: str,
        front: str,
        back: str,
        source: Optional[str] = None,
        status: Optional[str] = None,
        commit: bool = True,
    ) -> int:
        """
        commit=False : flush seulement, l'appelant termine la transaction.
        """
        user_id = self.resolver.resolve(external_id)

        c = Flashcard(
            user_id=user_id,
            front=front,
            back=back,
            source=source,
            status=status or "proposal",
        )
        try:
            self.db.add(c)
            if commit:
                self.db.commit()
            else:
                self.db.flush()
        except SQLAlchemyError as e:
            raise self._fail("Failed to create flashcard", e)

        if c.id is None:
            raise FlashcardStoreError("Failed to create flashcard: no data returned")
        return c.id

    def update(
        self,
        external_id: str,
        flashcard_id: int,
        front: Optional[str] = None,
        back: Optional[str] = None,
    ) -> None:
        user_id = self.resolver.resolve(external_id)

        values = {}
        if front is not None:
            values["front"] = front
        if back is not None:
            values["back"] = back
        if not values:
            raise InvalidQueryError("At least one field (front or back) must be provided for update")

        self._mutate(
            update(Flashcard).where(*self._scoped(flashcard_id, user_id)).values(**values),
            "Failed to update flashcard",
        )

    def approve(self, external_id: str, flashcard_id: int) -> None:
        user_id = self.resolver.resolve(external_id)
        self._mutate(
            update(Flashcard).where(*self._scoped(flashcard_id, user_id)).values(status="approved"),
            "Failed to approve flashcard",
        )

    def reject(self, external_id: str, flashcard_id: int) -> None:
        # un rejet supprime la carte (pas de statut "rejected")
        user_id = self.resolver.resolve(external_id)
        self._mutate(
            delete(Flashcard).where(*self._scoped(flashcard_id, user_id)),
            "Failed to reject flashcard",
        )

    def delete(self, external_id: str, flashcard_id: int) -> None:
        user_id = self.resolver.resolve(external_id)
        self._mutate(
            delete(Flashcard).where(*self._scoped(flashcard_id, user_id)),
            "Failed to delete flashcard",
        )
