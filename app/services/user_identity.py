from __future__ import annotations

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import User

logger = logging.getLogger(__name__)

_HEX_PREFIX = re.compile(r"\s*(?:0[xX])?([0-9a-fA-F]+)")


class IdentityResolutionError(Exception):
    pass


def fallback_user_id(external_id: str) -> int:
    """
    Pseudo-id déterministe : préfixe hexadécimal des 8 derniers caractères
    (espaces et préfixe 0x tolérés). Pas unique (collisions possibles), réservé au développement.
    Un signe "+" ou "-" n'est pas lu : un users.id négatif ne correspond à aucune ligne, on rend 1.
    """
    m = _HEX_PREFIX.match((external_id or "")[-8:])
    value = int(m.group(1), 16) if m else 0
    return value or 1


class UserIdentityResolver:
    """
    Traduit l'identité externe (sub du fournisseur d'auth) en id interne users.id.
    Crée la ligne à la première rencontre.
    """

    def __init__(self, db: Session, allow_fallback: bool = True):
        self.db = db
        self.allow_fallback = allow_fallback

    def _lookup(self, external_id: str) -> int | None:
        return self.db.execute(
            select(User.id).where(User.auth_id == external_id)
        ).scalar_one_or_none()

    def resolve(self, external_id: str) -> int:
        # 1) chemin rapide
        try:
            user_id = self._lookup(external_id)
            if user_id is not None:
                return user_id
        except SQLAlchemyError as e:
            logger.warning("User lookup failed for %r: %s", external_id, e)
            self.db.rollback()

        # 2) création
        try:
            user = User(auth_id=external_id)
            self.db.add(user)
            self.db.commit()
            logger.info("Created user record %s for auth id %r", user.id, external_id)
            return user.id
        except IntegrityError:
            # créé entre-temps par une requête concurrente
            self.db.rollback()
            try:
                user_id = self._lookup(external_id)
            except SQLAlchemyError:
                self.db.rollback()
                user_id = None
            if user_id is not None:
                return user_id
            insert_error = "unique constraint"
        except SQLAlchemyError as e:
            self.db.rollback()
            insert_error = str(e)

        # 3) repli (dev)
        if not self.allow_fallback:
            raise IdentityResolutionError(f"Failed to create user record: {insert_error}")

        temp_id = fallback_user_id(external_id)
        logger.warning(
            "User insert refused for %r (%s); using non-unique fallback id %s",
            external_id, insert_error, temp_id,
        )
        return temp_id
