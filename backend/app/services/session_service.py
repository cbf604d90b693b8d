"""
Service de sessions : émission et validation des tokens de connexion.

Une seule session active par compte : chaque login génère un nouveau token
UUID4 qui remplace le précédent dans la table sessions. Pas d'expiration,
un token reste valide jusqu'au login suivant sur le même compte.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import InvalidCredentials
from app.repositories import AccountRepository, SessionRepository
from app.schemas.account import LoginResult, Profile
from app.schemas.records import AccountRecord
from app.services.directory_service import resolve_display_name, resolve_photo

logger = logging.getLogger(__name__)


def to_profile(account: AccountRecord) -> Profile:
    """Profil exposé au client, avec les valeurs par défaut résolues."""
    return Profile(
        username=account.username,
        display_name=resolve_display_name(account),
        role=account.role,
        major=account.major,
        cohort_year=account.cohort_year or "",
        photo_url=resolve_photo(account.profile_photo_url),
    )


def issue_token(db: Session, username: str, password: str) -> LoginResult:
    """
    Vérifie les identifiants (comparaison exacte après trim) et ouvre une session.
    Lève InvalidCredentials si aucun compte ne correspond.
    """
    wanted_user = str(username or "").strip()
    wanted_pass = str(password or "").strip()

    for account in AccountRepository(db).all():
        if account.username == wanted_user and account.password.strip() == wanted_pass:
            token = str(uuid.uuid4())
            SessionRepository(db).upsert(account.username, token)
            db.commit()
            logger.info("Login %s (%s) : nouvelle session émise", account.username, account.role)
            return LoginResult(token=token, role=account.role, user=to_profile(account))

    logger.info("Login refusé pour '%s'", wanted_user)
    raise InvalidCredentials("Username atau Password Salah!")


def validate_token(db: Session, token: Optional[str]) -> Optional[Profile]:
    """
    Retourne le profil associé au token, ou None si le token est vide,
    inconnu ou remplacé par un login plus récent. Lecture seule.
    """
    if not token or not str(token).strip():
        return None

    session = SessionRepository(db).get_by_token(str(token).strip())
    if session is None:
        return None

    for account in AccountRepository(db).all():
        if account.username == session.username:
            return to_profile(account)
    return None


def revoke(db: Session, username: str) -> bool:
    """Supprime la session d'un compte (sans commit). True si une session existait."""
    return SessionRepository(db).delete(username)
