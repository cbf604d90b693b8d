"""
Service métier pour les entrées de journal PKL : création, modification,
suppression par l'élève propriétaire et feedback du guru.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from app.errors import AccessDenied, NotFound
from app.repositories import LogbookRepository
from app.schemas.account import Profile
from app.schemas.logbook import FeedbackSave, LogbookSave
from app.schemas.records import normalize_key
from app.services.photos import accepted_photo_url

logger = logging.getLogger(__name__)

FEEDBACK_ROLES = {"GURU", "ADMIN"}


def _owned_entry(db: Session, user: Profile, log_id: str):
    entry = LogbookRepository(db).get(log_id)
    if entry is None or normalize_key(entry.owner_username) != normalize_key(user.username):
        return None
    return entry


def save_logbook(db: Session, user: Profile, data: LogbookSave) -> str:
    """
    Enregistre une entrée. Avec id : modification, uniquement par le propriétaire
    (la photo n'est remplacée que si une nouvelle est fournie). Sans id : création.
    Retourne l'id de l'entrée.
    """
    photo_url = accepted_photo_url(data.photo)

    if data.id:
        entry = _owned_entry(db, user, data.id)
        if entry is None:
            raise NotFound(
                "Gagal update. Data tidak ditemukan atau Anda tidak memiliki akses ke logbook ini."
            )
        entry.date = data.date
        entry.start_time = data.start_time
        entry.end_time = data.end_time
        entry.title = data.title
        entry.description = data.description
        if photo_url:
            entry.photo_url = photo_url
        db.commit()
        logger.info("Logbook %s modifié par %s", data.id, user.username)
        return data.id

    log_id = str(uuid.uuid4())
    LogbookRepository(db).add(
        id=log_id,
        owner_username=normalize_key(user.username),
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        title=data.title,
        description=data.description,
        photo_url=photo_url,
        teacher_feedback="",
    )
    db.commit()
    logger.info("Logbook %s créé par %s", log_id, user.username)
    return log_id


def delete_logbook(db: Session, user: Profile, log_id: str) -> None:
    """Supprime une entrée ; seul l'élève propriétaire peut le faire."""
    entry = _owned_entry(db, user, log_id)
    if entry is None:
        raise NotFound("Gagal menghapus. Data tidak ditemukan atau Anda tidak memiliki hak akses.")
    LogbookRepository(db).delete(entry)
    db.commit()
    logger.info("Logbook %s supprimé par %s", log_id, user.username)


def save_feedback(db: Session, user: Profile, data: FeedbackSave) -> None:
    """Enregistre la note (ACC / révision) d'un guru sur une entrée."""
    if user.role not in FEEDBACK_ROLES:
        raise AccessDenied("Hanya guru yang dapat memberi catatan.")

    entry = LogbookRepository(db).get(data.id)
    if entry is None:
        raise NotFound("Data Logbook tidak ditemukan di database.")
    entry.teacher_feedback = data.feedback
    db.commit()
    logger.info("Feedback de %s sur logbook %s", user.username, data.id)
