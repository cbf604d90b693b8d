"""
Service métier pour la gestion des comptes et des affectations pembimbing.

Chaque écriture sur `users` est répercutée dans les copies dénormalisées
(`teachers` pour un GURU, `students_map` pour un SISWA) afin que les
dictionnaires du moteur d'annuaire restent cohérents.

Déroulement d'une mutation, sous write_boundary() :
1. Validation (existence, doublon) sur un snapshot frais
2. Commit de l'écriture principale sur `users`
3. Synchronisation des tables annuaire, commitée à part

Un échec de l'étape 3 n'annule pas l'étape 2 : il est journalisé et
l'opération reste un succès (les deux tables peuvent alors diverger).
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import DuplicateKey, NotFound, ValidationError
from app.repositories import (
    AccountRepository,
    MentorMappingRepository,
    TeacherDirectoryRepository,
)
from app.schemas.account import AccountSave, Profile, ProfileUpdate, RegisterRequest
from app.schemas.records import normalize_key
from app.services import session_service
from app.services.photos import accepted_photo_url
from app.services.years import current_year

logger = logging.getLogger(__name__)

ROOT_ADMIN = "admin"
ADMIN_ROLE_RESERVED = "Role ADMIN hanya untuk akun Admin Utama."

_write_lock = threading.RLock()


@contextmanager
def write_boundary(lock=None):
    """
    Sérialise les mutations de comptes (vérification puis écriture).
    Le verrou est injectable ; par défaut un RLock de processus.
    """
    lock = lock or _write_lock
    with lock:
        yield


def _username_taken(db: Session, username: str) -> bool:
    """Vérification de doublon par parcours complet de `users`."""
    wanted = normalize_key(username)
    return any(a.username == wanted for a in AccountRepository(db).all())


def _commit_primary(db: Session, username: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey(f"Username/NISN '{username}' sudah ada!")


def _sync(db: Session, description: str, action) -> bool:
    """
    Exécute une synchronisation annuaire et la commite.
    Retourne False (sans lever) si le stockage échoue.
    """
    try:
        action()
        db.commit()
        return True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Synchronisation %s échouée : %s", description, exc, exc_info=True)
        return False


def record_mentor_assignment(
    db: Session,
    username: str,
    mentor_ref: Optional[str],
    student_name: Optional[str] = None,
    major: Optional[str] = None,
) -> None:
    """
    Crée ou met à jour la ligne students_map d'un élève (sans commit).
    mentor_ref vide ne remplace pas une affectation existante.
    """
    maps = MentorMappingRepository(db)
    mapping = maps.get(username)
    if mapping is None:
        maps.add(username, student_name, major, mentor_ref)
        return
    if student_name is not None:
        mapping.student_name = student_name
    if major is not None:
        mapping.major = major
    if mentor_ref:
        mapping.mentor_ref = mentor_ref


def create_account(db: Session, data: AccountSave, lock=None) -> None:
    """
    Crée un compte (GURU ou SISWA) depuis le panneau admin.
    Lève DuplicateKey si le username existe déjà ; le rôle ADMIN est réservé
    au compte admin principal.
    """
    if data.role == "ADMIN":
        raise ValidationError(ADMIN_ROLE_RESERVED)

    with write_boundary(lock):
        if _username_taken(db, data.username):
            raise DuplicateKey("Username/NISN sudah ada!")

        AccountRepository(db).add(
            username=data.username,
            password=data.password,
            role=data.role,
            display_name=data.display_name,
            major=data.major,
            cohort_year=data.cohort_year or current_year(),
        )
        _commit_primary(db, data.username)

        if data.role == "GURU":
            _sync(db, f"teachers (création {data.username})",
                  lambda: TeacherDirectoryRepository(db).upsert(data.username, data.display_name))
        elif data.role == "SISWA":
            _sync(db, f"students_map (création {data.username})",
                  lambda: MentorMappingRepository(db).add(
                      data.username, data.display_name, data.major, data.mentor_ref))

    logger.info("Compte créé : %s (%s)", data.username, data.role)


def edit_account(db: Session, data: AccountSave, lock=None) -> None:
    """
    Met à jour un compte existant et ses copies annuaire.
    Un compte qui quitte le rôle GURU est retiré de l'annuaire des guru.
    """
    target = normalize_key(data.username)
    if target == ROOT_ADMIN and data.role != "ADMIN":
        raise ValidationError("Role akun Admin Utama tidak boleh diubah.")
    if target != ROOT_ADMIN and data.role == "ADMIN":
        raise ValidationError(ADMIN_ROLE_RESERVED)

    with write_boundary(lock):
        account = AccountRepository(db).get(data.username)
        if account is None:
            raise NotFound("User tidak ditemukan.")

        previous_role = account.role
        account.password = data.password
        account.display_name = data.display_name
        account.role = data.role
        account.major = data.major
        account.cohort_year = data.cohort_year
        db.commit()

        if data.role == "GURU":
            _sync(db, f"teachers (modification {data.username})",
                  lambda: TeacherDirectoryRepository(db).upsert(data.username, data.display_name))
        elif previous_role == "GURU":
            _sync(db, f"teachers (retrait {data.username})",
                  lambda: TeacherDirectoryRepository(db).delete(data.username))

        if data.role == "SISWA":
            def _update_mapping():
                if MentorMappingRepository(db).get(data.username) is None and not data.mentor_ref:
                    return
                record_mentor_assignment(db, data.username, data.mentor_ref,
                                         data.display_name, data.major or "")

            _sync(db, f"students_map (modification {data.username})", _update_mapping)

    logger.info("Compte modifié : %s (%s)", data.username, data.role)


def delete_account(db: Session, username: str, lock=None) -> None:
    """
    Supprime un compte, sa session et sa ligne annuaire.
    Le compte admin principal est protégé quel que soit son rôle. Les entrées
    de journal de l'utilisateur ne sont pas supprimées (accessibles par id).
    """
    target = normalize_key(username)
    with write_boundary(lock):
        if target == ROOT_ADMIN:
            raise ValidationError("Akun Admin Utama tidak boleh dihapus.")
        account = AccountRepository(db).get(target)
        if account is None:
            raise NotFound("User tidak ditemukan.")

        role = account.role
        AccountRepository(db).delete(account)
        session_service.revoke(db, target)
        db.commit()

        if role == "GURU":
            _sync(db, f"teachers (suppression {target})",
                  lambda: TeacherDirectoryRepository(db).delete(target))
        elif role == "SISWA":
            _sync(db, f"students_map (suppression {target})",
                  lambda: MentorMappingRepository(db).delete(target))

    logger.info("Compte supprimé : %s (%s)", target, role)


def register_student(db: Session, data: RegisterRequest, lock=None) -> None:
    """Inscription publique d'un élève avec son pembimbing."""
    with write_boundary(lock):
        if _username_taken(db, data.username):
            raise DuplicateKey("Pendaftaran Gagal: NISN sudah terdaftar!")

        AccountRepository(db).add(
            username=data.username,
            password=data.password,
            role="SISWA",
            display_name=data.display_name,
            major=data.major,
            cohort_year=data.cohort_year or current_year(),
        )
        _commit_primary(db, data.username)

        _sync(db, f"students_map (inscription {data.username})",
              lambda: record_mentor_assignment(
                  db, data.username, data.mentor_ref, data.display_name, data.major))

    logger.info("Inscription élève : %s (pembimbing %s)", data.username, data.mentor_ref or "-")


def update_profile(db: Session, user: Profile, data: ProfileUpdate) -> str:
    """
    Met à jour les champs fournis du profil de l'utilisateur connecté.
    Retourne l'URL de la nouvelle photo (chaîne vide si inchangée ou refusée).
    """
    with write_boundary():
        account = AccountRepository(db).get(user.username)
        if account is None:
            raise NotFound("Data User tidak ditemukan dalam sistem.")

        photo_url = accepted_photo_url(data.photo_url) or ""
        if data.password:
            account.password = data.password
        if data.display_name:
            account.display_name = data.display_name
        if data.major:
            account.major = data.major
        if photo_url:
            account.profile_photo_url = photo_url
        if data.cohort_year:
            account.cohort_year = data.cohort_year
        db.commit()

        if account.role == "SISWA" and (data.display_name or data.major):
            def _update_mapping():
                mapping = MentorMappingRepository(db).get(user.username)
                if mapping is None:
                    return
                if data.display_name:
                    mapping.student_name = data.display_name
                if data.major:
                    mapping.major = data.major

            _sync(db, f"students_map (profil {user.username})", _update_mapping)

    logger.info("Profil mis à jour : %s", user.username)
    return photo_url


def change_password(db: Session, username: str, new_password: str) -> None:
    """Change le mot de passe d'un compte (guru ou admin connecté)."""
    if not new_password or not new_password.strip():
        raise ValidationError("Password baru wajib diisi.")

    account = AccountRepository(db).get(username)
    if account is None:
        raise NotFound("Akun tidak ditemukan dalam sistem.")
    account.password = new_password
    db.commit()
    logger.info("Mot de passe modifié : %s", username)
