"""
Tests unitaires du service de comptes : création, modification, suppression,
inscription et synchronisation des tables annuaire.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.errors import DuplicateKey, NotFound, ValidationError
from app.repositories import (
    AccountRepository,
    LogbookRepository,
    MentorMappingRepository,
    TeacherDirectoryRepository,
)
from app.schemas.account import AccountSave, Profile, ProfileUpdate, RegisterRequest
from app.services import account_service
from app.services.directory_service import list_mentees
from app.services.session_service import issue_token, validate_token


def _save(**overrides) -> AccountSave:
    data = {
        "username": "S001",
        "password": "rahasia",
        "display_name": "Andi",
        "role": "SISWA",
        "major": "TKJ",
        "cohort_year": "2024",
        "mentor_ref": "198001",
    }
    data.update(overrides)
    return AccountSave(**data)


def _register(**overrides) -> RegisterRequest:
    data = {
        "username": "S100",
        "password": "rahasia",
        "display_name": "Citra",
        "major": "RPL",
        "cohort_year": "2025",
        "mentor_ref": "198001 - Pak Budi",
    }
    data.update(overrides)
    return RegisterRequest(**data)


# --- Création ---

def test_creation_siswa_cree_affectation(db):
    account_service.create_account(db, _save())

    account = AccountRepository(db).get("S001")
    assert account.role == "SISWA"
    assert account.cohort_year == "2024"
    mapping = MentorMappingRepository(db).get("S001")
    assert mapping.mentor_ref == "198001"
    assert mapping.student_name == "Andi"


def test_creation_guru_ajoute_annuaire(db):
    account_service.create_account(db, _save(username="198001", role="GURU",
                                             display_name="Pak Budi", mentor_ref=None))

    assert TeacherDirectoryRepository(db).get("198001").name == "Pak Budi"
    assert MentorMappingRepository(db).get("198001") is None


def test_creation_angkatan_par_defaut(db):
    with patch("app.services.account_service.current_year", return_value="2026"):
        account_service.create_account(db, _save(cohort_year=""))
    assert AccountRepository(db).get("S001").cohort_year == "2026"


def test_creation_second_admin_refusee(db, seed):
    seed.account("admin", role="ADMIN")
    with pytest.raises(ValidationError, match="Role ADMIN"):
        account_service.create_account(db, _save(username="boss", role="ADMIN"))
    assert AccountRepository(db).get("boss") is None


def test_creation_doublon(db, seed):
    seed.account("S001")
    with pytest.raises(DuplicateKey):
        account_service.create_account(db, _save())


def test_creation_doublon_apostrophe(db, seed):
    seed.account("S001")
    with pytest.raises(DuplicateKey):
        account_service.create_account(db, _save(username="'S001"))


def test_creation_utilise_le_verrou_injecte(db):
    lock = MagicMock()
    account_service.create_account(db, _save(), lock=lock)
    lock.__enter__.assert_called_once()
    lock.__exit__.assert_called_once()


def test_echec_synchronisation_ne_bloque_pas(db):
    with patch.object(MentorMappingRepository, "add", side_effect=SQLAlchemyError("boom")):
        account_service.create_account(db, _save())

    assert AccountRepository(db).get("S001") is not None
    assert MentorMappingRepository(db).get("S001") is None


# --- Cycle de vie complet ---

def test_cycle_creation_suivi_suppression(db, seed):
    seed.teacher("198001", "Pak Budi")
    account_service.create_account(db, _save())
    seed.logbook("L1", "S001")

    assert [m.username for m in list_mentees(db, "198001")] == ["S001"]

    account_service.delete_account(db, "S001")

    assert list_mentees(db, "198001") == []
    assert AccountRepository(db).get("S001") is None
    assert LogbookRepository(db).get("L1") is not None


def test_suppression_revoque_la_session(db, seed):
    seed.account("S001", password="p")
    token = issue_token(db, "S001", "p").token

    account_service.delete_account(db, "S001")

    assert validate_token(db, token) is None


def test_suppression_guru_retire_annuaire(db, seed):
    seed.account("198001", role="GURU", display_name="Pak Budi")
    seed.teacher("198001", "Pak Budi")

    account_service.delete_account(db, "198001")

    assert TeacherDirectoryRepository(db).get("198001") is None


def test_suppression_admin_principal_interdite(db, seed):
    seed.account("admin", role="ADMIN")
    with pytest.raises(ValidationError, match="Admin Utama"):
        account_service.delete_account(db, "admin")
    assert AccountRepository(db).get("admin") is not None


def test_suppression_admin_principal_interdite_meme_retrograde(db, seed):
    seed.account("admin", role="GURU")
    with pytest.raises(ValidationError, match="Admin Utama"):
        account_service.delete_account(db, "admin")
    assert AccountRepository(db).get("admin") is not None


def test_admin_principal_ne_peut_pas_etre_retrograde(db, seed):
    seed.account("admin", role="ADMIN", display_name="Administrator")

    with pytest.raises(ValidationError, match="tidak boleh diubah"):
        account_service.edit_account(db, _save(is_edit=True, username="admin", role="SISWA"))

    assert AccountRepository(db).get("admin").role == "ADMIN"
    with pytest.raises(ValidationError):
        account_service.delete_account(db, "admin")
    assert [a.username for a in AccountRepository(db).all() if a.role == "ADMIN"] == ["admin"]


def test_admin_principal_modifiable_sans_changer_de_role(db, seed):
    seed.account("admin", role="ADMIN", display_name="Administrator")
    account_service.edit_account(db, _save(is_edit=True, username="admin", role="ADMIN",
                                           display_name="Admin Sekolah", mentor_ref=None))
    assert AccountRepository(db).get("admin").display_name == "Admin Sekolah"


def test_promotion_admin_refusee(db, seed):
    seed.account("198001", role="GURU")
    with pytest.raises(ValidationError, match="Role ADMIN"):
        account_service.edit_account(db, _save(is_edit=True, username="198001", role="ADMIN"))
    assert AccountRepository(db).get("198001").role == "GURU"


def test_suppression_compte_inconnu(db):
    with pytest.raises(NotFound):
        account_service.delete_account(db, "S404")


# --- Modification ---

def test_modification_compte_inconnu(db):
    with pytest.raises(NotFound):
        account_service.edit_account(db, _save(is_edit=True))


def test_modification_met_a_jour_compte_et_affectation(db, seed):
    account_service.create_account(db, _save())

    account_service.edit_account(db, _save(is_edit=True, display_name="Andi Pratama",
                                           major="RPL", mentor_ref="2001"))

    account = AccountRepository(db).get("S001")
    assert account.display_name == "Andi Pratama"
    mapping = MentorMappingRepository(db).get("S001")
    assert (mapping.student_name, mapping.major, mapping.mentor_ref) == ("Andi Pratama", "RPL", "2001")


def test_modification_sans_pembimbing_garde_affectation(db):
    account_service.create_account(db, _save())
    account_service.edit_account(db, _save(is_edit=True, mentor_ref=None))
    assert MentorMappingRepository(db).get("S001").mentor_ref == "198001"


def test_modification_sans_affectation_ni_pembimbing(db, seed):
    seed.account("S001")
    account_service.edit_account(db, _save(is_edit=True, mentor_ref=None))
    assert MentorMappingRepository(db).get("S001") is None


def test_guru_devient_siswa_retire_annuaire(db, seed):
    seed.account("198001", role="GURU", display_name="Pak Budi")
    seed.teacher("198001", "Pak Budi")

    account_service.edit_account(db, _save(is_edit=True, username="198001", mentor_ref=None))

    assert TeacherDirectoryRepository(db).get("198001") is None
    assert AccountRepository(db).get("198001").role == "SISWA"


def test_modification_nom_guru_synchronise(db, seed):
    seed.account("198001", role="GURU", display_name="Pak Budi")
    seed.teacher("198001", "Pak Budi")

    account_service.edit_account(db, _save(is_edit=True, username="198001", role="GURU",
                                           display_name="Pak Budi Santoso"))

    assert TeacherDirectoryRepository(db).get("198001").name == "Pak Budi Santoso"


# --- Inscription publique ---

def test_inscription_succes(db):
    account_service.register_student(db, _register())

    account = AccountRepository(db).get("S100")
    assert account.role == "SISWA"
    assert MentorMappingRepository(db).get("S100").mentor_ref == "198001 - Pak Budi"


def test_inscription_doublon(db, seed):
    seed.account("S100")
    with pytest.raises(DuplicateKey, match="NISN sudah terdaftar"):
        account_service.register_student(db, _register())


def test_inscription_met_a_jour_affectation_existante(db, seed):
    seed.mapping("S100", "Lama", "")
    account_service.register_student(db, _register())
    mapping = MentorMappingRepository(db).get("S100")
    assert (mapping.student_name, mapping.mentor_ref) == ("Citra", "198001 - Pak Budi")


# --- Profil ---

def test_profil_mise_a_jour_partielle(db, seed):
    seed.account("S001", display_name="Andi", major="TKJ", password="lama")
    seed.mapping("S001", "Andi", "198001")
    user = Profile(username="S001", display_name="Andi", role="SISWA")

    photo = account_service.update_profile(db, user, ProfileUpdate(
        display_name="Andi P", photo_url="https://img/andi.jpg",
    ))

    assert photo == "https://img/andi.jpg"
    account = AccountRepository(db).get("S001")
    assert account.display_name == "Andi P"
    assert account.major == "TKJ"
    assert account.password == "lama"
    assert MentorMappingRepository(db).get("S001").student_name == "Andi P"


def test_profil_photo_base64_ignoree_reste_applique(db, seed):
    seed.account("S001", display_name="Andi", password="lama", photo="https://img/old.jpg")
    user = Profile(username="S001", display_name="Andi", role="SISWA")

    photo = account_service.update_profile(db, user, ProfileUpdate(
        photo_url="data:image/jpeg;base64," + "A" * 800,
        password="baru",
        display_name="Andi P",
    ))

    assert photo == ""
    account = AccountRepository(db).get("S001")
    assert account.profile_photo_url == "https://img/old.jpg"
    assert account.password == "baru"
    assert account.display_name == "Andi P"


def test_profil_sans_photo_retourne_vide(db, seed):
    seed.account("S001")
    user = Profile(username="S001", display_name="S001", role="SISWA")
    assert account_service.update_profile(db, user, ProfileUpdate(major="RPL")) == ""


def test_profil_compte_supprime(db):
    user = Profile(username="S404", display_name="x", role="SISWA")
    with pytest.raises(NotFound):
        account_service.update_profile(db, user, ProfileUpdate(display_name="y"))


# --- Mot de passe ---

def test_changement_mot_de_passe(db, seed):
    seed.account("198001", role="GURU", password="guru123")
    account_service.change_password(db, "198001", "baru")
    assert AccountRepository(db).get("198001").password == "baru"


def test_changement_mot_de_passe_vide(db, seed):
    seed.account("198001", role="GURU")
    with pytest.raises(ValidationError):
        account_service.change_password(db, "198001", "   ")


def test_changement_mot_de_passe_compte_inconnu(db):
    with pytest.raises(NotFound):
        account_service.change_password(db, "S404", "baru")
