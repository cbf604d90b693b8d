"""
Schémas Pydantic pour les comptes, l'authentification et le profil.
"""

from typing import Optional

from pydantic import BaseModel, field_validator

VALID_ROLES = {"ADMIN", "GURU", "SISWA"}


def _required(v: Optional[str]) -> str:
    if v is None or not str(v).strip():
        raise ValueError("Data wajib diisi.")
    return str(v).strip()


class Profile(BaseModel):
    """Profil résolu d'un utilisateur connecté (retourné par validate_token)."""
    username: str
    display_name: str
    role: str
    major: Optional[str] = None
    cohort_year: str = ""
    photo_url: str = ""


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class LoginResult(BaseModel):
    token: str
    role: str
    user: Profile


class AccountSave(BaseModel):
    """Corps de adminSaveUser : création (is_edit=False) ou modification."""
    is_edit: bool = False
    username: str
    password: str
    display_name: str
    role: str = "SISWA"
    major: Optional[str] = None
    cohort_year: Optional[str] = None
    mentor_ref: Optional[str] = None

    @field_validator("username", "password", "display_name", mode="before")
    @classmethod
    def not_empty(cls, v) -> str:
        return _required(v)

    @field_validator("role", mode="before")
    @classmethod
    def valid_role(cls, v) -> str:
        role = str(v or "").strip().upper()
        if role not in VALID_ROLES:
            raise ValueError(f"Role tidak valid. Pilihan : {sorted(VALID_ROLES)}")
        return role

    @field_validator("major", "cohort_year", "mentor_ref", mode="before")
    @classmethod
    def strip_optional(cls, v) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip() or None


class RegisterRequest(BaseModel):
    """Inscription publique d'un élève (NISN + pembimbing choisi)."""
    username: str
    password: str
    display_name: str
    major: Optional[str] = None
    cohort_year: Optional[str] = None
    mentor_ref: Optional[str] = None

    @field_validator("username", "password", "display_name", mode="before")
    @classmethod
    def not_empty(cls, v) -> str:
        return _required(v)

    @field_validator("major", "cohort_year", "mentor_ref", mode="before")
    @classmethod
    def strip_optional(cls, v) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip() or None


class ProfileUpdate(BaseModel):
    """Champs modifiables par l'utilisateur lui-même ; absents = inchangés."""
    password: Optional[str] = None
    display_name: Optional[str] = None
    major: Optional[str] = None
    photo_url: Optional[str] = None
    cohort_year: Optional[str] = None


class PasswordChange(BaseModel):
    new_password: str

    @field_validator("new_password", mode="before")
    @classmethod
    def not_empty(cls, v) -> str:
        return _required(v)


class AccountListItem(BaseModel):
    """Ligne du tableau de gestion des utilisateurs (admin)."""
    username: str
    password: str
    role: str
    display_name: str
    major: Optional[str] = None
    cohort_year: str = ""


class AccountSearchItem(BaseModel):
    username: str
    display_name: str
    major: Optional[str] = None
    photo_url: str = ""


class AccountDelete(BaseModel):
    username: str

    @field_validator("username", mode="before")
    @classmethod
    def not_empty(cls, v) -> str:
        return _required(v)
