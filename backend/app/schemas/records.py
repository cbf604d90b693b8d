"""
Enregistrements typés retournés par les repositories (app.repositories).
Le moteur de jointure ne manipule que ces objets, jamais les lignes brutes.
Les clés naturelles sont normalisées à la lecture (apostrophe de préfixe
héritée du tableur, espaces).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


def normalize_key(value) -> str:
    """Retire les espaces et l'apostrophe de préfixe d'une clé (NISN, NIP...)."""
    if value is None:
        return ""
    return str(value).strip().lstrip("'").strip()


def _blank_to_none(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class AccountRecord(BaseModel):
    row_id: int
    username: str
    password: str = ""
    role: str
    display_name: Optional[str] = None
    major: Optional[str] = None
    profile_photo_url: Optional[str] = None
    cohort_year: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("username", mode="before")
    @classmethod
    def clean_username(cls, v) -> str:
        return normalize_key(v)

    @field_validator("role", mode="before")
    @classmethod
    def clean_role(cls, v) -> str:
        return str(v or "").strip().upper()

    @field_validator("display_name", "major", "profile_photo_url", "cohort_year", mode="before")
    @classmethod
    def blank_to_none(cls, v) -> Optional[str]:
        return _blank_to_none(v)


class LogbookRecord(BaseModel):
    row_id: int
    id: str
    owner_username: str
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    teacher_feedback: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("owner_username", mode="before")
    @classmethod
    def clean_owner(cls, v) -> str:
        return normalize_key(v)

    @field_validator("date", "start_time", "end_time", mode="before")
    @classmethod
    def strip_quote(cls, v) -> Optional[str]:
        return _blank_to_none(normalize_key(v)) if v is not None else None


class MentorMappingRecord(BaseModel):
    row_id: int
    student_username: str
    student_name: Optional[str] = None
    major: Optional[str] = None
    mentor_ref: str = ""

    model_config = {"from_attributes": True}

    @field_validator("student_username", mode="before")
    @classmethod
    def clean_username(cls, v) -> str:
        return normalize_key(v)

    @field_validator("mentor_ref", mode="before")
    @classmethod
    def clean_ref(cls, v) -> str:
        return normalize_key(v)


class TeacherRecord(BaseModel):
    row_id: int
    nip: str
    name: str = ""

    model_config = {"from_attributes": True}

    @field_validator("nip", mode="before")
    @classmethod
    def clean_nip(cls, v) -> str:
        return normalize_key(v)

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v) -> str:
        return str(v or "").strip()
