"""
Schémas Pydantic pour les entrées de journal PKL.
"""

from typing import Optional

from pydantic import BaseModel, field_validator


class LogbookSave(BaseModel):
    """Corps de saveLogbook : id présent = modification, absent = création."""
    id: Optional[str] = None
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    title: str
    description: Optional[str] = None
    photo: Optional[str] = None  # URL déjà hébergée ; les data URI sont ignorées

    @field_validator("date", "title", mode="before")
    @classmethod
    def not_empty(cls, v) -> str:
        if v is None or not str(v).strip():
            raise ValueError("Tanggal dan judul wajib diisi.")
        return str(v).strip()

    @field_validator("id", mode="before")
    @classmethod
    def blank_id(cls, v) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip() or None


class LogbookDelete(BaseModel):
    log_id: str


class FeedbackSave(BaseModel):
    id: str
    feedback: str = ""


class HistoryItem(BaseModel):
    """Entrée de l'historique personnel d'un élève (heures séparées, éditable)."""
    id: str
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    title: str = ""
    description: str = ""
    photo_url: str = ""
    feedback: str = ""


class OwnerEntryItem(BaseModel):
    """Entrée consultée par un guru ou un pembimbing lapangan (heures fusionnées)."""
    id: str
    date: str = ""
    time_range: str = ""
    title: str = ""
    description: str = ""
    photo_url: str = ""
    feedback: str = ""
