"""
Schémas Pydantic des vues jointes produites par le moteur d'annuaire
(monitoring admin, élèves d'un guru, flux publics, statistiques).
"""

from typing import List, Optional

from pydantic import BaseModel


class YearFilter(BaseModel):
    year: Optional[str] = None


class DashboardStats(BaseModel):
    student_count: int = 0
    teacher_count: int = 0
    logbook_count: int = 0


class MonitoringItem(BaseModel):
    id: str
    username: str
    date: str = ""
    time_range: str = ""
    title: str = ""
    description: str = ""
    photo_url: str = ""
    feedback: str = ""
    mentor_name: str


class MenteeItem(BaseModel):
    username: str
    display_name: str
    major: Optional[str] = None
    photo_url: str = ""
    cohort_year: str = ""


class FeedItem(BaseModel):
    owner_name: str
    owner_major: str
    owner_photo: str = ""
    date: str = ""
    title: str = ""
    description: str = ""
    photo_url: str = ""


class TeacherItem(BaseModel):
    nip: str
    name: str


class SearchQuery(BaseModel):
    query: str = ""


class StudentLogsQuery(BaseModel):
    username: str


class TeacherImportRequest(BaseModel):
    content: str


class TeacherImportError(BaseModel):
    """Détail d'une ligne rejetée lors de l'import."""
    row: int
    content: str
    reason: str


class TeacherImportReport(BaseModel):
    """Rapport retourné après un import CSV de l'annuaire des guru."""
    total_rows: int
    inserted: int
    accounts_created: int
    rejected: int
    duplicates_in_file: int
    duplicates_in_db: int
    errors: List[TeacherImportError]
