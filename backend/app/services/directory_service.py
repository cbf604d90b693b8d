"""
Moteur de jointure de l'annuaire : vues du dashboard admin, élèves d'un guru,
flux publics et recherche.

Le stockage ne fait pas de jointure. Chaque opération suit le même schéma :
1. Snapshots complets des tables nécessaires (repositories)
2. Dictionnaires indexés par clé naturelle (username/NISN, id guru)
3. Parcours de la collection principale du plus récent au plus ancien
   (ordre d'insertion inversé) avec filtre de portée, filtre d'année
   optionnel et plafond optionnel (arrêt dès qu'il est atteint)
4. Résolution des références via les dictionnaires, avec valeurs par défaut
5. Tri alphabétique final quand la vue l'exige
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.repositories import (
    AccountRepository,
    LogbookRepository,
    MentorMappingRepository,
    TeacherDirectoryRepository,
)
from app.schemas.account import AccountListItem, AccountSearchItem
from app.schemas.directory import (
    DashboardStats,
    FeedItem,
    MenteeItem,
    MonitoringItem,
    TeacherItem,
)
from app.schemas.logbook import HistoryItem, OwnerEntryItem
from app.schemas.records import AccountRecord, LogbookRecord, normalize_key
from app.services.mentor_matching import mentor_ref_matches, resolve_mentor_name
from app.services.years import cohort_year, matches_year, normalize_year_filter, parse_year

logger = logging.getLogger(__name__)

NO_MAPPING = "Belum ada Pembimbing"
DEFAULT_OWNER_NAME = "Siswa"
DEFAULT_OWNER_MAJOR = "-"


class YearScope(str, Enum):
    ADMIN = "ADMIN"      # angkatan des comptes + années des journaux
    TEACHER = "TEACHER"  # angkatan des comptes uniquement


# --- Valeurs par défaut ---

def resolve_display_name(account: AccountRecord) -> str:
    """Nom affiché : display_name, ou le username s'il est vide."""
    return account.display_name or account.username


def resolve_photo(url: Optional[str]) -> str:
    return url or ""


def resolve_owner(profiles: Dict[str, dict], username: str) -> dict:
    """Profil du propriétaire d'une entrée, ou le profil générique s'il est inconnu."""
    return profiles.get(username) or {
        "name": DEFAULT_OWNER_NAME,
        "major": DEFAULT_OWNER_MAJOR,
        "photo": "",
    }


def _sort_key(name: Optional[str]) -> str:
    return (name or "").casefold()


def _time_range(entry: LogbookRecord) -> str:
    return f"{entry.start_time or ''} - {entry.end_time or ''}"


# --- Années disponibles ---

def list_available_years(db: Session, scope: YearScope = YearScope.ADMIN) -> List[str]:
    """
    Années distinctes, de la plus récente à la plus ancienne.
    Un tri descendant de chaînes à 4 chiffres équivaut au tri numérique.
    """
    years = set()

    accounts = AccountRepository(db)
    if accounts.exists():
        for account in accounts.all():
            year = cohort_year(account.cohort_year)
            if year:
                years.add(year)

    if scope == YearScope.ADMIN:
        logbooks = LogbookRepository(db)
        if logbooks.exists():
            for entry in logbooks.all():
                year = parse_year(entry.date)
                if year:
                    years.add(year)

    return sorted(years, reverse=True)


# --- Dashboard admin ---

def compute_dashboard_stats(db: Session, year: Optional[str] = None) -> DashboardStats:
    """
    Compte élèves, guru et entrées de journal pour l'année donnée.
    Un guru sans angkatan est exclu dès qu'un filtre est actif.
    Retourne des zéros si les tables n'existent pas encore.
    """
    accounts = AccountRepository(db)
    logbooks = LogbookRepository(db)
    if not accounts.exists() or not logbooks.exists():
        return DashboardStats()

    year = normalize_year_filter(year)
    stats = DashboardStats()

    for account in accounts.all():
        if year and (account.cohort_year or "") != year:
            continue
        if account.role == "SISWA":
            stats.student_count += 1
        elif account.role == "GURU":
            stats.teacher_count += 1

    stats.logbook_count = sum(
        1 for entry in logbooks.all() if matches_year(entry.date, year)
    )
    return stats


def list_all_accounts(db: Session, year: Optional[str] = None) -> List[AccountListItem]:
    """Tous les comptes (tableau de gestion), triés par rôle ; ordre d'insertion à rôle égal."""
    year = normalize_year_filter(year)
    items = []
    for account in AccountRepository(db).all():
        if year and (account.cohort_year or "") != year:
            continue
        items.append(AccountListItem(
            username=account.username,
            password=account.password,
            role=account.role,
            display_name=account.display_name or "",
            major=account.major,
            cohort_year=account.cohort_year or "",
        ))
    items.sort(key=lambda item: item.role)
    return items


def _student_mentor_names(db: Session) -> Dict[str, str]:
    """NISN → nom du pembimbing, via l'annuaire des guru."""
    teacher_names = {t.nip: t.name for t in TeacherDirectoryRepository(db).all()}
    return {
        m.student_username: resolve_mentor_name(m.mentor_ref, teacher_names)
        for m in MentorMappingRepository(db).all()
    }


def list_monitoring_feed(db: Session, year: Optional[str] = None) -> List[MonitoringItem]:
    """Toutes les entrées de journal, plus récentes d'abord, avec le pembimbing résolu."""
    logbooks = LogbookRepository(db)
    if not logbooks.exists():
        return []

    year = normalize_year_filter(year)
    mentor_by_student = _student_mentor_names(db)

    items = []
    for entry in reversed(logbooks.all()):
        if not matches_year(entry.date, year):
            continue
        items.append(MonitoringItem(
            id=entry.id,
            username=entry.owner_username,
            date=entry.date or "",
            time_range=_time_range(entry),
            title=entry.title or "",
            description=entry.description or "",
            photo_url=resolve_photo(entry.photo_url),
            feedback=entry.teacher_feedback or "",
            mentor_name=mentor_by_student.get(entry.owner_username, NO_MAPPING),
        ))
    return items


# --- Guru pembimbing ---

def list_mentees(db: Session, teacher_id: str, year: Optional[str] = None) -> List[MenteeItem]:
    """
    Élèves dont le mentor_ref désigne ce guru, joints à leur compte
    (photo, angkatan), filtrés par année et triés par nom.
    """
    teacher_id = normalize_key(teacher_id)
    year = normalize_year_filter(year)
    accounts = {a.username: a for a in AccountRepository(db).all()}

    mentees = []
    for mapping in MentorMappingRepository(db).all():
        if not mentor_ref_matches(mapping.mentor_ref, teacher_id):
            continue
        account = accounts.get(mapping.student_username)
        student_year = (account.cohort_year or "") if account else ""
        if year and student_year != year:
            continue
        mentees.append(MenteeItem(
            username=mapping.student_username,
            display_name=mapping.student_name or mapping.student_username,
            major=mapping.major,
            photo_url=resolve_photo(account.profile_photo_url if account else None),
            cohort_year=student_year,
        ))

    mentees.sort(key=lambda m: _sort_key(m.display_name))
    logger.debug("Guru %s : %d élève(s) suivi(s)", teacher_id, len(mentees))
    return mentees


def list_teachers(db: Session) -> List[TeacherItem]:
    """Annuaire des guru (liste déroulante d'inscription), trié par nom."""
    teachers = TeacherDirectoryRepository(db)
    if not teachers.exists():
        return []
    items = [
        TeacherItem(nip=t.nip, name=t.name)
        for t in teachers.all()
        if t.nip and t.name
    ]
    items.sort(key=lambda t: _sort_key(t.name))
    return items


# --- Journaux d'un élève ---

def _owner_entries(db: Session, username: str) -> List[LogbookRecord]:
    owner = normalize_key(username)
    return [e for e in reversed(LogbookRepository(db).all()) if e.owner_username == owner]


def list_history(db: Session, username: str) -> List[HistoryItem]:
    """Historique personnel d'un élève, plus récent d'abord."""
    return [
        HistoryItem(
            id=e.id,
            date=e.date or "",
            start_time=e.start_time or "",
            end_time=e.end_time or "",
            title=e.title or "",
            description=e.description or "",
            photo_url=resolve_photo(e.photo_url),
            feedback=e.teacher_feedback or "",
        )
        for e in _owner_entries(db, username)
    ]


def list_owner_entries(db: Session, username: str) -> List[OwnerEntryItem]:
    """Entrées d'un élève consultées par un guru ou un pembimbing lapangan."""
    return [
        OwnerEntryItem(
            id=e.id,
            date=e.date or "",
            time_range=_time_range(e),
            title=e.title or "",
            description=e.description or "",
            photo_url=resolve_photo(e.photo_url),
            feedback=e.teacher_feedback or "",
        )
        for e in _owner_entries(db, username)
    ]


# --- Flux publics ---

def list_public_feed(
    db: Session,
    exclude_username: Optional[str] = None,
    cap: int = 20,
) -> List[FeedItem]:
    """
    Les `cap` entrées les plus récentes, avec le profil du propriétaire.
    exclude_username retire les entrées de l'élève connecté (vue "explorer") ;
    le flux pembimbing lapangan n'exclut personne.
    """
    logbooks = LogbookRepository(db)
    accounts = AccountRepository(db)
    if not logbooks.exists() or not accounts.exists():
        return []

    profiles = {
        a.username: {
            "name": resolve_display_name(a),
            "major": a.major or DEFAULT_OWNER_MAJOR,
            "photo": resolve_photo(a.profile_photo_url),
        }
        for a in accounts.all()
    }
    excluded = normalize_key(exclude_username) if exclude_username else None

    feed: List[FeedItem] = []
    if cap <= 0:
        return feed

    for entry in reversed(logbooks.all()):
        if excluded is not None and entry.owner_username == excluded:
            continue
        owner = resolve_owner(profiles, entry.owner_username)
        feed.append(FeedItem(
            owner_name=owner["name"],
            owner_major=owner["major"],
            owner_photo=owner["photo"],
            date=entry.date or "",
            title=entry.title or "",
            description=entry.description or "",
            photo_url=resolve_photo(entry.photo_url),
        ))
        if len(feed) >= cap:
            break
    return feed


def search_accounts(
    db: Session,
    query: Optional[str],
    role: str = "SISWA",
    cap: int = 10,
    min_length: int = 2,
) -> List[AccountSearchItem]:
    """
    Recherche insensible à la casse sur l'id ou le nom, limitée à un rôle.
    Moins de `min_length` caractères → liste vide, sans parcourir la table.
    """
    q = str(query or "").strip().casefold()
    if len(q) < min_length:
        return []

    results: List[AccountSearchItem] = []
    for account in AccountRepository(db).all():
        if len(results) >= cap:
            break
        if account.role != role:
            continue
        name = account.display_name or ""
        if q in account.username.casefold() or q in name.casefold():
            results.append(AccountSearchItem(
                username=account.username,
                display_name=resolve_display_name(account),
                major=account.major,
                photo_url=resolve_photo(account.profile_photo_url),
            ))
    return results
