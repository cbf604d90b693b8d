"""
Repositories : une classe par table, lectures complètes et écritures unitaires.

Le stockage n'offre ni jointure ni contrainte relationnelle entre les tables ;
les lectures retournent des snapshots complets, dans l'ordre d'insertion
(row_id), sous forme d'enregistrements typés (app.schemas.records).
Les écritures ajoutent/modifient des objets ORM dans la session ; le commit
reste à la charge du service appelant.
"""

from typing import Optional

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from app.models.account import Account
from app.models.directory import MentorMapping, Teacher
from app.models.logbook import LogbookEntry
from app.models.session_token import SessionToken
from app.schemas.records import (
    AccountRecord,
    LogbookRecord,
    MentorMappingRecord,
    TeacherRecord,
    normalize_key,
)


class _Repository:
    model = None
    record = None

    def __init__(self, db: Session):
        self.db = db

    def exists(self) -> bool:
        """True si la table existe physiquement (base fraîchement créée, table supprimée...)."""
        return inspect(self.db.get_bind()).has_table(self.model.__tablename__)

    def all(self) -> list:
        rows = self.db.execute(
            select(self.model).order_by(self.model.row_id)
        ).scalars().all()
        return [self.record.model_validate(r) for r in rows]


class AccountRepository(_Repository):
    model = Account
    record = AccountRecord

    def get(self, username: str) -> Optional[Account]:
        return self.db.execute(
            select(Account).where(Account.username == normalize_key(username))
        ).scalar()

    def add(self, **fields) -> Account:
        fields["username"] = normalize_key(fields["username"])
        account = Account(**fields)
        self.db.add(account)
        return account

    def delete(self, account: Account) -> None:
        self.db.delete(account)


class SessionRepository:
    """Table sessions : username → token (une ligne par compte)."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> Optional[SessionToken]:
        return self.db.execute(
            select(SessionToken).where(SessionToken.token == token)
        ).scalar()

    def upsert(self, username: str, token: str) -> SessionToken:
        username = normalize_key(username)
        session = self.db.get(SessionToken, username)
        if session is None:
            session = SessionToken(username=username, token=token)
            self.db.add(session)
        else:
            session.token = token
        return session

    def delete(self, username: str) -> bool:
        session = self.db.get(SessionToken, normalize_key(username))
        if session is None:
            return False
        self.db.delete(session)
        return True


class LogbookRepository(_Repository):
    model = LogbookEntry
    record = LogbookRecord

    def get(self, log_id: str) -> Optional[LogbookEntry]:
        return self.db.execute(
            select(LogbookEntry).where(LogbookEntry.id == str(log_id).strip())
        ).scalar()

    def add(self, **fields) -> LogbookEntry:
        entry = LogbookEntry(**fields)
        self.db.add(entry)
        return entry

    def delete(self, entry: LogbookEntry) -> None:
        self.db.delete(entry)


class MentorMappingRepository(_Repository):
    model = MentorMapping
    record = MentorMappingRecord

    def get(self, username: str) -> Optional[MentorMapping]:
        return self.db.execute(
            select(MentorMapping).where(MentorMapping.student_username == normalize_key(username))
        ).scalar()

    def add(self, username: str, name: Optional[str], major: Optional[str], mentor_ref: Optional[str]) -> MentorMapping:
        mapping = MentorMapping(
            student_username=normalize_key(username),
            student_name=name,
            major=major,
            mentor_ref=mentor_ref or "",
        )
        self.db.add(mapping)
        return mapping

    def delete(self, username: str) -> bool:
        mapping = self.get(username)
        if mapping is None:
            return False
        self.db.delete(mapping)
        return True


class TeacherDirectoryRepository(_Repository):
    model = Teacher
    record = TeacherRecord

    def get(self, nip: str) -> Optional[Teacher]:
        return self.db.execute(
            select(Teacher).where(Teacher.nip == normalize_key(nip))
        ).scalar()

    def upsert(self, nip: str, name: str) -> Teacher:
        teacher = self.get(nip)
        if teacher is None:
            teacher = Teacher(nip=normalize_key(nip), name=name)
            self.db.add(teacher)
        else:
            teacher.name = name
        return teacher

    def delete(self, nip: str) -> bool:
        teacher = self.get(nip)
        if teacher is None:
            return False
        self.db.delete(teacher)
        return True
