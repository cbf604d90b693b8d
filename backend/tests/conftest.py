"""
Configuration partagée pour tous les tests.
- client : override de get_db pour éviter toute connexion réelle à PostgreSQL
- db : session SQLAlchemy sur une base SQLite en mémoire, tables créées
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["INIT_DB_ON_STARTUP"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def engine():
    """Moteur SQLite en mémoire partagé par toutes les connexions du test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    """Session BDD réelle (SQLite) pour les tests de services."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


class Seeder:
    """Insère des lignes brutes dans les quatre tables, dans l'ordre d'appel."""

    def __init__(self, session):
        self.db = session

    def account(self, username, role="SISWA", display_name=None, password="pass",
                major=None, cohort_year=None, photo=None):
        from app.models.account import Account
        row = Account(
            username=username, password=password, role=role,
            display_name=display_name, major=major,
            cohort_year=cohort_year, profile_photo_url=photo,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def logbook(self, log_id, owner, date="2024-03-01", title="Kegiatan",
                start_time="08:00", end_time="12:00", photo=None, feedback=""):
        from app.models.logbook import LogbookEntry
        row = LogbookEntry(
            id=log_id, owner_username=owner, date=date, title=title,
            start_time=start_time, end_time=end_time, description="Deskripsi",
            photo_url=photo, teacher_feedback=feedback,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def mapping(self, username, name, mentor_ref, major="TKJ"):
        from app.models.directory import MentorMapping
        row = MentorMapping(student_username=username, student_name=name,
                            major=major, mentor_ref=mentor_ref)
        self.db.add(row)
        self.db.commit()
        return row

    def teacher(self, nip, name):
        from app.models.directory import Teacher
        row = Teacher(nip=nip, name=name)
        self.db.add(row)
        self.db.commit()
        return row


@pytest.fixture
def seed(db):
    return Seeder(db)
