"""
Configuration de la connexion à la base de données.
Les quatre tables métier (users, logbooks, students_map, teachers) sont des
collections plates, sans clé étrangère : les jointures sont faites en mémoire
par app.services.directory_service.
"""

import logging

from sqlalchemy import create_engine, select
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """
    Crée les tables manquantes et le compte admin principal s'il n'existe pas.
    Équivalent du setup initial de la base (une seule fois, idempotent).
    """
    import app.models  # noqa: F401  enregistre les tables dans Base.metadata
    from app.models.account import Account
    from app.services.years import current_year

    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    db = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
    try:
        admin = db.execute(
            select(Account).where(Account.username == "admin")
        ).scalar()
        if admin is None:
            db.add(Account(
                username="admin",
                password=settings.DEFAULT_ADMIN_PASSWORD,
                role="ADMIN",
                display_name="Administrator",
                major="-",
                cohort_year=current_year(),
            ))
            db.commit()
            logger.info("Compte admin principal créé.")
    finally:
        db.close()
