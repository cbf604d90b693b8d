"""
Modèle SQLAlchemy pour les sessions (une session active par compte).
Séparé de `users` : un nouveau login écrase le token précédent.
"""

from sqlalchemy import Column, DateTime, String, func

from app.database import Base


class SessionToken(Base):
    __tablename__ = "sessions"

    username = Column(String(64), primary_key=True)
    token = Column(String(64), unique=True, nullable=False)
    issued_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
