"""
Modèle SQLAlchemy pour les entrées de journal PKL (feuille `logbooks`).
owner_username n'est pas une clé étrangère : une entrée survit à la
suppression du compte propriétaire.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.database import Base


class LogbookEntry(Base):
    __tablename__ = "logbooks"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, nullable=False)         # UUID opaque
    owner_username = Column(String(64), nullable=False, index=True)
    date = Column(String(32), nullable=True)                      # texte saisi, ex. "2024-12-31"
    start_time = Column(String(16), nullable=True)
    end_time = Column(String(16), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    photo_url = Column(String(500), nullable=True)
    teacher_feedback = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
