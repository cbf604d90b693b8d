"""
Modèle SQLAlchemy pour les comptes (feuille `users`).
Ordre des colonnes figé : username, password, role, nama, jurusan, foto, tahun.
"""

from sqlalchemy import Column, DateTime, Integer, String, func

from app.database import Base


class Account(Base):
    __tablename__ = "users"

    row_id = Column(Integer, primary_key=True, autoincrement=True)  # ordre d'insertion
    username = Column(String(64), unique=True, nullable=False)     # NISN, NIP ou "admin"
    password = Column(String(255), nullable=False)                  # texte clair (héritage)
    role = Column(String(10), nullable=False)                       # ADMIN, GURU, SISWA
    display_name = Column(String(150), nullable=True)
    major = Column(String(100), nullable=True)
    profile_photo_url = Column(String(500), nullable=True)
    cohort_year = Column(String(10), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
