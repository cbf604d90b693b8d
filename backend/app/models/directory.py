"""
Modèles SQLAlchemy des deux tables annuaire dénormalisées :
students_map (élève → pembimbing) et teachers (id → nom).
"""

from sqlalchemy import Column, Integer, String

from app.database import Base


class MentorMapping(Base):
    """Affectation élève ↔ guru pembimbing, copie dénormalisée du compte."""
    __tablename__ = "students_map"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    student_username = Column(String(64), unique=True, nullable=False)
    student_name = Column(String(150), nullable=True)
    major = Column(String(100), nullable=True)
    mentor_ref = Column(String(255), nullable=True)  # "198001" ou "198001 - Pak Budi"


class Teacher(Base):
    """Annuaire des guru : référence canonique pour résoudre mentor_ref."""
    __tablename__ = "teachers"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    nip = Column(String(64), unique=True, nullable=False)
    name = Column(String(150), nullable=False)
