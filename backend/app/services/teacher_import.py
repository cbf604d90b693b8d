"""
Service d'import CSV de l'annuaire des guru.
Gère le parsing, la validation, la détection de doublons et l'insertion,
puis crée un compte GURU (mot de passe par défaut) pour chaque guru importé
dont l'identifiant n'est pas déjà pris.

Colonnes (insensibles à la casse) :
- `nama` obligatoire
- `nip` optionnelle : si absente ou vide, numéro d'ordre après le plus grand
  identifiant numérique déjà présent dans l'annuaire
"""

import csv
import io
import logging
from typing import List, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import DuplicateKey
from app.repositories import AccountRepository, TeacherDirectoryRepository
from app.schemas.directory import TeacherImportError, TeacherImportReport
from app.schemas.records import normalize_key
from app.services.account_service import write_boundary

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"nama"}


def _normalize_header(raw: str) -> str:
    """Normalise un nom de colonne : minuscules, sans espaces."""
    return raw.strip().lower()


def _detect_separator(sample: str) -> str:
    """Détecte le séparateur CSV (virgule ou point-virgule)."""
    if sample.count(";") > sample.count(","):
        return ";"
    return ","


def _empty_report(errors: List[TeacherImportError]) -> TeacherImportReport:
    return TeacherImportReport(
        total_rows=0, inserted=0, accounts_created=0, rejected=len(errors),
        duplicates_in_file=0, duplicates_in_db=0, errors=errors,
    )


def parse_and_import_teachers_csv(content: bytes, db: Session, lock=None) -> TeacherImportReport:
    """
    Parse le CSV, valide chaque ligne, détecte les doublons et insère.

    Règles :
    - Ligne sans nom : rejetée
    - Doublon intra-fichier : même nip
    - Doublon BDD : nip déjà présent dans `teachers`
    - Compte GURU créé seulement si le username (= nip) est libre dans `users`

    Snapshots et écritures se font sous write_boundary(), comme les mutations
    de comptes du panneau admin.
    """
    text = content.decode("utf-8-sig")  # utf-8-sig gère le BOM Excel
    lines = text.splitlines()
    separator = _detect_separator(lines[0] if lines else "")

    reader = csv.DictReader(io.StringIO(text), delimiter=separator)

    if reader.fieldnames is None:
        return _empty_report([
            TeacherImportError(row=0, content="", reason="File CSV kosong atau tidak terbaca")
        ])

    field_map = {_normalize_header(f): f for f in reader.fieldnames}
    missing = REQUIRED_COLUMNS - set(field_map)
    if missing:
        return _empty_report([TeacherImportError(
            row=0, content=str(reader.fieldnames),
            reason=f"Kolom wajib tidak ada : {', '.join(sorted(missing))}",
        )])

    with write_boundary(lock):
        report = _import_rows(db, reader, field_map)

    logger.info(
        "Import guru : %d lignes, %d insérés, %d comptes créés, %d rejetés",
        report.total_rows, report.inserted, report.accounts_created, report.rejected,
    )
    return report


def _import_rows(db: Session, reader: csv.DictReader, field_map: dict) -> TeacherImportReport:
    teachers = TeacherDirectoryRepository(db)
    existing_nips: Set[str] = {t.nip for t in teachers.all()}
    taken_usernames: Set[str] = {a.username for a in AccountRepository(db).all()}

    numeric_ids = [int(n) for n in existing_nips if n.isdigit()]
    next_number = max(numeric_ids, default=0) + 1

    errors: List[TeacherImportError] = []
    seen_in_file: Set[str] = set()
    duplicates_in_file = 0
    duplicates_in_db = 0
    inserted = 0
    accounts_created = 0
    total_rows = 0

    for row_num, row in enumerate(reader, start=2):  # ligne 1 = header
        name = (row.get(field_map["nama"]) or "").strip()
        nip = normalize_key(row.get(field_map["nip"])) if "nip" in field_map else ""

        if not name and not nip:
            continue
        total_rows += 1

        if not name:
            errors.append(TeacherImportError(row=row_num, content=nip, reason="Nama guru kosong"))
            continue

        if not nip:
            while str(next_number) in existing_nips or str(next_number) in seen_in_file:
                next_number += 1
            nip = str(next_number)
            next_number += 1

        if nip in seen_in_file:
            duplicates_in_file += 1
            errors.append(TeacherImportError(
                row=row_num, content=f"{nip}, {name}", reason="Duplikat di dalam file CSV",
            ))
            continue
        seen_in_file.add(nip)

        if nip in existing_nips:
            duplicates_in_db += 1
            errors.append(TeacherImportError(
                row=row_num, content=f"{nip}, {name}", reason="Guru sudah ada di database",
            ))
            continue

        teachers.upsert(nip, name)
        inserted += 1

        if nip not in taken_usernames:
            AccountRepository(db).add(
                username=nip,
                password=settings.DEFAULT_TEACHER_PASSWORD,
                role="GURU",
                display_name=name,
                major="-",
            )
            taken_usernames.add(nip)
            accounts_created += 1

    if inserted:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateKey(
                "Import gagal: NIP atau username bentrok dengan data yang baru ditambahkan."
            )

    return TeacherImportReport(
        total_rows=total_rows,
        inserted=inserted,
        accounts_created=accounts_created,
        rejected=len(errors),
        duplicates_in_file=duplicates_in_file,
        duplicates_in_db=duplicates_in_db,
        errors=errors,
    )
