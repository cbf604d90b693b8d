"""
Utilitaires de filtre par année (angkatan / année du journal).

Les dates sont stockées comme texte saisi par le client : "2024-12-31",
"31/12/2024", "31/12/2024 08:30", "2024-12-31T08:30:00"... parse_year() ramène
tout ça à l'année calendaire sur 4 chiffres, ou None si illisible.
"""

import re
from datetime import date, datetime
from typing import Optional

YEAR_REGEX = re.compile(r"^\d{4}$")

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%Y/%m/%d",
    "%Y-%m",
    "%Y",
)


def _clean(value) -> str:
    if value is None:
        return ""
    return str(value).strip().lstrip("'").strip()


def parse_year(value) -> Optional[str]:
    """Retourne l'année d'une date texte (ou date/datetime), None si non parsable."""
    if isinstance(value, (date, datetime)):
        return f"{value.year:04d}"

    text = _clean(value)
    if not text:
        return None

    try:
        return f"{datetime.fromisoformat(text).year:04d}"
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return f"{datetime.strptime(text, fmt).year:04d}"
        except ValueError:
            continue
    return None


def cohort_year(value) -> Optional[str]:
    """Année d'angkatan d'un compte : uniquement si exactement 4 chiffres."""
    text = _clean(value)
    if YEAR_REGEX.match(text):
        return text
    return None


def normalize_year_filter(value) -> Optional[str]:
    """Paramètre de filtre : None/"" = pas de filtre, sinon la chaîne nettoyée."""
    text = _clean(value)
    return text or None


def matches_year(date_value, year: Optional[str]) -> bool:
    """
    True si aucun filtre n'est actif, ou si l'année de date_value vaut year.
    Une date illisible est exclue dès qu'un filtre est actif.
    """
    if year is None:
        return True
    return parse_year(date_value) == year


def current_year() -> str:
    return str(date.today().year)
