"""
Résolution mentor_ref → guru.

students_map.mentor_ref contient selon le chemin d'écriture soit l'id brut du
guru ("198001"), soit une chaîne composite "198001 - Pak Budi". L'association
se fait donc par inclusion de sous-chaîne, pas par égalité de clé.

Limite connue : un id contenu dans un autre ("1" dans "12") produit un faux
positif. Comportement conservé tel quel ; toute correction doit se faire ici.
"""

from typing import Dict, Optional

NO_MENTOR = "-"


def mentor_ref_matches(mentor_ref: Optional[str], teacher_id: Optional[str]) -> bool:
    """True si la référence de pembimbing désigne ce guru (inclusion de sous-chaîne)."""
    teacher_id = str(teacher_id or "").strip()
    if not teacher_id:
        return False
    return teacher_id in str(mentor_ref or "")


def resolve_mentor_name(mentor_ref: Optional[str], teacher_names: Dict[str, str]) -> str:
    """
    Nom du guru pour une référence : lookup exact dans l'annuaire, sinon la
    référence brute (qui contient déjà le nom dans le format composite),
    sinon "-".
    """
    ref = str(mentor_ref or "").strip()
    return teacher_names.get(ref) or ref or NO_MENTOR
