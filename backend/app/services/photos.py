"""
Politique de stockage des photos (journal et profil).
Seules les URLs http(s) déjà hébergées sont enregistrées ; une image encodée
(data URI base64) est ignorée sans bloquer l'enregistrement du reste.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def accepted_photo_url(photo: Optional[str]) -> Optional[str]:
    """Retourne l'URL de photo à enregistrer, ou None."""
    value = (photo or "").strip()
    if not value:
        return None
    if value.startswith(("http://", "https://")):
        return value
    logger.warning("Photo ignorée (format non supporté, %d caractères)", len(value))
    return None
