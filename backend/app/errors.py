"""
Erreurs métier remontées par les services.
Toutes héritent de ValueError (comme les services existants) et sont converties
en réponse {success: false, error} par le dispatcher.
"""


class LogbookError(ValueError):
    """Base des erreurs métier."""


class InvalidCredentials(LogbookError):
    pass


class SessionExpired(LogbookError):
    """Token vide, inconnu ou remplacé par un login plus récent."""


class AccessDenied(LogbookError):
    pass


class NotFound(LogbookError):
    pass


class DuplicateKey(LogbookError):
    pass


class ValidationError(LogbookError):
    """Champ obligatoire manquant ou valeur invalide."""


class UpstreamStorageError(LogbookError):
    """Échec inattendu du stockage (connexion perdue, verrou, etc.)."""
