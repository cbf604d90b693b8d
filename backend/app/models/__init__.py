# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant Base.metadata.create_all() (app.database.init_db).

from app.models.account import Account  # noqa: F401
from app.models.session_token import SessionToken  # noqa: F401
from app.models.logbook import LogbookEntry  # noqa: F401
from app.models.directory import MentorMapping, Teacher  # noqa: F401
