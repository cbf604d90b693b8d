"""
Dispatcher d'actions : point d'entrée unique {action, token, ...payload}.

Niveaux d'autorisation, vérifiés dans cet ordre :
1. Public (sans token) : login, inscription, annuaire des guru
2. Pembimbing lapangan : token statique SUPERVISOR_TOKEN, pas de compte
3. Utilisateur connecté : token de session valide
4. Admin : utilisateur connecté avec le rôle ADMIN

Toute erreur est convertie en {success: false, error} ; rien ne doit faire
tomber le dispatcher. Un token invalide ajoute sessionExpired: true pour que
le client redemande un login.
"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PayloadError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AccessDenied, LogbookError, SessionExpired, UpstreamStorageError
from app.schemas.account import (
    AccountDelete,
    AccountSave,
    LoginRequest,
    PasswordChange,
    Profile,
    ProfileUpdate,
    RegisterRequest,
)
from app.schemas.directory import (
    SearchQuery,
    StudentLogsQuery,
    TeacherImportRequest,
    YearFilter,
)
from app.schemas.logbook import FeedbackSave, LogbookDelete, LogbookSave
from app.services import (
    account_service,
    directory_service,
    logbook_service,
    session_service,
    teacher_import,
)
from app.services.directory_service import YearScope

logger = logging.getLogger(__name__)

Handler = Callable[[Session, Optional[Profile], Dict[str, Any]], Dict[str, Any]]

SESSION_EXPIRED_MESSAGE = "Sesi Anda telah berakhir. Silakan login kembali."
SUPERVISOR_DENIED_MESSAGE = "Akses Ditolak: Token Supervisor Salah."
SERVER_ERROR_MESSAGE = "Server Error: Terjadi kesalahan di sistem. Hubungi administrator."


def _dump_all(items) -> list:
    return [item.model_dump() for item in items]


# --- Public ---

def _login(db, user, payload):
    data = LoginRequest.model_validate(payload)
    result = session_service.issue_token(db, data.username, data.password)
    return result.model_dump()


def _register(db, user, payload):
    account_service.register_student(db, RegisterRequest.model_validate(payload))
    return {}


def _teacher_list(db, user, payload):
    return {"list": _dump_all(directory_service.list_teachers(db))}


# --- Pembimbing lapangan ---

def _supervisor_feed(db, user, payload):
    feed = directory_service.list_public_feed(db, cap=settings.SUPERVISOR_FEED_LIMIT)
    return {"list": _dump_all(feed)}


def _supervisor_search(db, user, payload):
    data = SearchQuery.model_validate(payload)
    results = directory_service.search_accounts(
        db, data.query,
        role="SISWA",
        cap=settings.SEARCH_LIMIT,
        min_length=settings.SEARCH_MIN_LENGTH,
    )
    return {"list": _dump_all(results)}


def _student_logs(db, user, payload):
    data = StudentLogsQuery.model_validate(payload)
    return {"list": _dump_all(directory_service.list_owner_entries(db, data.username))}


# --- Utilisateur connecté ---

def _dashboard_data(db, user, payload):
    return {"user": user.model_dump()}


def _save_logbook(db, user, payload):
    log_id = logbook_service.save_logbook(db, user, LogbookSave.model_validate(payload))
    return {"id": log_id}


def _delete_logbook(db, user, payload):
    data = LogbookDelete.model_validate(payload)
    logbook_service.delete_logbook(db, user, data.log_id)
    return {}


def _history(db, user, payload):
    return {"list": _dump_all(directory_service.list_history(db, user.username))}


def _public_feed(db, user, payload):
    feed = directory_service.list_public_feed(
        db, exclude_username=user.username, cap=settings.PUBLIC_FEED_LIMIT,
    )
    return {"list": _dump_all(feed)}


def _update_profile(db, user, payload):
    photo_url = account_service.update_profile(db, user, ProfileUpdate.model_validate(payload))
    return {"new_photo_url": photo_url}


def _my_students(db, user, payload):
    data = YearFilter.model_validate(payload)
    return {"list": _dump_all(directory_service.list_mentees(db, user.username, data.year))}


def _save_feedback(db, user, payload):
    logbook_service.save_feedback(db, user, FeedbackSave.model_validate(payload))
    return {}


def _teacher_years(db, user, payload):
    return {"years": directory_service.list_available_years(db, YearScope.TEACHER)}


def _change_password(db, user, payload):
    data = PasswordChange.model_validate(payload)
    account_service.change_password(db, user.username, data.new_password)
    return {}


# --- Admin ---

def _admin_years(db, user, payload):
    return {"years": directory_service.list_available_years(db, YearScope.ADMIN)}


def _admin_stats(db, user, payload):
    data = YearFilter.model_validate(payload)
    return directory_service.compute_dashboard_stats(db, data.year).model_dump()


def _admin_all_users(db, user, payload):
    data = YearFilter.model_validate(payload)
    return {"list": _dump_all(directory_service.list_all_accounts(db, data.year))}


def _admin_monitoring(db, user, payload):
    data = YearFilter.model_validate(payload)
    return {"list": _dump_all(directory_service.list_monitoring_feed(db, data.year))}


def _admin_save_user(db, user, payload):
    data = AccountSave.model_validate(payload)
    if data.is_edit:
        account_service.edit_account(db, data)
    else:
        account_service.create_account(db, data)
    return {}


def _admin_delete_user(db, user, payload):
    data = AccountDelete.model_validate(payload)
    account_service.delete_account(db, data.username)
    return {}


def _admin_import_teachers(db, user, payload):
    data = TeacherImportRequest.model_validate(payload)
    report = teacher_import.parse_and_import_teachers_csv(data.content.encode("utf-8"), db)
    return {"report": report.model_dump()}


PUBLIC_ACTIONS: Dict[str, Handler] = {
    "login": _login,
    "register": _register,
    "getTeacherList": _teacher_list,
}

SUPERVISOR_ACTIONS: Dict[str, Handler] = {
    "supervisorGetFeed": _supervisor_feed,
    "supervisorSearchStudent": _supervisor_search,
    "supervisorGetStudentLogs": _student_logs,
}

USER_ACTIONS: Dict[str, Handler] = {
    "getDashboardData": _dashboard_data,
    "saveLogbook": _save_logbook,
    "studentDeleteLog": _delete_logbook,
    "getHistory": _history,
    "getPublicFeed": _public_feed,
    "updateProfile": _update_profile,
    "getMyStudents": _my_students,
    "getStudentLogbooks": _student_logs,
    "saveFeedback": _save_feedback,
    "teacherGetYears": _teacher_years,
    "teacherChangePass": _change_password,
}

ADMIN_ACTIONS: Dict[str, Handler] = {
    "adminGetYears": _admin_years,
    "getAdminStats": _admin_stats,
    "adminGetAllUsers": _admin_all_users,
    "adminGetMonitoring": _admin_monitoring,
    "adminSaveUser": _admin_save_user,
    "adminDeleteUser": _admin_delete_user,
    "adminChangePass": _change_password,
    "adminImportTeachers": _admin_import_teachers,
}


def _payload_message(exc: PayloadError) -> str:
    """Premier message d'erreur de validation, lisible côté client."""
    first = exc.errors()[0]
    message = str(first.get("msg", "Data tidak valid."))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {message}" if field else message


def _route(db: Session, action: str, token: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
    if action in PUBLIC_ACTIONS:
        return PUBLIC_ACTIONS[action](db, None, payload)

    if token == settings.SUPERVISOR_TOKEN:
        if action in SUPERVISOR_ACTIONS:
            return SUPERVISOR_ACTIONS[action](db, None, payload)
        raise AccessDenied(SUPERVISOR_DENIED_MESSAGE)

    user = session_service.validate_token(db, token)
    if user is None:
        raise SessionExpired(SESSION_EXPIRED_MESSAGE)

    if action in USER_ACTIONS:
        return USER_ACTIONS[action](db, user, payload)

    if user.role == "ADMIN" and action in ADMIN_ACTIONS:
        return ADMIN_ACTIONS[action](db, user, payload)

    raise LogbookError(f"Action tidak dikenal: {action}")


def dispatch(db: Session, request: Dict[str, Any]) -> Dict[str, Any]:
    """
    Exécute une action et retourne la réponse JSON du client.
    Succès : {success: true, ...champs de l'action}.
    Échec : {success: false, error[, sessionExpired: true]}.
    """
    request = dict(request or {})
    action = str(request.pop("action", "") or "")
    token = request.pop("token", None)
    token = str(token).strip() if token is not None else None

    try:
        result = _route(db, action, token, request)
    except SessionExpired as exc:
        return {"success": False, "error": str(exc), "sessionExpired": True}
    except LogbookError as exc:
        return {"success": False, "error": str(exc)}
    except PayloadError as exc:
        return {"success": False, "error": _payload_message(exc)}
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Erreur stockage sur l'action [%s] : %s", action, exc, exc_info=True)
        return {"success": False, "error": str(UpstreamStorageError(
            "Database tidak dapat diakses. Silakan coba lagi."
        ))}
    except Exception as exc:
        logger.error("SERVER ERROR sur l'action [%s] : %s", action, exc, exc_info=True)
        return {"success": False, "error": SERVER_ERROR_MESSAGE}

    return {"success": True, **result}
