"""
Router du point d'entrée unique du client (style JSON-RPC).
POST /api/exec  {action, token?, ...payload}  →  {success, error?, ...}
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.services import gateway

router = APIRouter(prefix="/api", tags=["Gateway"])


@router.post("/exec", summary="Exécuter une action")
def execute_action(request: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """
    Route l'action vers le service concerné après contrôle du token.

    Niveaux : public (login, register, getTeacherList), pembimbing lapangan
    (token statique), utilisateur connecté, admin.
    Répond toujours 200 ; l'échec est signalé par `success: false` et,
    pour une session invalide, `sessionExpired: true`.
    """
    return gateway.dispatch(db, request)
