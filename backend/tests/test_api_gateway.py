"""
Tests d'intégration API du point d'entrée unique POST /api/exec.
"""

from unittest.mock import patch


# ============================================================
# POST /api/exec
# ============================================================

def test_exec_transmet_la_requete_au_dispatcher(client):
    """Le corps JSON complet (action, token, payload) est passé au dispatcher."""
    with patch("app.routers.gateway.gateway.dispatch") as mock:
        mock.return_value = {"success": True, "list": []}

        response = client.post("/api/exec", json={
            "action": "getHistory",
            "token": "abc",
            "year": "2024",
        })

    assert response.status_code == 200
    assert response.json() == {"success": True, "list": []}
    request = mock.call_args.args[1]
    assert request == {"action": "getHistory", "token": "abc", "year": "2024"}


def test_exec_echec_repond_200(client):
    """Un échec métier reste une réponse 200 avec success: false."""
    with patch("app.routers.gateway.gateway.dispatch") as mock:
        mock.return_value = {
            "success": False,
            "error": "Sesi Anda telah berakhir. Silakan login kembali.",
            "sessionExpired": True,
        }

        response = client.post("/api/exec", json={"action": "getHistory"})

    assert response.status_code == 200
    assert response.json()["sessionExpired"] is True


def test_exec_corps_absent(client):
    """Sans corps JSON → 422 (validation FastAPI)."""
    response = client.post("/api/exec")
    assert response.status_code == 422


def test_exec_corps_non_objet(client):
    """Un tableau JSON n'est pas une requête valide → 422."""
    response = client.post("/api/exec", json=["login"])
    assert response.status_code == 422


# ============================================================
# GET /api/health
# ============================================================

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "Logbook PKL API", "version": "0.1.0"}
