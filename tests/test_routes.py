"""Tests for the HTTP API.

Covers:
- Admin guard: missing and bad tokens
- Error envelope for service errors, including the RFC analysis
- Public endpoints: client login, RFC and client-number checks, RFC example, health
- Admin endpoints wired to their services
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from src.auth.dependencies import get_current_admin
from src.db.engine import get_session
from src.errors import ConflictError, NotFoundError, service_error_handler
from src.main import create_app
from src.models.admin_user import AdminUser
from src.models.cliente import Cliente

# ── Fixtures ─────────────────────────────────────────────────────────


def _admin() -> AdminUser:
    user = AdminUser(email="admin@tubos.mx", password_hash="x", name="Admin", role="admin", is_active=True)
    user.id = uuid.uuid4()
    return user


def _cliente() -> Cliente:
    cliente = Cliente(
        codigo_sn="CLI001",
        nombre_sn="JUAN PÉREZ",
        rfc="GOPE650615ABC",
        codigo_condiciones_pago="30",
        codigo_grupo="A",
    )
    cliente.id = uuid.uuid4()
    return cliente


@pytest.fixture
def db():
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def app(db):
    application = create_app()

    async def _session() -> AsyncGenerator[AsyncMock, None]:
        yield db

    application.dependency_overrides[get_session] = _session
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_client(app):
    app.dependency_overrides[get_current_admin] = _admin
    return TestClient(app)


# ── Admin guard ──────────────────────────────────────────────────────


class TestAdminGuard:
    def test_missing_token(self, client):
        response = client.get("/api/clientes")
        assert response.status_code == 401
        assert response.json()["detail"] == "Token de acceso requerido"

    def test_garbage_token(self, client):
        response = client.get("/api/clientes", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token inválido o expirado"

    def test_unknown_user(self, client):
        from src.auth.security import create_access_token

        token = create_access_token(str(uuid.uuid4()))
        with patch("src.auth.dependencies.service.get_admin", new_callable=AsyncMock, return_value=None):
            response = client.get("/api/clientes", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Usuario no encontrado"

    def test_inactive_user(self, client):
        from src.auth.security import create_access_token

        user = _admin()
        user.is_active = False
        token = create_access_token(str(user.id))
        with patch("src.auth.dependencies.service.get_admin", new_callable=AsyncMock, return_value=user):
            response = client.get("/api/clientes", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403


# ── Public endpoints ─────────────────────────────────────────────────


class TestPublic:
    def test_health(self, client):
        with patch("src.main.ping", new_callable=AsyncMock, return_value=True):
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["database"] == "up"

    def test_health_without_database(self, client):
        with patch("src.main.ping", new_callable=AsyncMock, return_value=False):
            response = client.get("/health")
        assert response.json()["status"] == "degraded"

    def test_rfc_example(self, client):
        response = client.get("/api/clientes/rfc/ejemplo", params={"tipo": "MORAL"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tipo_persona"] == "MORAL"
        assert len(data["rfc"]) == 12

    def test_validate_rfc(self, client):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_rfc = AsyncMock(return_value=None)
            response = client.post("/api/auth/validate-rfc", json={"rfc": "gope650615abc"})
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["analysis"]["normalized"] == "GOPE650615ABC"
        assert body["data"]["analysis"]["tipo_persona"] == "FISICA"
        assert body["data"]["exists"] is False

    def test_validate_invalid_rfc(self, client):
        response = client.post("/api/auth/validate-rfc", json={"rfc": ""})
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is False
        assert body["data"]["analysis"]["errors"] == ["RFC es requerido"]

    def test_validate_codigo(self, client):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo = AsyncMock(return_value=_cliente())
            response = client.post("/api/auth/validate-codigo", json={"codigo_sn": "cli001"})
        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Código de cliente validado"
        assert body["data"]["exists"] is True
        assert body["data"]["cliente"]["rfc"] == "GOPE650615ABC"

    def test_validate_codigo_unknown(self, client):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo = AsyncMock(return_value=None)
            response = client.post("/api/auth/validate-codigo", json={"codigo_sn": "CLI999"})
        assert response.json()["data"] == {"exists": False, "cliente": None}

    def test_validate_codigo_missing(self, client):
        response = client.post("/api/auth/validate-codigo", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "Código SN es requerido"


class TestClienteLogin:
    def test_invalid_rfc_envelope(self, client):
        response = client.post(
            "/api/auth/cliente", json={"numero_cliente": "CLI001", "rfc": "GOPE651315ABC"}
        )
        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["error"] == "INVALID_RFC"
        assert body["detail"] == "RFC inválido: Mes de nacimiento inválido (01-12)"
        assert body["data"]["is_valid"] is False

    def test_unknown_client(self, client):
        with (
            patch("src.auth.service.clientes_queries") as queries,
            patch("src.auth.service.publish", new_callable=AsyncMock),
        ):
            queries.get_by_codigo_and_rfc = AsyncMock(return_value=None)
            response = client.post(
                "/api/auth/cliente", json={"numero_cliente": "CLI999", "rfc": "GOPE650615ABC"}
            )
        assert response.status_code == 401
        assert response.json()["error"] == "AUTHENTICATION_ERROR"

    def test_success(self, client):
        with (
            patch("src.auth.service.clientes_queries") as queries,
            patch("src.auth.service.publish", new_callable=AsyncMock),
        ):
            queries.get_by_codigo_and_rfc = AsyncMock(return_value=_cliente())
            response = client.post(
                "/api/auth/cliente", json={"numero_cliente": "cli001", "rfc": "GOPE650615ABC"}
            )
        data = response.json()["data"]
        assert response.status_code == 200
        assert data["tipo_persona"] == "FISICA"
        assert data["cliente"]["codigo_sn"] == "CLI001"


# ── Admin endpoints ──────────────────────────────────────────────────


class TestClientesAdmin:
    def test_create_with_invalid_rfc(self, admin_client):
        response = admin_client.post(
            "/api/clientes",
            json={
                "codigo_sn": "CLI001",
                "nombre_sn": "Juan",
                "rfc": "XYZ",
                "codigo_condiciones_pago": "30",
                "codigo_grupo": "A",
            },
        )
        body = response.json()
        assert response.status_code == 400
        assert body["error"] == "INVALID_RFC"
        assert body["detail"].startswith("RFC inválido: ")

    def test_get_missing(self, admin_client):
        with patch("src.clientes.service.queries") as queries:
            queries.get_cliente = AsyncMock(return_value=None)
            response = admin_client.get(f"/api/clientes/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Cliente no encontrado"

    def test_clear_requires_phrase(self, admin_client):
        response = admin_client.request("DELETE", "/api/clientes/clear", json={"confirm": "si"})
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_template_download(self, admin_client):
        response = admin_client.get("/api/clientes/template")
        assert response.status_code == 200
        assert "plantilla_clientes.xlsx" in response.headers["content-disposition"]
        assert response.content[:2] == b"PK"

    def test_upload_with_errors(self, admin_client):
        csv = "Código SN,Nombre SN,RFC,Código Condiciones Pago,Código Grupo\nCLI001,Juan,XYZ,30,A\n"
        response = admin_client.post(
            "/api/clientes/upload",
            files={"archivo": ("clientes.csv", csv.encode("utf-8"), "text/csv")},
        )
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["valid_rows"] == 0
        assert detail["errors"][0].startswith("Fila 2: RFC inválido - ")

    def test_upload_validate_dry_run(self, admin_client):
        csv = "Código SN,Nombre SN,RFC,Código Condiciones Pago,Código Grupo\nCLI001,Juan,GOPE650615ABC,30,A\n"
        with patch("src.clientes.routes.service.import_clientes", new_callable=AsyncMock) as imported:
            response = admin_client.post(
                "/api/clientes/upload/validate",
                files={"archivo": ("clientes.csv", csv.encode("utf-8"), "text/csv")},
            )
            imported.assert_not_awaited()
        body = response.json()
        assert body["success"] is True
        assert body["data"]["valid_rows"] == 1

    def test_empty_upload(self, admin_client):
        response = admin_client.post(
            "/api/clientes/upload/validate",
            files={"archivo": ("clientes.csv", b"", "text/csv")},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "No se proporcionó archivo"


class TestSolicitudesRoutes:
    def test_missing_solicitud(self, admin_client):
        with patch("src.solicitudes.service.queries") as queries:
            queries.get_solicitud = AsyncMock(return_value=None)
            response = admin_client.get(f"/api/solicitudes/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Solicitud no encontrada"

    def test_submit_with_invalid_form(self, client):
        response = client.post(
            "/api/solicitudes",
            json={"tipo_persona": "FISICA", "cliente_id": str(uuid.uuid4()), "formulario": {}},
        )
        assert response.status_code == 422

    def test_listing_requires_admin(self, client):
        assert client.get("/api/solicitudes").status_code == 401


# ── Error handler ────────────────────────────────────────────────────


def _request(method: str, path: str) -> Request:
    return Request({"type": "http", "method": method, "path": path, "headers": [], "query_string": b""})


class TestServiceErrorHandler:
    @pytest.mark.asyncio()
    async def test_renders_not_found(self):
        response = await service_error_handler(_request("GET", "/api/clientes/x"), NotFoundError("Cliente no encontrado"))
        assert response.status_code == 404
        assert json.loads(response.body) == {
            "success": False,
            "detail": "Cliente no encontrado",
            "error": "NOT_FOUND",
        }

    @pytest.mark.asyncio()
    async def test_renders_conflict_without_data(self):
        response = await service_error_handler(_request("POST", "/api/clientes"), ConflictError("RFC duplicado"))
        body = json.loads(response.body)
        assert response.status_code == 409
        assert body["error"] == "CONFLICT"
        assert "data" not in body
