"""Tests for authentication.

Covers:
- argon2 password hashing and JWT round trip / expiry / tampering
- Client login: invalid RFC rejected before any lookup, normalized lookup,
  not-found message, person type in the result
- Public client-number check
- Admin login: bad password, inactive and non-admin accounts, last_login_at
- First-admin setup and admin activation rules
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.auth import service
from src.auth.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from src.errors import (
    AuthenticationError,
    ConflictError,
    InvalidRfcError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from src.models.admin_user import AdminUser
from src.models.cliente import Cliente
from src.models.enums import PersonType
from src.schemas.auth import AdminUserCreate
from src.schemas.events import EventType

# ── Helpers ──────────────────────────────────────────────────────────


def _make_db():
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    return db


def _admin(password: str = "Secreto123", **overrides) -> AdminUser:
    user = AdminUser(
        email="admin@tubos.mx",
        password_hash=get_password_hash(password),
        name="Admin",
        role="admin",
        is_active=True,
    )
    user.id = uuid.uuid4()
    for name, value in overrides.items():
        setattr(user, name, value)
    return user


def _cliente(rfc: str = "GOPE650615ABC") -> Cliente:
    cliente = Cliente(
        codigo_sn="CLI001",
        nombre_sn="JUAN PÉREZ",
        rfc=rfc,
        codigo_condiciones_pago="30",
        codigo_grupo="A",
    )
    cliente.id = uuid.uuid4()
    return cliente


@pytest.fixture
def mock_publish():
    with patch("src.auth.service.publish", new_callable=AsyncMock) as publish:
        yield publish


# ── Security primitives ──────────────────────────────────────────────


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = get_password_hash("Secreto123")
        assert hashed != "Secreto123"
        assert hashed.startswith("$argon2")
        assert verify_password("Secreto123", hashed) is True
        assert verify_password("secreto123", hashed) is False


class TestTokens:
    def test_round_trip(self):
        token = create_access_token("user-1", claims={"email": "a@b.mx", "role": "admin"})
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@b.mx"
        assert payload["role"] == "admin"
        assert "exp" in payload

    def test_expired_token(self):
        past = datetime.now(UTC) - timedelta(days=3)
        token = create_access_token("user-1", expires_delta=timedelta(hours=1), now_utc=past)
        assert decode_access_token(token) is None

    def test_tampered_token(self):
        token = create_access_token("user-1")
        assert decode_access_token(token[:-2] + "xx") is None

    def test_garbage(self):
        assert decode_access_token("not-a-token") is None


# ── Client login ─────────────────────────────────────────────────────


class TestLoginCliente:
    """Client number + RFC login."""

    @pytest.mark.asyncio()
    async def test_invalid_rfc_never_hits_database(self, mock_publish):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo_and_rfc = AsyncMock()
            with pytest.raises(InvalidRfcError) as exc:
                await service.login_cliente(_make_db(), "CLI001", "GOPE651315ABC")

            queries.get_by_codigo_and_rfc.assert_not_awaited()
        assert exc.value.status_code == 400
        assert exc.value.detail == "RFC inválido: Mes de nacimiento inválido (01-12)"

    @pytest.mark.asyncio()
    async def test_looks_up_normalized_rfc(self, mock_publish):
        cliente = _cliente()
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo_and_rfc = AsyncMock(return_value=cliente)
            db = _make_db()
            found, tipo = await service.login_cliente(db, " cli001 ", "gope 650615 abc")

            queries.get_by_codigo_and_rfc.assert_awaited_once_with(db, "CLI001", "GOPE650615ABC")
        assert found is cliente
        assert tipo is PersonType.FISICA
        assert mock_publish.await_args.args[0] is EventType.CLIENTE_LOGIN

    @pytest.mark.asyncio()
    async def test_moral_client(self, mock_publish):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo_and_rfc = AsyncMock(return_value=_cliente("TUB950615XY1"))
            _, tipo = await service.login_cliente(_make_db(), "CLI001", "TUB950615XY1")
        assert tipo is PersonType.MORAL

    @pytest.mark.asyncio()
    async def test_unknown_client(self, mock_publish):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo_and_rfc = AsyncMock(return_value=None)
            with pytest.raises(AuthenticationError) as exc:
                await service.login_cliente(_make_db(), "CLI999", "GOPE650615ABC")

        assert exc.value.status_code == 401
        assert exc.value.detail.startswith("No encontramos su número de cliente y/o RFC")
        assert "al menos 3 meses de antigüedad" in exc.value.detail
        assert mock_publish.await_args.args[0] is EventType.CLIENTE_LOGIN_FAILED


class TestCheckRfc:
    @pytest.mark.asyncio()
    async def test_invalid_rfc_is_not_looked_up(self):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_rfc = AsyncMock()
            check = await service.check_rfc(_make_db(), "123")
            queries.get_by_rfc.assert_not_awaited()
        assert check.analysis.is_valid is False
        assert check.exists is False

    @pytest.mark.asyncio()
    async def test_existing_rfc(self):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_rfc = AsyncMock(return_value=_cliente())
            check = await service.check_rfc(_make_db(), "gope650615abc")
        assert check.analysis.is_valid is True
        assert check.exists is True


class TestCheckCodigo:
    @pytest.mark.asyncio()
    async def test_blank_codigo_rejected(self):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo = AsyncMock()
            with pytest.raises(ValidationFailedError, match="Código SN es requerido"):
                await service.check_codigo(_make_db(), "   ")
            queries.get_by_codigo.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_unknown_codigo(self):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo = AsyncMock(return_value=None)
            check = await service.check_codigo(_make_db(), "CLI999")
        assert check.exists is False
        assert check.cliente is None

    @pytest.mark.asyncio()
    async def test_known_codigo_is_normalized(self):
        with patch("src.auth.service.clientes_queries") as queries:
            queries.get_by_codigo = AsyncMock(return_value=_cliente())
            check = await service.check_codigo(_make_db(), " cli001 ")
            assert queries.get_by_codigo.await_args.args[1] == "CLI001"
        assert check.exists is True
        assert check.cliente.model_dump() == {
            "codigo_sn": "CLI001",
            "nombre_sn": "JUAN PÉREZ",
            "rfc": "GOPE650615ABC",
        }


# ── Admin login ──────────────────────────────────────────────────────


class TestLoginAdmin:
    @pytest.mark.asyncio()
    async def test_success_issues_token(self, mock_publish):
        user = _admin()
        with patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=user):
            found, token = await service.login_admin(_make_db(), "admin@tubos.mx", "Secreto123")

        assert found is user
        assert user.last_login_at is not None
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == str(user.id)
        assert payload["role"] == "admin"
        assert mock_publish.await_args.args[0] is EventType.ADMIN_LOGIN

    @pytest.mark.asyncio()
    async def test_wrong_password(self, mock_publish):
        with patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=_admin()):
            with pytest.raises(AuthenticationError) as exc:
                await service.login_admin(_make_db(), "admin@tubos.mx", "otra")
        assert exc.value.detail == service.INVALID_CREDENTIALS
        assert mock_publish.await_args.args[0] is EventType.ADMIN_LOGIN_FAILED

    @pytest.mark.asyncio()
    async def test_unknown_email(self, mock_publish):
        with patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=None):
            with pytest.raises(AuthenticationError):
                await service.login_admin(_make_db(), "nadie@tubos.mx", "Secreto123")

    @pytest.mark.asyncio()
    async def test_inactive_account(self, mock_publish):
        user = _admin(is_active=False)
        with patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=user):
            with pytest.raises(AuthenticationError):
                await service.login_admin(_make_db(), "admin@tubos.mx", "Secreto123")

    @pytest.mark.asyncio()
    async def test_non_admin_role(self, mock_publish):
        user = _admin(role="client")
        with patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=user):
            with pytest.raises(AuthenticationError):
                await service.login_admin(_make_db(), "admin@tubos.mx", "Secreto123")


# ── Admin accounts ───────────────────────────────────────────────────


class TestAdminAccounts:
    @pytest.mark.asyncio()
    async def test_setup_refused_when_admin_exists(self, mock_publish):
        data = AdminUserCreate(email="nuevo@tubos.mx", password="Secreto123", name="Nuevo")
        with patch("src.auth.service.count_admins", new_callable=AsyncMock, return_value=1):
            with pytest.raises(ConflictError):
                await service.setup_first_admin(_make_db(), data)

    @pytest.mark.asyncio()
    async def test_setup_creates_first_admin(self, mock_publish):
        data = AdminUserCreate(email="Nuevo@Tubos.mx", password="Secreto123", name="Nuevo")
        db = _make_db()
        with (
            patch("src.auth.service.count_admins", new_callable=AsyncMock, return_value=0),
            patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=None),
        ):
            user = await service.setup_first_admin(db, data)

        assert user.email == "nuevo@tubos.mx"
        assert verify_password("Secreto123", user.password_hash)
        db.add.assert_called_once_with(user)
        assert mock_publish.await_args.args[0] is EventType.ADMIN_USER_CREATED

    @pytest.mark.asyncio()
    async def test_duplicate_email(self, mock_publish):
        data = AdminUserCreate(email="admin@tubos.mx", password="Secreto123", name="Otro")
        with patch("src.auth.service.get_admin_by_email", new_callable=AsyncMock, return_value=_admin()):
            with pytest.raises(ConflictError):
                await service.create_admin(_make_db(), data)

    def test_weak_password_rejected(self):
        with pytest.raises(ValueError):
            AdminUserCreate(email="x@tubos.mx", password="solominusculas", name="X")

    @pytest.mark.asyncio()
    async def test_cannot_deactivate_self(self, mock_publish):
        me = _admin()
        with patch("src.auth.service.get_admin", new_callable=AsyncMock, return_value=me):
            with pytest.raises(PermissionDeniedError):
                await service.set_admin_active(_make_db(), me.id, False, actor=me)
        assert me.is_active is True

    @pytest.mark.asyncio()
    async def test_deactivate_other(self, mock_publish):
        me, other = _admin(), _admin(email="otro@tubos.mx")
        with patch("src.auth.service.get_admin", new_callable=AsyncMock, return_value=other):
            user = await service.set_admin_active(_make_db(), other.id, False, actor=me)
        assert user.is_active is False
        assert mock_publish.await_args.args[0] is EventType.ADMIN_USER_STATUS_CHANGED

    @pytest.mark.asyncio()
    async def test_activate_missing_user(self, mock_publish):
        with patch("src.auth.service.get_admin", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError):
                await service.set_admin_active(_make_db(), uuid.uuid4(), True)
