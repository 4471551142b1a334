"""Tests for the client service layer.

Covers:
- create: RFC rejection with the joined error list, normalization, uniqueness
- update: partial changes, re-validation, uniqueness excluding self, 404
- pre-flight check flags
- clear confirmation phrase
- import persistence: skipping stored duplicates, replace mode
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.clientes import service
from src.errors import (
    ClienteNotFoundError,
    DuplicateClienteError,
    InvalidRfcError,
    ValidationFailedError,
)
from src.models.cliente import Cliente
from src.schemas.clientes import (
    ClienteCheckRequest,
    ClienteCreate,
    ClienteUpdate,
    ImportReport,
)
from src.schemas.events import EventType

# ── Helpers ──────────────────────────────────────────────────────────


def _make_db():
    """Build a mock AsyncSession."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


def _create(**overrides) -> ClienteCreate:
    data = {
        "codigo_sn": "cli001",
        "nombre_sn": "Juan Pérez",
        "rfc": "gope 650615 abc",
        "codigo_condiciones_pago": "30",
        "codigo_grupo": "a",
    }
    data.update(overrides)
    return ClienteCreate(**data)


def _cliente(**overrides) -> Cliente:
    cliente = Cliente(
        codigo_sn="CLI001",
        nombre_sn="Juan Pérez",
        rfc="GOPE650615ABC",
        codigo_condiciones_pago="30",
        codigo_grupo="A",
    )
    cliente.id = uuid.uuid4()
    for name, value in overrides.items():
        setattr(cliente, name, value)
    return cliente


@pytest.fixture
def mock_publish():
    with patch("src.clientes.service.publish", new_callable=AsyncMock) as publish:
        yield publish


@pytest.fixture
def mock_queries(mock_publish):
    """Patch the client queries used by the service."""
    with patch("src.clientes.service.queries") as queries:
        queries.get_cliente = AsyncMock(return_value=None)
        queries.rfc_exists = AsyncMock(return_value=False)
        queries.codigo_exists = AsyncMock(return_value=False)
        queries.delete_all = AsyncMock(return_value=0)
        yield queries


# ── create ───────────────────────────────────────────────────────────


class TestCreateCliente:
    """create_cliente validates before touching the database."""

    @pytest.mark.asyncio()
    async def test_stores_normalized_rfc(self, mock_queries):
        db = _make_db()
        cliente = await service.create_cliente(db, _create(), actor="admin@test.mx")

        assert cliente.rfc == "GOPE650615ABC"
        assert cliente.codigo_sn == "CLI001"
        assert cliente.codigo_grupo == "A"
        db.add.assert_called_once_with(cliente)
        mock_queries.rfc_exists.assert_awaited_once_with(db, "GOPE650615ABC")

    @pytest.mark.asyncio()
    async def test_emits_created_event(self, mock_queries, mock_publish):
        await service.create_cliente(_make_db(), _create(), actor="admin@test.mx")

        mock_publish.assert_awaited_once()
        assert mock_publish.await_args.args[0] is EventType.CLIENTE_CREATED
        assert mock_publish.await_args.kwargs["actor_id"] == "admin@test.mx"

    @pytest.mark.asyncio()
    async def test_invalid_rfc_rejects_whole_record(self, mock_queries):
        db = _make_db()
        with pytest.raises(InvalidRfcError) as exc:
            await service.create_cliente(db, _create(rfc="GOPE651315ABC"))

        assert exc.value.detail == "RFC inválido: Mes de nacimiento inválido (01-12)"
        assert exc.value.status_code == 400
        db.add.assert_not_called()
        mock_queries.rfc_exists.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_duplicate_rfc(self, mock_queries):
        mock_queries.rfc_exists.return_value = True
        with pytest.raises(DuplicateClienteError) as exc:
            await service.create_cliente(_make_db(), _create())
        assert exc.value.status_code == 409
        assert "GOPE650615ABC" in exc.value.detail

    @pytest.mark.asyncio()
    async def test_duplicate_codigo(self, mock_queries):
        mock_queries.codigo_exists.return_value = True
        with pytest.raises(DuplicateClienteError):
            await service.create_cliente(_make_db(), _create())


# ── update / delete ──────────────────────────────────────────────────


class TestUpdateCliente:
    @pytest.mark.asyncio()
    async def test_missing_cliente(self, mock_queries):
        with pytest.raises(ClienteNotFoundError):
            await service.update_cliente(_make_db(), uuid.uuid4(), ClienteUpdate(nombre_sn="X"))

    @pytest.mark.asyncio()
    async def test_partial_update_keeps_other_fields(self, mock_queries):
        existing = _cliente()
        mock_queries.get_cliente.return_value = existing

        updated = await service.update_cliente(
            _make_db(), existing.id, ClienteUpdate(codigo_grupo="b")
        )

        assert updated.codigo_grupo == "B"
        assert updated.rfc == "GOPE650615ABC"
        mock_queries.rfc_exists.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_new_rfc_is_validated_and_normalized(self, mock_queries):
        existing = _cliente()
        mock_queries.get_cliente.return_value = existing

        updated = await service.update_cliente(
            _make_db(), existing.id, ClienteUpdate(rfc="tub950615xy1")
        )

        assert updated.rfc == "TUB950615XY1"
        assert mock_queries.rfc_exists.await_args.args[1] == "TUB950615XY1"
        assert mock_queries.rfc_exists.await_args.kwargs == {"exclude_id": existing.id}

    @pytest.mark.asyncio()
    async def test_invalid_new_rfc(self, mock_queries):
        existing = _cliente()
        mock_queries.get_cliente.return_value = existing

        with pytest.raises(InvalidRfcError):
            await service.update_cliente(_make_db(), existing.id, ClienteUpdate(rfc="XYZ"))
        assert existing.rfc == "GOPE650615ABC"


class TestDeleteCliente:
    @pytest.mark.asyncio()
    async def test_deletes_and_emits(self, mock_queries, mock_publish):
        existing = _cliente()
        mock_queries.get_cliente.return_value = existing
        db = _make_db()

        await service.delete_cliente(db, existing.id, actor="admin@test.mx")

        db.delete.assert_awaited_once_with(existing)
        assert mock_publish.await_args.args[0] is EventType.CLIENTE_DELETED


# ── check / clear ────────────────────────────────────────────────────


class TestCheckCliente:
    @pytest.mark.asyncio()
    async def test_valid_and_unused(self, mock_queries):
        result = await service.check_cliente(
            _make_db(), ClienteCheckRequest(rfc="gope650615abc", codigo_sn="cli001")
        )
        assert result.valid is True
        assert result.rfc is not None
        assert result.rfc.normalized == "GOPE650615ABC"
        mock_queries.codigo_exists.assert_awaited_once()
        assert mock_queries.codigo_exists.await_args.args[1] == "CLI001"

    @pytest.mark.asyncio()
    async def test_invalid_rfc_skips_duplicate_lookup(self, mock_queries):
        result = await service.check_cliente(_make_db(), ClienteCheckRequest(rfc="ABC"))
        assert result.valid is False
        assert result.duplicates.rfc is False
        mock_queries.rfc_exists.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_duplicate_flags(self, mock_queries):
        mock_queries.rfc_exists.return_value = True
        result = await service.check_cliente(_make_db(), ClienteCheckRequest(rfc="GOPE650615ABC"))
        assert result.valid is False
        assert result.duplicates.rfc is True

    @pytest.mark.asyncio()
    async def test_nothing_to_check(self, mock_queries):
        result = await service.check_cliente(_make_db(), ClienteCheckRequest())
        assert result.valid is True
        assert result.rfc is None


class TestClearClientes:
    @pytest.mark.asyncio()
    async def test_requires_confirmation(self, mock_queries):
        with pytest.raises(ValidationFailedError):
            await service.clear_clientes(_make_db(), "yes")
        mock_queries.delete_all.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_clears_with_phrase(self, mock_queries, mock_publish):
        mock_queries.delete_all.return_value = 12
        deleted = await service.clear_clientes(_make_db(), "DELETE_ALL_CLIENTS")
        assert deleted == 12
        assert mock_publish.await_args.args[0] is EventType.CLIENTES_CLEARED


# ── import ───────────────────────────────────────────────────────────


def _report(*clientes: ClienteCreate) -> ImportReport:
    return ImportReport(
        is_valid=True,
        clientes=list(clientes),
        total_rows=len(clientes),
        valid_rows=len(clientes),
    )


class TestImportClientes:
    """Persisting a validated import report."""

    @pytest.mark.asyncio()
    async def test_invalid_report_refused(self, mock_queries):
        with pytest.raises(ValidationFailedError):
            await service.import_clientes(_make_db(), ImportReport(errors=["x"]))

    @pytest.mark.asyncio()
    async def test_creates_all_new(self, mock_queries, mock_publish):
        db = _make_db()
        report = _report(
            _create(rfc="GOPE650615ABC"),
            _create(codigo_sn="CLI002", rfc="TUB950615XY1"),
        )

        outcome = await service.import_clientes(db, report, filename="c.xlsx", actor="admin@test.mx")

        assert outcome.creados == 2
        assert outcome.errores_creacion == []
        assert outcome.archivo == "c.xlsx"
        assert outcome.usuario == "admin@test.mx"
        assert db.add.call_count == 2
        assert mock_publish.await_args.args[0] is EventType.CLIENTES_IMPORTED

    @pytest.mark.asyncio()
    async def test_skips_clients_already_stored(self, mock_queries):
        mock_queries.rfc_exists.side_effect = lambda db, rfc: rfc == "GOPE650615ABC"
        db = _make_db()
        report = _report(
            _create(rfc="GOPE650615ABC"),
            _create(codigo_sn="CLI002", rfc="TUB950615XY1"),
        )

        outcome = await service.import_clientes(db, report)

        assert outcome.creados == 1
        assert outcome.errores_creacion == ["CLI001: RFC GOPE650615ABC ya registrado"]

    @pytest.mark.asyncio()
    async def test_replace_existing_wipes_first(self, mock_queries):
        mock_queries.delete_all.return_value = 7
        mock_queries.rfc_exists.return_value = True

        outcome = await service.import_clientes(
            _make_db(), _report(_create(rfc="GOPE650615ABC")), replace_existing=True
        )

        assert outcome.eliminados == 7
        assert outcome.creados == 1
        mock_queries.rfc_exists.assert_not_awaited()
