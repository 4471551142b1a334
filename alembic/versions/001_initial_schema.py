"""Initial schema — clients, applications, admin users, audit log.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "audit_log",
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("actor_id", sa.String(255), comment="Admin email, codigo_sn, or 'system'"),
        sa.Column("actor_role", sa.String(50), comment="admin, client, system"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text())),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_event_type", "audit_log", ["event_type"])

    op.create_table(
        "admin_users",
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="argon2"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="admin"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_users_email", "admin_users", ["email"], unique=True)

    op.create_table(
        "clientes",
        sa.Column("codigo_sn", sa.String(50), nullable=False),
        sa.Column("rfc", sa.String(13), nullable=False, comment="Normalized: uppercase, no whitespace"),
        sa.Column("nombre_sn", sa.String(255), nullable=False),
        sa.Column("codigo_condiciones_pago", sa.String(50), nullable=False),
        sa.Column("codigo_grupo", sa.String(50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clientes_codigo_sn", "clientes", ["codigo_sn"], unique=True)
    op.create_index("ix_clientes_rfc", "clientes", ["rfc"], unique=True)
    op.create_index("ix_clientes_codigo_grupo", "clientes", ["codigo_grupo"])

    # ── Dependent tables ───────────────────────────────────────────────

    op.create_table(
        "solicitudes",
        sa.Column("folio", sa.String(30), nullable=False),
        sa.Column("tipo_persona", sa.String(10), nullable=False),
        sa.Column(
            "cliente_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("clientes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("formulario_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("archivos_urls", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb")),
        sa.Column("estado", sa.String(20), nullable=False, server_default="PENDIENTE"),
        sa.Column("comentarios", sa.Text()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("tipo_persona IN ('FISICA', 'MORAL')", name="ck_solicitudes_tipo_persona"),
        sa.CheckConstraint("estado IN ('PENDIENTE', 'PROCESADA', 'RECHAZADA')", name="ck_solicitudes_estado"),
    )
    op.create_index("ix_solicitudes_folio", "solicitudes", ["folio"], unique=True)
    op.create_index("ix_solicitudes_tipo_persona", "solicitudes", ["tipo_persona"])
    op.create_index("ix_solicitudes_cliente_id", "solicitudes", ["cliente_id"])
    op.create_index("ix_solicitudes_estado", "solicitudes", ["estado"])
    op.create_index("ix_solicitudes_created_at", "solicitudes", ["created_at"])


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("solicitudes")
    op.drop_table("clientes")
    op.drop_table("admin_users")
    op.drop_table("audit_log")
