"""app-owned tables: simple_users and crm_leads

Revision ID: 0001_app_tables
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_app_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "simple_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_simple_users_email", "simple_users", ["email"], unique=True)

    op.create_table(
        "crm_leads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("nome", sa.String(length=255), nullable=False),
        sa.Column("empresa", sa.String(length=255), nullable=True),
        sa.Column("telefone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("endereco", sa.Text(), nullable=True),
        sa.Column("cnpj", sa.String(length=14), nullable=True),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("categoria", sa.String(length=255), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("reviews_count", sa.Integer(), nullable=True),
        sa.Column("fonte", sa.String(length=100), nullable=True),
        sa.Column("etapa", sa.String(length=20), nullable=False, server_default="novo"),
        sa.Column("notas", sa.Text(), nullable=True),
        sa.Column("dados_originais", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_crm_leads_user_email", "crm_leads", ["user_email"])
    op.create_index("ix_crm_leads_cnpj", "crm_leads", ["cnpj"])
    op.create_index("ix_crm_leads_etapa", "crm_leads", ["etapa"])


def downgrade() -> None:
    op.drop_index("ix_crm_leads_etapa", table_name="crm_leads")
    op.drop_index("ix_crm_leads_cnpj", table_name="crm_leads")
    op.drop_index("ix_crm_leads_user_email", table_name="crm_leads")
    op.drop_table("crm_leads")
    op.drop_index("ix_simple_users_email", table_name="simple_users")
    op.drop_table("simple_users")
