"""initial schema: catalogs, users, role links, access grants, audit log

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

user_municipality_permission is the access matrix: one row per
(user, municipality, permission), reused across grant and revoke.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def _active() -> sa.Column:
    return sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "job_title",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(150), nullable=False, unique=True),
        _active(),
        *_timestamps(),
    )
    op.create_table(
        "municipality",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("num", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        _active(),
        *_timestamps(),
    )
    op.create_index("ix_municipality_num", "municipality", ["num"])
    op.create_table(
        "permission",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        _active(),
        *_timestamps(),
    )
    op.create_table(
        "role",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        _active(),
        *_timestamps(),
    )
    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(100), nullable=True, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("second_last_name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column(
            "job_title_id",
            sa.Integer(),
            sa.ForeignKey("job_title.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _active(),
        sa.Column(
            "created_by",
            sa.Integer(),
            sa.ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_by",
            sa.Integer(),
            sa.ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_app_user_job_title_id", "app_user", ["job_title_id"])
    op.create_index("ix_app_user_created_by", "app_user", ["created_by"])
    op.create_index("ix_app_user_deleted_at", "app_user", ["deleted_at"])

    op.create_table(
        "role_permission",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "role_id", sa.Integer(), sa.ForeignKey("role.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "permission_id",
            sa.Integer(),
            sa.ForeignKey("permission.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )
    op.create_index("ix_role_permission_lookup", "role_permission", ["role_id"])

    op.create_table(
        "user_role",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "role_id", sa.Integer(), sa.ForeignKey("role.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "assigned_by",
            sa.Integer(),
            sa.ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_role"),
    )
    op.create_index("ix_user_role_lookup", "user_role", ["user_id"])
    op.create_index("ix_user_role_deleted_at", "user_role", ["deleted_at"])

    op.create_table(
        "user_municipality_permission",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("app_user.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "municipality_id",
            sa.Integer(),
            sa.ForeignKey("municipality.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "permission_id",
            sa.Integer(),
            sa.ForeignKey("permission.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "is_exception", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        _active(),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id",
            "municipality_id",
            "permission_id",
            name="uq_user_municipality_permission",
        ),
    )
    op.create_index(
        "ix_grant_user_active", "user_municipality_permission", ["user_id", "active"]
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])
    op.create_index("ix_audit_log_module", "audit_log", ["module"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("user_municipality_permission")
    op.drop_table("user_role")
    op.drop_table("role_permission")
    op.drop_table("app_user")
    op.drop_table("role")
    op.drop_table("permission")
    op.drop_table("municipality")
    op.drop_table("job_title")
