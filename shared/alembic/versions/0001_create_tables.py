"""Create credentials, push_settings, devices, dispatch_attempts tables.

Revision ID: 0001
Revises: -
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("api_key", sa.String(64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("api_key", name="uq_credentials_api_key"),
    )

    op.create_table(
        "push_settings",
        sa.Column("credential_id", sa.Uuid, primary_key=True),
        sa.Column(
            "drivers", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "devices",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("credential_id", sa.Uuid, nullable=False),
        sa.Column("platform", sa.String(16), nullable=False),
        sa.Column("identity", sa.String(255), nullable=False),
        sa.Column("regid", sa.Text, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "credential_id", "platform", "identity", name="uq_device_identity"
        ),
    )
    op.create_index("ix_devices_credential_id", "devices", ["credential_id"])

    op.create_table(
        "dispatch_attempts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("credential_id", sa.Uuid, nullable=False),
        sa.Column(
            "status", sa.String(16), nullable=False, server_default="pending"
        ),
        sa.Column("recipients", JSONB, nullable=False),
        sa.Column(
            "failures", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("payload", JSONB, nullable=False),
        sa.Column("driver_key", sa.String(64), nullable=True),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_dispatch_attempts_credential_id", "dispatch_attempts", ["credential_id"]
    )
    op.create_index("ix_dispatch_attempts_status", "dispatch_attempts", ["status"])


def downgrade() -> None:
    op.drop_index("ix_dispatch_attempts_status", table_name="dispatch_attempts")
    op.drop_index(
        "ix_dispatch_attempts_credential_id", table_name="dispatch_attempts"
    )
    op.drop_table("dispatch_attempts")
    op.drop_index("ix_devices_credential_id", table_name="devices")
    op.drop_table("devices")
    op.drop_table("push_settings")
    op.drop_table("credentials")
