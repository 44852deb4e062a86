"""Create release, ticket and audit tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tickets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ticket_id", sa.String(128), nullable=False),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("status", sa.String(64), nullable=False),
        sa.Column("assignee", sa.String(256), nullable=False),
        sa.Column("priority", sa.String(64), nullable=False),
        sa.Column("components", sa.JSON, nullable=False),
        sa.Column("fix_versions", sa.JSON, nullable=False),
        sa.Column("created", sa.String(64), nullable=True),
        sa.Column("updated", sa.String(64), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tickets_ticket_id", "tickets", ["ticket_id"], unique=True)
    op.create_index("ix_tickets_status", "tickets", ["status"])

    op.create_table(
        "releases",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("version", sa.String(128), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(64), nullable=False),
        sa.Column("commits", sa.JSON, nullable=False),
        sa.Column("notes", sa.Text, nullable=False),
        sa.Column("additional_points", sa.JSON, nullable=False),
        sa.Column("component_deliveries", sa.JSON, nullable=False),
        sa.Column("released_by", sa.String(256), nullable=True),
        sa.Column("build_url", sa.String(2000), nullable=True),
        sa.Column("service_id", sa.String(128), nullable=True),
        sa.Column("customers", sa.JSON, nullable=False),
    )
    op.create_index("ix_releases_service_id", "releases", ["service_id"])
    op.create_index("ix_releases_created_at", "releases", ["created_at"])
    op.create_index(
        "ix_releases_service_created", "releases", ["service_id", "created_at"]
    )

    op.create_table(
        "release_tickets",
        sa.Column(
            "release_id",
            sa.String(128),
            sa.ForeignKey("releases.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "ticket_pk",
            sa.String(36),
            sa.ForeignKey("tickets.id"),
            primary_key=True,
        ),
        sa.Column("position", sa.Integer, nullable=False),
    )
    op.create_index("ix_release_tickets_ticket_pk", "release_tickets", ["ticket_pk"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor", sa.String(256), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "created", "updated", "renamed", "deleted", "synced",
                name="audit_action",
            ),
            nullable=False,
        ),
        sa.Column("entity_kind", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(128), nullable=False),
        sa.Column("before", sa.JSON, nullable=True),
        sa.Column("after", sa.JSON, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_kind", "entity_id"])
    op.create_index(
        "ix_audit_log_entity_ts", "audit_log", ["entity_kind", "entity_id", "ts"]
    )


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("release_tickets")
    op.drop_table("releases")
    op.drop_table("tickets")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS audit_action")
