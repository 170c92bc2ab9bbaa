"""create applications, signatories, attachments and audit_events

Revision ID: 4e2b9c1d7a30
Revises:
Create Date: 2026-02-02 09:15:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4e2b9c1d7a30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("plan_type", sa.String(length=32), nullable=False),
        sa.Column("org_type", sa.String(length=32), nullable=False),
        sa.Column("business_name", sa.String(length=255), nullable=False),
        sa.Column("trade_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("business_address", sa.String(length=512), nullable=False),
        sa.Column("billing_address", sa.String(length=512), nullable=False),
        sa.Column("business_ownership", sa.String(length=64), nullable=False, server_default="Private"),
        sa.Column("tax_profile", sa.String(length=32), nullable=False, server_default="VAT_REGISTERED"),
        sa.Column("company_tin", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("industry_type", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("date_of_registration", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("employees_count", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("idx_applications_created_at", "applications", ["created_at"])

    op.create_table(
        "signatories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("application_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("designation", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("id_type", sa.String(length=128), nullable=False),
        sa.Column("id_number", sa.String(length=128), nullable=False),
        sa.Column("signature_storage_key", sa.String(length=512), nullable=True),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_signatories_application_id", "signatories", ["application_id"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("application_id", sa.String(length=36), nullable=False),
        sa.Column("doc_type", sa.String(length=64), nullable=False),
        sa.Column("storage_key", sa.String(length=512), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=128), nullable=False, server_default="application/octet-stream"),
        sa.Column("sha256", sa.String(length=64), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_attachments_application_id", "attachments", ["application_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("client_ip", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=True),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
    )
    op.create_index("idx_audit_events_action", "audit_events", ["action"])


def downgrade() -> None:
    op.drop_index("idx_audit_events_action", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("idx_attachments_application_id", table_name="attachments")
    op.drop_table("attachments")
    op.drop_index("idx_signatories_application_id", table_name="signatories")
    op.drop_table("signatories")
    op.drop_index("idx_applications_created_at", table_name="applications")
    op.drop_table("applications")
