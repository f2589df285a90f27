"""Organizations, members, events, attendance and the financial ledger."""

from alembic import op
import sqlalchemy as sa


revision = "0001_attendance_ledger_core"
down_revision = None
branch_labels = None
depends_on = None


attendance_status = sa.Enum("present", "absent", "late", name="attendance_status")
ledger_entry_type = sa.Enum("fine", "payment", "due", "adjustment", name="ledger_entry_type")


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False, unique=True),
        sa.Column("attendance_fine", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_organizations_code", "organizations", ["code"])

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("student_id", sa.String(length=50), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("is_officer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("organization_member", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_scan", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_members_organization_id", "members", ["organization_id"])
    op.create_index("ix_members_student_id", "members", ["student_id"])
    op.create_index("ix_members_email", "members", ["email"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("absences_swept_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("end_time > start_time", name="ck_events_end_after_start"),
    )
    op.create_index("ix_events_organization_id", "events", ["organization_id"])
    op.create_index("ix_events_end_time", "events", ["end_time"])

    op.create_table(
        "attendances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recorded_by_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.UniqueConstraint("member_id", "event_id", name="uq_attendances_member_event"),
    )
    op.create_index("ix_attendances_organization_id", "attendances", ["organization_id"])
    op.create_index("ix_attendances_member_id", "attendances", ["member_id"])
    op.create_index("ix_attendances_event_id", "attendances", ["event_id"])

    op.create_table(
        "financial_ledgers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("type", ledger_entry_type, nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("balance_before", sa.Numeric(precision=12, scale=2), nullable=False, server_default="0"),
        sa.Column("balance_after", sa.Numeric(precision=12, scale=2), nullable=False, server_default="0"),
        sa.Column("cleared", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="SET NULL"), nullable=True),
        sa.Column("recorded_by_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("ix_financial_ledgers_organization_id", "financial_ledgers", ["organization_id"])
    op.create_index("ix_financial_ledgers_member_id", "financial_ledgers", ["member_id"])
    op.create_index("ix_financial_ledgers_recorded_at", "financial_ledgers", ["recorded_at"])
    op.create_index("ix_financial_ledgers_event_id", "financial_ledgers", ["event_id"])


def downgrade() -> None:
    op.drop_index("ix_financial_ledgers_event_id", table_name="financial_ledgers")
    op.drop_index("ix_financial_ledgers_recorded_at", table_name="financial_ledgers")
    op.drop_index("ix_financial_ledgers_member_id", table_name="financial_ledgers")
    op.drop_index("ix_financial_ledgers_organization_id", table_name="financial_ledgers")
    op.drop_table("financial_ledgers")
    op.drop_index("ix_attendances_event_id", table_name="attendances")
    op.drop_index("ix_attendances_member_id", table_name="attendances")
    op.drop_index("ix_attendances_organization_id", table_name="attendances")
    op.drop_table("attendances")
    op.drop_index("ix_events_end_time", table_name="events")
    op.drop_index("ix_events_organization_id", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_members_email", table_name="members")
    op.drop_index("ix_members_student_id", table_name="members")
    op.drop_index("ix_members_organization_id", table_name="members")
    op.drop_table("members")
    op.drop_index("ix_organizations_code", table_name="organizations")
    op.drop_table("organizations")
    ledger_entry_type.drop(op.get_bind(), checkfirst=True)
    attendance_status.drop(op.get_bind(), checkfirst=True)
