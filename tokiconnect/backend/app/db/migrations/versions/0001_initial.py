from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    user_role = postgresql.ENUM("student", "teacher", "admin", name="userrole", create_type=False)
    user_role.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=128)),
        sa.Column("last_name", sa.String(length=128)),
        sa.Column("role", user_role, server_default="student"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "teacher_profiles",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("language", sa.String(length=255)),
        sa.Column("bio", sa.Text()),
        sa.Column("hourly_rate", sa.Numeric(10, 2), server_default="0"),
        sa.Column("discount_monthly4", sa.Integer(), server_default="0"),
        sa.Column("discount_monthly8", sa.Integer(), server_default="0"),
        sa.Column("discount_monthly12", sa.Integer(), server_default="0"),
        sa.Column("trial_class_available", sa.Boolean(), server_default=sa.false()),
        sa.Column("trial_class_price", sa.Numeric(10, 2), server_default="0"),
        sa.Column("free_demo_available", sa.Boolean(), server_default=sa.false()),
        sa.Column("free_demo_duration", sa.Integer(), server_default="30"),
        sa.Column("default_meeting_link", sa.String(length=512)),
        sa.CheckConstraint("hourly_rate >= 0", name="ck_teacher_hourly_rate_non_negative"),
        sa.CheckConstraint("trial_class_price >= 0", name="ck_teacher_trial_price_non_negative"),
    )

    op.create_table(
        "teacher_availability",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "teacher_id",
            sa.Integer(),
            sa.ForeignKey("teacher_profiles.user_id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("weekday", sa.String(length=16), nullable=False),
        sa.Column("slots", sa.JSON()),
        sa.UniqueConstraint("teacher_id", "weekday", name="uq_teacher_availability_weekday"),
    )

    lesson_type = postgresql.ENUM(
        "single", "monthly", "trial", "free-demo", name="lessontype", create_type=False
    )
    lesson_type.create(op.get_bind(), checkfirst=True)
    booking_status = postgresql.ENUM(
        "pending", "confirmed", "completed", "canceled", name="bookingstatus", create_type=False
    )
    booking_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), index=True),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), index=True),
        sa.Column("lesson_type", lesson_type, nullable=False),
        sa.Column("lesson_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("lesson_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.CHAR(length=3), server_default="usd"),
        sa.Column("lesson_focus", sa.String(length=255)),
        sa.Column("notes", sa.Text()),
        sa.Column("classes_per_month", sa.Integer()),
        sa.Column("subscription_months", sa.Integer()),
        sa.Column("status", booking_status, server_default="confirmed"),
        sa.Column("meeting_link", sa.String(length=512)),
        sa.Column("payment_reference", sa.String(length=128)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "teacher_id",
            "student_id",
            "lesson_type",
            "lesson_date",
            name="uq_booking_natural_key",
        ),
    )

    payment_status = postgresql.ENUM(
        "pending", "paid", "failed", "canceled", name="paymentstatus", create_type=False
    )
    payment_status.create(op.get_bind(), checkfirst=True)
    payment_provider = postgresql.ENUM("stub", "stripe", name="paymentprovider", create_type=False)
    payment_provider.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("lesson_type", sa.String(length=16)),
        sa.Column("amount", sa.Numeric(10, 2)),
        sa.Column("currency", sa.CHAR(length=3), server_default="usd"),
        sa.Column("provider", payment_provider),
        sa.Column("order_id", sa.String(length=64)),
        sa.Column("provider_session_id", sa.String(length=255)),
        sa.Column("checkout_url", sa.String(length=1024)),
        sa.Column("status", payment_status, server_default="pending"),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payments_order_id", "payments", ["order_id"], unique=True)
    op.create_index("ix_payments_provider_session_id", "payments", ["provider_session_id"])


def downgrade() -> None:
    op.drop_index("ix_payments_provider_session_id", table_name="payments")
    op.drop_index("ix_payments_order_id", table_name="payments")
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("teacher_availability")
    op.drop_table("teacher_profiles")
    op.drop_table("users")
    for name in ("paymentprovider", "paymentstatus", "bookingstatus", "lessontype", "userrole"):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
