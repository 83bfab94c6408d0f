from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    CHAR,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class LessonType(str, PyEnum):
    single = "single"
    monthly = "monthly"
    trial = "trial"
    free_demo = "free-demo"


class BookingStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    canceled = "canceled"


NATURAL_KEY_CONSTRAINT = "uq_booking_natural_key"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint(
            "teacher_id",
            "student_id",
            "lesson_type",
            "lesson_date",
            name=NATURAL_KEY_CONSTRAINT,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    lesson_type: Mapped[LessonType] = mapped_column(
        Enum(LessonType, values_callable=lambda enum: [item.value for item in enum])
    )
    lesson_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    lesson_duration_minutes: Mapped[int] = mapped_column(Integer)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(CHAR(3), default="usd")
    lesson_focus: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    classes_per_month: Mapped[int | None] = mapped_column(Integer)
    subscription_months: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.confirmed)
    meeting_link: Mapped[str | None] = mapped_column(String(512))
    payment_reference: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    student = relationship("User", foreign_keys=[student_id])
    teacher = relationship("User", foreign_keys=[teacher_id])
