from decimal import Decimal
from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class TeacherProfile(Base):
    __tablename__ = "teacher_profiles"
    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="ck_teacher_hourly_rate_non_negative"),
        CheckConstraint("trial_class_price >= 0", name="ck_teacher_trial_price_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    language: Mapped[str | None] = mapped_column(String(255))
    bio: Mapped[str | None] = mapped_column(Text)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    discount_monthly4: Mapped[int] = mapped_column(Integer, default=0)
    discount_monthly8: Mapped[int] = mapped_column(Integer, default=0)
    discount_monthly12: Mapped[int] = mapped_column(Integer, default=0)
    trial_class_available: Mapped[bool] = mapped_column(Boolean, default=False)
    trial_class_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    free_demo_available: Mapped[bool] = mapped_column(Boolean, default=False)
    free_demo_duration: Mapped[int] = mapped_column(Integer, default=30)
    default_meeting_link: Mapped[str | None] = mapped_column(String(512))

    user = relationship("User", back_populates="teacher_profile")
    availability = relationship(
        "TeacherAvailability",
        back_populates="teacher",
        cascade="all, delete-orphan",
        order_by="TeacherAvailability.id",
    )
