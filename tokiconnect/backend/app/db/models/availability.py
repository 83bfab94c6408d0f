from sqlalchemy import ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class TeacherAvailability(Base):
    __tablename__ = "teacher_availability"
    __table_args__ = (
        UniqueConstraint("teacher_id", "weekday", name="uq_teacher_availability_weekday"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    teacher_id: Mapped[int] = mapped_column(
        ForeignKey("teacher_profiles.user_id", ondelete="CASCADE"), index=True
    )
    weekday: Mapped[str] = mapped_column(String(16), nullable=False)
    slots: Mapped[list] = mapped_column(JSON, default=list)

    teacher = relationship("TeacherProfile", back_populates="availability")
