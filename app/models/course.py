"""Course model."""

from datetime import date

from sqlalchemy import Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, OwnerScopedMixin, TimestampMixin


class Course(Base, IDMixin, TimestampMixin, OwnerScopedMixin):
    """Degree course; its code is the natural key within the owner."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    total_semesters: Mapped[int] = mapped_column(Integer, default=8, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "code", name="uq_course_owner_code"),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, code={self.code})>"
