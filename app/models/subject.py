"""Subject model."""

from sqlalchemy import BigInteger, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, OwnerScopedMixin, TimestampMixin


class Subject(Base, IDMixin, TimestampMixin, OwnerScopedMixin):
    """Subject taught by a professor, optionally attached to a course."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    course_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("courses.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    semester: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("owner_id", "code", name="uq_subject_owner_code"),
    )

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, code={self.code})>"
