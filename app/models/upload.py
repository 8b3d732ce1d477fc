"""Upload tracking models."""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, OwnerScopedMixin, TimestampMixin


class UploadStatus(str, enum.Enum):
    """Upload status enumeration."""

    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    PROCESSING = "processing"


class RecordKind(str, enum.Enum):
    """Kind of record a spreadsheet holds."""

    COURSES = "courses"
    STUDENTS = "students"
    GRADES = "grades"


class ImportStage(str, enum.Enum):
    """Stages of one import run, in order."""

    PARSED = "parsed"
    VALIDATED = "validated"
    RESOLVED = "resolved"
    PARTITIONED = "partitioned"
    PERSISTED = "persisted"
    REPORTED = "reported"
    FAILED = "failed"


class Upload(Base, IDMixin, TimestampMixin, OwnerScopedMixin):
    """One spreadsheet import run."""

    __tablename__ = "uploads"

    record_kind: Mapped[RecordKind] = mapped_column(
        Enum(RecordKind),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[UploadStatus] = mapped_column(
        Enum(UploadStatus),
        default=UploadStatus.PROCESSING,
        nullable=False,
    )
    stage: Mapped[ImportStage] = mapped_column(
        Enum(ImportStage),
        default=ImportStage.PARSED,
        nullable=False,
    )
    total_rows: Mapped[int] = mapped_column(Integer, default=0)
    inserted_rows: Mapped[int] = mapped_column(Integer, default=0)
    updated_rows: Mapped[int] = mapped_column(Integer, default=0)
    skipped_rows: Mapped[int] = mapped_column(Integer, default=0)
    failed_rows: Mapped[int] = mapped_column(Integer, default=0)
    rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Processing timestamps
    processing_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    processing_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    errors: Mapped[list["UploadError"]] = relationship(
        "UploadError",
        back_populates="upload",
        lazy="selectin",
        order_by="UploadError.id",
    )

    def __repr__(self) -> str:
        return f"<Upload(id={self.id}, kind={self.record_kind}, status={self.status})>"


class UploadError(Base, IDMixin):
    """Row-level upload error model."""

    __tablename__ = "upload_errors"

    upload_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    identity: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    error_type: Mapped[str] = mapped_column(String(100), nullable=False)
    error_message: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    upload: Mapped["Upload"] = relationship("Upload", back_populates="errors")

    def __repr__(self) -> str:
        return f"<UploadError(upload_id={self.upload_id}, row={self.row_number})>"
