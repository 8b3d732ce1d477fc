"""Database models package."""

from app.models.course import Course
from app.models.grade import Grade
from app.models.student import Student
from app.models.subject import Subject
from app.models.upload import ImportStage, RecordKind, Upload, UploadError, UploadStatus
from app.models.user import User

__all__ = [
    # User
    "User",
    # Catalog
    "Course",
    "Subject",
    "Student",
    "Grade",
    # Upload
    "Upload",
    "UploadError",
    "UploadStatus",
    "RecordKind",
    "ImportStage",
]
