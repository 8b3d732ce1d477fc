"""Natural-key lookups that turn spreadsheet text into internal ids."""

import logging
from collections.abc import Iterable
from typing import Any

from app.core.exceptions import PreconditionError, RowResolutionError
from app.services.normalizers import cell_text
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)


class ReferenceIndex:
    """Lower-cased, trimmed natural key -> internal id."""

    def __init__(self, missing_reason: str):
        # e.g. 'Course not found: "{value}"'
        self.missing_reason = missing_reason
        self._ids: dict[str, int] = {}

    @staticmethod
    def key(value: Any) -> str:
        return cell_text(value).lower()

    @classmethod
    def build(cls, missing_reason: str, records: Iterable[Any], *attributes: str) -> "ReferenceIndex":
        """Register every given attribute of each record as a key for its id."""
        index = cls(missing_reason)
        for record in records:
            for attribute in attributes:
                index.register(getattr(record, attribute), record.id)
        return index

    def register(self, value: Any, record_id: int) -> None:
        key = self.key(value)
        if key:
            self._ids.setdefault(key, record_id)

    def get(self, value: Any) -> int | None:
        return self._ids.get(self.key(value))

    def resolve(self, value: Any) -> int:
        record_id = self.get(value)
        if record_id is None:
            raise RowResolutionError(self.missing_reason.format(value=cell_text(value)))
        return record_id

    def __len__(self) -> int:
        return len(self._ids)

    def ids(self) -> set[int]:
        return set(self._ids.values())


class ReferenceResolver:
    """Builds the lookup tables one import run needs, one bulk fetch each."""

    def __init__(self, store: RecordStore, owner_id: int):
        self.store = store
        self.owner_id = owner_id

    async def courses(self) -> ReferenceIndex:
        courses = await self.store.list_courses(self.owner_id)
        if not courses:
            raise PreconditionError(
                "No courses registered. Import or create courses before importing students.",
                details={"required": "courses"},
            )
        logger.debug(f"[RESOLVER] {len(courses)} courses loaded for owner {self.owner_id}")
        return ReferenceIndex.build('Course not found: "{value}"', courses, "name", "code")

    async def subjects(self) -> ReferenceIndex:
        subjects = await self.store.list_subjects(self.owner_id)
        if not subjects:
            raise PreconditionError(
                "No subjects registered. Create subjects before importing grades.",
                details={"required": "subjects"},
            )
        logger.debug(f"[RESOLVER] {len(subjects)} subjects loaded for owner {self.owner_id}")
        return ReferenceIndex.build('Subject not found: "{value}"', subjects, "name", "code")

    async def students(self, registration_ids: Iterable[str]) -> ReferenceIndex:
        students = await self.store.find_enrolled_students(self.owner_id, registration_ids)
        logger.debug(f"[RESOLVER] {len(students)} enrolled students matched in batch")
        return ReferenceIndex.build(
            "Student not found (identifier: {value})", students, "registration_id"
        )
