"""Reconciling importer: validate, resolve, partition and persist a batch.

One run moves through the stages of ``ImportStage`` in order. Subscribers
receive every transition; the upload history record is one of them.

Row-level problems (blank required field, unknown reference, rejected write)
exclude the row and are collected in the outcome. Only two things stop a
run: an empty reference catalog (``PreconditionError``) and a batch in which
no row survives validation and resolution (``ImportFailedError``).
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from app.core.config import settings
from app.core.database import Base
from app.core.exceptions import (
    ImportFailedError,
    PreconditionError,
    RowError,
    RowPersistenceError,
)
from app.models.upload import ImportStage, RecordKind
from app.services.columns import HeaderIndex
from app.services.record_store import RecordStore, StoreError
from app.services.resolver import ReferenceResolver
from app.services.tabular import ParsedTable, RawRow

logger = logging.getLogger(__name__)

StageListener = Callable[[ImportStage], None]

_STAGE_ORDER = [
    ImportStage.PARSED,
    ImportStage.VALIDATED,
    ImportStage.RESOLVED,
    ImportStage.PARTITIONED,
    ImportStage.PERSISTED,
    ImportStage.REPORTED,
]


class ImportRun:
    """Stage machine of one import run."""

    def __init__(self, listeners: Iterable[StageListener] = ()):
        self.stage = ImportStage.PARSED
        self._listeners = list(listeners)

    def subscribe(self, listener: StageListener) -> None:
        self._listeners.append(listener)

    @property
    def finished(self) -> bool:
        return self.stage in (ImportStage.REPORTED, ImportStage.FAILED)

    def advance(self, stage: ImportStage) -> None:
        if self.finished:
            raise RuntimeError(f"Import run already finished at {self.stage.value}")
        if stage != ImportStage.FAILED:
            expected = _STAGE_ORDER[_STAGE_ORDER.index(self.stage) + 1]
            if stage != expected:
                raise RuntimeError(
                    f"Illegal import transition {self.stage.value} -> {stage.value}"
                )
        logger.debug(f"[IMPORT RUN] {self.stage.value} -> {stage.value}")
        self.stage = stage
        for listener in self._listeners:
            listener(stage)

    def fail(self) -> None:
        self.advance(ImportStage.FAILED)


@dataclass
class RowIssue:
    """Why a row was excluded from the import."""

    row_number: int
    identity: str
    reason: str
    error_type: str

    def as_text(self) -> str:
        return f"Row {self.row_number}: {self.identity} - {self.reason}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "identity": self.identity,
            "error_type": self.error_type,
            "error_message": self.reason,
        }


@dataclass
class CandidateRecord:
    """A validated row on its way to the store."""

    row_number: int
    identity: str
    fields: dict[str, Any]
    values: dict[str, Any] = field(default_factory=dict)


@dataclass
class ImportOutcome:
    """Counts and row errors of a finished run."""

    kind: RecordKind
    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[RowIssue] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def summary(self) -> str:
        counts = f"{self.inserted} new, {self.updated} updated, {self.skipped} unchanged"
        if self.has_errors:
            return f"Partial import of {self.kind.value}: {counts}. {self.failed} errors found."
        return f"Import of {self.kind.value} complete: {counts}."


class ImportProfile(ABC):
    """Per-kind rules plugged into the generic importer."""

    kind: RecordKind
    model: type[Base]
    noun: str

    @abstractmethod
    def identify(self, row: RawRow, header: HeaderIndex) -> str:
        """Short human label for the row used in error reports."""

    @abstractmethod
    def validate(self, row: RawRow, header: HeaderIndex) -> CandidateRecord:
        """Normalize one row; raise RowValidationError when a required field is blank."""

    async def prepare(self, resolver: ReferenceResolver, records: list[CandidateRecord]) -> None:
        """Load the lookup tables ``resolve`` needs."""

    @abstractmethod
    def resolve(self, owner_id: int, record: CandidateRecord) -> dict[str, Any]:
        """Column values for the store; raise RowResolutionError on unknown references."""

    @abstractmethod
    def logical_key(self, values: dict[str, Any]) -> tuple: ...

    @abstractmethod
    def existing_key(self, record: Any) -> tuple: ...

    @abstractmethod
    async def fetch_existing(
        self, store: RecordStore, owner_id: int, records: list[CandidateRecord]
    ) -> list[Any]: ...

    @abstractmethod
    def changes(self, existing: Any, values: dict[str, Any]) -> dict[str, Any] | None:
        """
        Values to update on ``existing``, or None when nothing changed.

        Raise a RowError when the row may not overwrite ``existing``.
        """


class ReconcilingImporter:
    """Runs one batch of rows through a profile against the store."""

    def __init__(self, store: RecordStore, owner_id: int, batch_size: int | None = None):
        self.store = store
        self.owner_id = owner_id
        self.batch_size = batch_size or settings.IMPORT_BATCH_SIZE
        self.resolver = ReferenceResolver(store, owner_id)

    async def run(
        self,
        profile: ImportProfile,
        table: ParsedTable,
        run: ImportRun | None = None,
    ) -> ImportOutcome:
        run = run or ImportRun()
        outcome = ImportOutcome(kind=profile.kind, total=len(table.rows))
        tag = f"[{profile.kind.value.upper()} IMPORT]"
        logger.info(f"{tag} Starting run over {len(table.rows)} rows for owner {self.owner_id}")

        try:
            candidates = self._validate(profile, table, outcome)
            run.advance(ImportStage.VALIDATED)
            self._require_rows(profile, candidates, outcome)

            await profile.prepare(self.resolver, candidates)
            resolved = self._resolve(profile, candidates, outcome)
            run.advance(ImportStage.RESOLVED)
            self._require_rows(profile, resolved, outcome)

            existing = {
                profile.existing_key(record): record
                for record in await profile.fetch_existing(self.store, self.owner_id, resolved)
            }
            new_records = []
            matched = []
            for candidate in resolved:
                current = existing.get(profile.logical_key(candidate.values))
                if current is None:
                    new_records.append(candidate)
                else:
                    matched.append((candidate, current))
            run.advance(ImportStage.PARTITIONED)
            logger.info(f"{tag} {len(new_records)} new, {len(matched)} existing")

            await self._insert(profile, new_records, outcome)
            await self._update(profile, matched, outcome)
            run.advance(ImportStage.PERSISTED)
        except (PreconditionError, ImportFailedError) as e:
            logger.warning(f"{tag} Run failed: {e.message}")
            run.fail()
            raise

        outcome.errors.sort(key=lambda issue: issue.row_number)
        run.advance(ImportStage.REPORTED)
        logger.info(f"{tag} {outcome.summary()}")
        return outcome

    def _validate(
        self, profile: ImportProfile, table: ParsedTable, outcome: ImportOutcome
    ) -> list[CandidateRecord]:
        header = HeaderIndex(table.columns)
        candidates = []
        for row in table.rows:
            try:
                candidates.append(profile.validate(row, header))
            except RowError as e:
                self._reject(outcome, row.line, profile.identify(row, header), e)
        return candidates

    def _resolve(
        self, profile: ImportProfile, candidates: list[CandidateRecord], outcome: ImportOutcome
    ) -> list[CandidateRecord]:
        resolved = []
        for candidate in candidates:
            try:
                candidate.values = profile.resolve(self.owner_id, candidate)
            except RowError as e:
                self._reject(outcome, candidate.row_number, candidate.identity, e)
                continue
            resolved.append(candidate)
        return resolved

    def _require_rows(
        self, profile: ImportProfile, records: list[CandidateRecord], outcome: ImportOutcome
    ) -> None:
        if not records:
            raise ImportFailedError(
                f"No valid {profile.noun} rows to import. {outcome.failed} errors found.",
                errors=[issue.as_dict() for issue in outcome.errors],
            )

    async def _insert(
        self, profile: ImportProfile, records: list[CandidateRecord], outcome: ImportOutcome
    ) -> None:
        for start in range(0, len(records), self.batch_size):
            batch = records[start : start + self.batch_size]
            try:
                await self.store.insert_many(profile.model, [r.values for r in batch])
                outcome.inserted += len(batch)
                continue
            except StoreError as e:
                logger.warning(
                    f"[{profile.kind.value.upper()} IMPORT] Batch at offset {start} rejected, "
                    f"retrying {len(batch)} rows one by one: {e.message}"
                )

            for record in batch:
                try:
                    await self.store.insert_one(profile.model, record.values)
                    outcome.inserted += 1
                except StoreError as e:
                    self._reject(
                        outcome, record.row_number, record.identity, RowPersistenceError(e.message)
                    )

    async def _update(
        self, profile: ImportProfile, matched: list[tuple[CandidateRecord, Any]], outcome: ImportOutcome
    ) -> None:
        for record, current in matched:
            try:
                values = profile.changes(current, record.values)
            except RowError as e:
                self._reject(outcome, record.row_number, record.identity, e)
                continue
            if values is None:
                outcome.skipped += 1
                continue
            try:
                await self.store.update(current, values)
                outcome.updated += 1
            except StoreError as e:
                self._reject(
                    outcome, record.row_number, record.identity, RowPersistenceError(e.message)
                )

    @staticmethod
    def _reject(outcome: ImportOutcome, row_number: int, identity: str, error: RowError) -> None:
        logger.debug(f"Row {row_number} FAILED ({error.error_type}) - {identity}: {error.reason}")
        outcome.errors.append(
            RowIssue(
                row_number=row_number,
                identity=identity,
                reason=error.reason,
                error_type=error.error_type,
            )
        )
