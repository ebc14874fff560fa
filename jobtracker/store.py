"""
Record store for the ``jobs`` and ``tags`` collections.

``SQLRecordStore`` persists to SQLite. ``MemoryRecordStore`` keeps records in
dicts and is what tests inject into the coordinator.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from .database import ImageRow, JobRow, TagRow, init_database
from .errors import StorageError
from .logger import StructuredLogger, get_logger
from .models import Job, JobImage, JobTag

JOBS = "jobs"
TAGS = "tags"
COLLECTIONS = (JOBS, TAGS)

Record = Union[Job, JobTag]


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}")


def _check_record(collection: str, record: Record) -> None:
    expected = Job if collection == JOBS else JobTag
    if not isinstance(record, expected):
        raise TypeError(f"Collection '{collection}' stores {expected.__name__} records")


def _copy(record: Record) -> Record:
    return record.copy() if isinstance(record, Job) else replace(record)


class BaseRecordStore(ABC):
    """
    Keyed storage for the two collections.

    Every method either completes or raises StorageError; a failed call
    leaves the previously stored state readable and intact.
    """

    @abstractmethod
    def put(self, collection: str, record: Record) -> None:
        """Insert or replace ``record`` by its id."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        """Remove by id. Missing ids are ignored."""
        raise NotImplementedError

    @abstractmethod
    def get_all(self, collection: str) -> List[Record]:
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        """Return the record, or None when it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def clear_all(self) -> None:
        """Empty both collections in one step."""
        raise NotImplementedError

    @abstractmethod
    def replace_all(self, jobs: Iterable[Job], tags: Iterable[JobTag]) -> None:
        """Clear both collections and insert ``jobs`` and ``tags`` in one step."""
        raise NotImplementedError


class SQLRecordStore(BaseRecordStore):
    """SQLite-backed store. Each call runs in its own transaction."""

    def __init__(self, db_path: Union[str, Path], logger: Optional[StructuredLogger] = None):
        self.db_path = Path(db_path)
        self.logger = logger or get_logger()
        try:
            self.engine = init_database(self.db_path)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e
        self._Session = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _transaction(self, collection: str, action: str):
        session = self._Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            self.logger.record_failure(collection, type(e).__name__)
            self.logger.error(
                f"Failed to {action} {collection}",
                collection=collection,
                error=str(e),
            )
            raise StorageError(f"Failed to {action} {collection}: {e}") from e
        finally:
            session.close()

    def put(self, collection: str, record: Record) -> None:
        _check_collection(collection)
        _check_record(collection, record)
        with self._transaction(collection, "write") as session:
            if collection == JOBS:
                row = session.get(JobRow, record.id)
                if row is None:
                    row = JobRow(id=record.id)
                    _fill_job_row(row, record)
                    session.add(row)
                else:
                    _fill_job_row(row, record)
            else:
                session.merge(TagRow(id=record.id, name=record.name, color=record.color))
        self.logger.record_write(collection)
        self.logger.debug("Record saved", collection=collection, id=record.id)

    def delete(self, collection: str, record_id: str) -> None:
        _check_collection(collection)
        model = JobRow if collection == JOBS else TagRow
        with self._transaction(collection, "delete") as session:
            row = session.get(model, record_id)
            if row is not None:
                session.delete(row)
        self.logger.record_write(collection)
        self.logger.debug("Record deleted", collection=collection, id=record_id)

    def get_all(self, collection: str) -> List[Record]:
        _check_collection(collection)
        with self._transaction(collection, "read") as session:
            if collection == JOBS:
                rows = (
                    session.query(JobRow)
                    .options(selectinload(JobRow.images))
                    .order_by(JobRow.id)
                    .all()
                )
                records = [_job_from_row(r) for r in rows]
            else:
                rows = session.query(TagRow).order_by(TagRow.id).all()
                records = [_tag_from_row(r) for r in rows]
        self.logger.record_read()
        return records

    def get_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        _check_collection(collection)
        with self._transaction(collection, "read") as session:
            if collection == JOBS:
                row = session.get(JobRow, record_id)
                record = _job_from_row(row) if row is not None else None
            else:
                row = session.get(TagRow, record_id)
                record = _tag_from_row(row) if row is not None else None
        self.logger.record_read()
        return record

    def clear_all(self) -> None:
        with self._transaction("all", "clear") as session:
            _clear(session)
        self.logger.info("Store cleared", db_path=str(self.db_path))

    def replace_all(self, jobs: Iterable[Job], tags: Iterable[JobTag]) -> None:
        jobs = list(jobs)
        tags = list(tags)
        with self._transaction("all", "replace") as session:
            _clear(session)
            for job in jobs:
                row = JobRow(id=job.id)
                _fill_job_row(row, job)
                session.add(row)
            for tag in tags:
                session.add(TagRow(id=tag.id, name=tag.name, color=tag.color))
        self.logger.record_write(JOBS)
        self.logger.record_write(TAGS)
        self.logger.info("Store replaced", jobs=len(jobs), tags=len(tags))


def _clear(session) -> None:
    session.query(ImageRow).delete()
    session.query(JobRow).delete()
    session.query(TagRow).delete()


def _fill_job_row(row: JobRow, job: Job) -> None:
    row.title = job.title
    row.company = job.company
    row.location = job.location
    row.application_date = job.application_date
    row.status = job.status.value
    row.notes = job.notes
    row.tags = [t.to_dict() for t in job.tags]
    row.created_at = job.created_at
    row.updated_at = job.updated_at

    # Reuse rows for images that survive so their keys are not re-inserted
    existing = {img.id: img for img in row.images}
    image_rows = []
    for position, image in enumerate(job.images):
        img_row = existing.get(image.id) or ImageRow(id=image.id)
        img_row.position = position
        img_row.name = image.name
        img_row.data = image.data
        img_row.created_at = image.created_at
        image_rows.append(img_row)
    row.images = image_rows


def _job_from_row(row: JobRow) -> Job:
    return Job(
        id=row.id,
        title=row.title,
        company=row.company,
        location=row.location,
        application_date=row.application_date,
        status=row.status,
        notes=row.notes or "",
        images=[
            JobImage(id=i.id, name=i.name, data=i.data, created_at=i.created_at)
            for i in row.images
        ],
        tags=[JobTag.from_dict(t) for t in (row.tags or [])],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _tag_from_row(row: TagRow) -> JobTag:
    return JobTag(id=row.id, name=row.name, color=row.color)


class MemoryRecordStore(BaseRecordStore):
    """
    In-process store holding copies of every record.

    ``failing_ids`` makes ``put``/``delete`` raise StorageError for those
    record ids; ``failing_operations`` does the same for whole operations
    (e.g. ``"get_all"``, ``"replace_all"``).
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or get_logger()
        self._data: Dict[str, Dict[str, Record]] = {c: {} for c in COLLECTIONS}
        self.failing_ids: Set[str] = set()
        self.failing_operations: Set[str] = set()

    def _maybe_fail(self, operation: str, collection: str, record_id: Optional[str] = None) -> None:
        if operation in self.failing_operations or (
            record_id is not None and record_id in self.failing_ids
        ):
            self.logger.record_failure(collection, "StorageError")
            raise StorageError(f"Simulated {operation} failure on {collection}")

    def put(self, collection: str, record: Record) -> None:
        _check_collection(collection)
        _check_record(collection, record)
        self._maybe_fail("put", collection, record.id)
        self._data[collection][record.id] = _copy(record)
        self.logger.record_write(collection)

    def delete(self, collection: str, record_id: str) -> None:
        _check_collection(collection)
        self._maybe_fail("delete", collection, record_id)
        self._data[collection].pop(record_id, None)
        self.logger.record_write(collection)

    def get_all(self, collection: str) -> List[Record]:
        _check_collection(collection)
        self._maybe_fail("get_all", collection)
        self.logger.record_read()
        return [_copy(r) for r in self._data[collection].values()]

    def get_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        _check_collection(collection)
        self._maybe_fail("get_by_id", collection)
        self.logger.record_read()
        record = self._data[collection].get(record_id)
        return _copy(record) if record is not None else None

    def clear_all(self) -> None:
        self._maybe_fail("clear_all", "all")
        self._data = {c: {} for c in COLLECTIONS}

    def replace_all(self, jobs: Iterable[Job], tags: Iterable[JobTag]) -> None:
        self._maybe_fail("replace_all", "all")
        new_data: Dict[str, Dict[str, Record]] = {JOBS: {}, TAGS: {}}
        for job in jobs:
            new_data[JOBS][job.id] = _copy(job)
        for tag in tags:
            new_data[TAGS][tag.id] = _copy(tag)
        self._data = new_data
        self.logger.record_write(JOBS)
        self.logger.record_write(TAGS)
