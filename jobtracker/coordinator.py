"""
In-memory state for the job tracker, kept in step with a record store.

The coordinator is the only entry point the presentation layer uses. Every
mutation writes through to the injected store first and touches the
in-memory mirror only after that write succeeded.
"""

import threading
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import CascadeError, JobTrackerError, StorageError, ValidationError
from .logger import StructuredLogger, get_logger
from .models import FilterSpec, Job, JobTag, default_tags, now_ms
from .query import validate_filter, view
from .schema import ensure_valid_job, ensure_valid_tag, validate_job
from .snapshot import export_snapshot, import_snapshot, write_export
from .store import JOBS, TAGS, BaseRecordStore


class JobCoordinator:
    """
    Holds ``jobs``, ``tags``, the current filter and the derived view.

    Mutations are serialized by one re-entrant lock. Failures set ``error``
    and are re-raised so the caller can react.
    """

    def __init__(self, store: BaseRecordStore, logger: Optional[StructuredLogger] = None):
        self.store = store
        self.logger = logger or get_logger()
        self.loading = True
        self.error: Optional[str] = None
        self._current_job_id: Optional[str] = None
        self._jobs: Dict[str, Job] = {}
        self._tags: Dict[str, JobTag] = {}
        self._filter = FilterSpec()
        self._version = 0
        self._view_key: Optional[Tuple[int, FilterSpec]] = None
        self._view: List[Job] = []
        self._lock = threading.RLock()

    # State

    @property
    def jobs(self) -> List[Job]:
        with self._lock:
            return [j.copy() for j in self._jobs.values()]

    @property
    def tags(self) -> List[JobTag]:
        with self._lock:
            return [JobTag(t.id, t.name, t.color) for t in self._tags.values()]

    @property
    def filter(self) -> FilterSpec:
        return self._filter

    @property
    def filtered_jobs(self) -> List[Job]:
        """The filtered, sorted view; recomputed only when jobs or filter changed."""
        with self._lock:
            key = (self._version, self._filter)
            if self._view_key != key:
                self._view = view(list(self._jobs.values()), self._filter)
                self._view_key = key
            return [j.copy() for j in self._view]

    @property
    def current_job(self) -> Optional[Job]:
        job = self._jobs.get(self._current_job_id) if self._current_job_id else None
        return job.copy() if job is not None else None

    def set_current_job(self, job: Optional[Job]) -> None:
        self._current_job_id = job.id if job is not None else None

    def _changed(self) -> None:
        self._version += 1

    def _report(self, message: str, exc: Exception) -> None:
        self.error = message
        self.logger.error(message, error=str(exc), error_type=type(exc).__name__)

    def _succeeded(self) -> None:
        self.error = None

    # Loading

    def load(self) -> None:
        """Read both collections; seed the default tags into an empty store."""
        with self._lock:
            self.loading = True
            try:
                jobs = self.store.get_all(JOBS)
                tags = self.store.get_all(TAGS)
                if not tags:
                    tags = default_tags()
                    for tag in tags:
                        self.store.put(TAGS, tag)
                    self.logger.info("Seeded default tags", count=len(tags))
            except StorageError as e:
                self.loading = False
                self._report("Failed to initialize database", e)
                raise
            self._replace_mirror(jobs, tags)
            self.loading = False
            self._succeeded()
            self.logger.info("Store loaded", jobs=len(jobs), tags=len(tags))

    def _replace_mirror(self, jobs: List[Job], tags: List[JobTag]) -> None:
        self._jobs = {j.id: j for j in jobs}
        self._tags = {t.id: t for t in tags}
        if self._current_job_id not in self._jobs:
            self._current_job_id = None
        self._changed()

    # Jobs

    def add_new_job(self, job: Job) -> Job:
        with self._lock:
            try:
                saved = _copy_for_save(job)
                if saved.id in self._jobs:
                    raise ValidationError([f"Job {saved.id} already exists"])
                ensure_valid_job(saved)
                self.store.put(JOBS, saved)
            except JobTrackerError as e:
                self._report("Failed to add job", e)
                raise
            self._jobs[saved.id] = saved
            self._changed()
            self._succeeded()
            self.logger.info("Job added", id=saved.id, company=saved.company)
            return saved.copy()

    def update_existing_job(self, job: Job) -> Job:
        """Save an edited job. ``updated_at`` is recomputed here."""
        with self._lock:
            try:
                previous = self._jobs.get(job.id)
                if previous is None:
                    raise ValidationError([f"Job {job.id} does not exist"])
                saved = _copy_for_save(job)
                saved.updated_at = _next_updated_at(previous)
                ensure_valid_job(saved)
                self.store.put(JOBS, saved)
            except JobTrackerError as e:
                self._report("Failed to update job", e)
                raise
            self._jobs[saved.id] = saved
            self._changed()
            self._succeeded()
            self.logger.info("Job updated", id=saved.id)
            return saved.copy()

    def remove_job(self, job_id: str) -> None:
        with self._lock:
            try:
                self.store.delete(JOBS, job_id)
            except StorageError as e:
                self._report("Failed to delete job", e)
                raise
            if self._jobs.pop(job_id, None) is not None:
                self._changed()
            if self._current_job_id == job_id:
                self._current_job_id = None
            self._succeeded()
            self.logger.info("Job removed", id=job_id)

    def get_job(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return job.copy() if job is not None else None

    # Tags

    def create_new_tag(self, tag: JobTag) -> JobTag:
        with self._lock:
            saved = JobTag(tag.id, tag.name.strip(), tag.color)
            try:
                if saved.id in self._tags:
                    raise ValidationError([f"Tag {saved.id} already exists"])
                ensure_valid_tag(saved)
                self.store.put(TAGS, saved)
            except JobTrackerError as e:
                self._report("Failed to add tag", e)
                raise
            self._tags[saved.id] = saved
            self._succeeded()
            self.logger.info("Tag added", id=saved.id, name=saved.name)
            return JobTag(saved.id, saved.name, saved.color)

    def remove_tag(self, tag_id: str) -> None:
        """
        Delete a tag and strip it from every job that embeds it.

        Each affected job is re-saved on its own with a fresh ``updated_at``.
        Strips that were written stay applied even if later ones fail; the
        failures are reported together as one CascadeError.
        """
        with self._lock:
            try:
                self.store.delete(TAGS, tag_id)
            except StorageError as e:
                self._report("Failed to delete tag", e)
                raise
            self._tags.pop(tag_id, None)

            pending = []
            for job in self._jobs.values():
                if job.has_tag(tag_id):
                    stripped = job.copy()
                    stripped.remove_tag(tag_id)
                    stripped.updated_at = _next_updated_at(job)
                    pending.append(stripped)

            failed = []
            for stripped in pending:
                try:
                    self.store.put(JOBS, stripped)
                except StorageError as e:
                    failed.append(stripped.id)
                    self.logger.warning(
                        "Could not strip tag from job",
                        tag_id=tag_id,
                        job_id=stripped.id,
                        error=str(e),
                    )
                    continue
                self._jobs[stripped.id] = stripped
            if pending:
                self._changed()

            if failed:
                err = CascadeError(tag_id, failed)
                self._report("Failed to delete tag", err)
                raise err
            self._succeeded()
            self.logger.info("Tag removed", id=tag_id, jobs_updated=len(pending))

    # Filter

    def set_filter(self, patch: Optional[Mapping[str, Any]] = None, **changes: Any) -> FilterSpec:
        """
        Merge a partial update into the current filter.

        Example:
            coordinator.set_filter(status="Applied", sort={"field": "company"})
        """
        with self._lock:
            merged = dict(patch or {})
            merged.update(changes)
            try:
                new_filter = self._filter.merge(merged)
                validate_filter(new_filter)
            except (KeyError, TypeError, ValueError) as e:
                self._report("Invalid filter", e)
                raise
            self._filter = new_filter
            return new_filter

    def reset_filter(self) -> FilterSpec:
        with self._lock:
            self._filter = FilterSpec()
            return self._filter

    # Snapshots

    def export_document(self) -> str:
        with self._lock:
            try:
                return export_snapshot(self.store)
            except StorageError as e:
                self._report("Failed to export data", e)
                raise

    def export_to_json(self, directory: Union[str, Path], today: Optional[date] = None) -> Path:
        with self._lock:
            try:
                path = write_export(self.store, directory, today)
            except StorageError as e:
                self._report("Failed to export data", e)
                raise
            self.logger.info("Exported snapshot", path=str(path))
            return path

    def import_from_json(self, document: Union[str, bytes]) -> None:
        """Replace everything with the snapshot, then reload from the store."""
        with self._lock:
            try:
                jobs_count, tags_count = import_snapshot(self.store, document)
                jobs = self.store.get_all(JOBS)
                tags = self.store.get_all(TAGS)
            except JobTrackerError as e:
                self._report("Failed to import data", e)
                raise
            self._replace_mirror(jobs, tags)
            self._succeeded()
            self.logger.info("Imported snapshot", jobs=jobs_count, tags=tags_count)


def _next_updated_at(previous: Job) -> int:
    """A save timestamp strictly after the last save and never before creation."""
    return max(now_ms(), previous.updated_at + 1, previous.created_at)


def _copy_for_save(job: Job) -> Job:
    try:
        return job.copy()
    except ValueError:
        # copy() re-coerces status, which fails for values outside JobStatus
        raise ValidationError(validate_job(job)) from None
