from datetime import date
from typing import Any, List

from .errors import ValidationError
from .models import Job, JobStatus, JobTag

REQUIRED_STR_FIELDS = ["title", "company", "location", "application_date"]
STATUS_VALUES = [s.value for s in JobStatus]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_iso_date(v: str) -> bool:
    try:
        date.fromisoformat(v)
        return True
    except ValueError:
        return False


def validate_job(job: Job) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Checked on save, before the record reaches the store.
    """
    errors: List[str] = []

    if not _is_non_empty_str(job.id):
        errors.append("Field 'id' must be a non-empty string")

    # Required string fields
    for f in REQUIRED_STR_FIELDS:
        if not _is_non_empty_str(getattr(job, f)):
            errors.append(f"Field '{f}' must be a non-empty string")

    if _is_non_empty_str(job.application_date) and not _valid_iso_date(job.application_date):
        errors.append("Field 'application_date' must be a YYYY-MM-DD date")

    status = job.status.value if isinstance(job.status, JobStatus) else job.status
    if status not in STATUS_VALUES:
        errors.append(f"Field 'status' must be one of: {', '.join(STATUS_VALUES)}")

    if not isinstance(job.notes, str):
        errors.append("Field 'notes' must be a string")

    errors.extend(invariant_errors(job))
    return errors


def invariant_errors(job: Job) -> List[str]:
    """Record invariants that hold for stored and imported jobs alike."""
    errors: List[str] = []

    if job.updated_at < job.created_at:
        errors.append("Field 'updated_at' must not be earlier than 'created_at'")

    tag_ids = [t.id for t in job.tags]
    if len(tag_ids) != len(set(tag_ids)):
        errors.append("Field 'tags' must not contain the same tag twice")

    image_ids = [i.id for i in job.images]
    if len(image_ids) != len(set(image_ids)):
        errors.append("Field 'images' must have unique ids")

    return errors


def validate_tag(tag: JobTag) -> List[str]:
    errors: List[str] = []
    if not _is_non_empty_str(tag.id):
        errors.append("Field 'id' must be a non-empty string")
    if not _is_non_empty_str(tag.name):
        errors.append("Field 'name' must be a non-empty string")
    if not isinstance(tag.color, str):
        errors.append("Field 'color' must be a string")
    return errors


def ensure_valid_job(job: Job) -> None:
    errors = validate_job(job)
    if errors:
        raise ValidationError(errors)


def ensure_valid_tag(tag: JobTag) -> None:
    errors = validate_tag(tag)
    if errors:
        raise ValidationError(errors)
