"""
Filtering, search and sorting for job lists.

All functions are pure: they never mutate their input and always return a
new list. ``view`` applies the stages in a fixed order: status, tag,
search, then sort.
"""

from datetime import date
from typing import Callable, Dict, List, Optional

from .errors import FilterError
from .models import STATUS_ALL, FilterSpec, Job, JobStatus

DIRECTIONS = ("asc", "desc")

# Wire names accepted alongside attribute names
FIELD_ALIASES: Dict[str, str] = {
    "applicationDate": "application_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
TEXT_FIELDS = {"id", "title", "company", "location", "status", "notes"}
NUMERIC_FIELDS = {"created_at", "updated_at"}
SORT_FIELDS = {"default", "application_date"} | TEXT_FIELDS | NUMERIC_FIELDS


def filter_by_status(jobs: List[Job], status: str) -> List[Job]:
    if status == STATUS_ALL:
        return list(jobs)
    try:
        wanted = JobStatus(status)
    except ValueError:
        raise FilterError(f"Unknown status filter: {status!r}") from None
    return [job for job in jobs if job.status == wanted]


def filter_by_tag(jobs: List[Job], tag_id: Optional[str]) -> List[Job]:
    if not tag_id:
        return list(jobs)
    return [job for job in jobs if job.has_tag(tag_id)]


def search_jobs(jobs: List[Job], query: str) -> List[Job]:
    """Case-insensitive substring match on title, company, location and notes."""
    if not query.strip():
        return list(jobs)

    needle = query.lower()
    return [
        job for job in jobs
        if needle in job.title.lower()
        or needle in job.company.lower()
        or needle in job.location.lower()
        or needle in job.notes.lower()
    ]


def _date_key(job: Job) -> date:
    try:
        return date.fromisoformat(job.application_date)
    except ValueError:
        return date.min


def _text_key(attr: str) -> Callable[[Job], tuple]:
    def key(job: Job) -> tuple:
        value = getattr(job, attr)
        text = value.value if isinstance(value, JobStatus) else str(value)
        return (text.casefold(), text)
    return key


def resolve_sort_field(field: str) -> str:
    attr = FIELD_ALIASES.get(field, field)
    if attr not in SORT_FIELDS:
        raise FilterError(f"Unknown sort field: {field!r}")
    return attr


def sort_jobs(jobs: List[Job], field: str = "default", direction: str = "desc") -> List[Job]:
    """
    Stable sort by ``field``.

    ``default`` orders by ``updated_at`` (``desc`` puts the most recently
    updated first), ``applicationDate`` by calendar date, timestamps
    numerically and everything else by case-folded text.
    """
    if direction not in DIRECTIONS:
        raise FilterError(f"Unknown sort direction: {direction!r}")
    attr = resolve_sort_field(field)

    if attr == "default":
        key = lambda job: job.updated_at  # noqa: E731
    elif attr == "application_date":
        key = _date_key
    elif attr in NUMERIC_FIELDS:
        key = lambda job: getattr(job, attr)  # noqa: E731
    else:
        key = _text_key(attr)

    # sorted() stays stable with reverse=True
    return sorted(jobs, key=key, reverse=(direction == "desc"))


def validate_filter(spec: FilterSpec) -> None:
    """Reject a filter that ``view`` would not be able to apply."""
    if spec.status != STATUS_ALL:
        filter_by_status([], spec.status)
    if spec.sort.direction not in DIRECTIONS:
        raise FilterError(f"Unknown sort direction: {spec.sort.direction!r}")
    resolve_sort_field(spec.sort.field)


def view(jobs: List[Job], spec: FilterSpec) -> List[Job]:
    validate_filter(spec)
    result = filter_by_status(jobs, spec.status)
    result = filter_by_tag(result, spec.tag_id)
    result = search_jobs(result, spec.search)
    return sort_jobs(result, spec.sort.field, spec.sort.direction)
