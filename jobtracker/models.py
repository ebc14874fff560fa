"""
Record types for the job tracker.

Jobs, tags and images are plain dataclasses. ``to_dict``/``from_dict`` use
the camelCase field names of the snapshot format so that an exported file
can be read back without translation tables elsewhere.
"""

import base64
import mimetypes
import random
import string
import time
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union


class JobStatus(str, Enum):
    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFERED = "Offered"
    REJECTED = "Rejected"


STATUS_ALL = "All"

TAG_PALETTE = [
    "#3b82f6",  # blue
    "#10b981",  # green
    "#f59e0b",  # amber
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#ef4444",  # red
    "#6b7280",  # gray
]

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_id() -> str:
    """Opaque id: base36 millisecond clock plus a 5 character random suffix."""
    suffix = "".join(random.choice(_BASE36) for _ in range(5))
    return _base36(now_ms()) + suffix


def now_ms() -> int:
    return int(time.time() * 1000)


def format_date(d: date) -> str:
    return d.isoformat()


def parse_date(value: str) -> date:
    return date.fromisoformat(value)


@dataclass
class JobTag:
    id: str
    name: str
    color: str = TAG_PALETTE[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobTag":
        return cls(
            id=_require_str(data, "id"),
            name=_require_str(data, "name"),
            color=_require_str(data, "color"),
        )


@dataclass
class JobImage:
    id: str
    name: str
    data: str
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "data": self.data,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobImage":
        return cls(
            id=_require_str(data, "id"),
            name=_require_str(data, "name"),
            data=_require_str(data, "data"),
            created_at=_require_int(data, "createdAt"),
        )


@dataclass
class Job:
    """A tracked job application."""

    id: str
    title: str = ""
    company: str = ""
    location: str = ""
    application_date: str = ""
    status: JobStatus = JobStatus.APPLIED
    notes: str = ""
    images: List[JobImage] = field(default_factory=list)
    tags: List[JobTag] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    def __post_init__(self):
        # Raises ValueError for anything outside the four statuses
        self.status = JobStatus(self.status)
        self.tags = _dedupe_tags(self.tags)

    def has_tag(self, tag_id: str) -> bool:
        return any(t.id == tag_id for t in self.tags)

    def add_tag(self, tag: JobTag) -> None:
        """Embed a copy of ``tag``; a tag with the same id is not added twice."""
        if not self.has_tag(tag.id):
            self.tags.append(replace(tag))

    def remove_tag(self, tag_id: str) -> bool:
        before = len(self.tags)
        self.tags = [t for t in self.tags if t.id != tag_id]
        return len(self.tags) != before

    def add_image(self, image: JobImage) -> None:
        self.images.append(image)

    def copy(self) -> "Job":
        return replace(
            self,
            images=[replace(i) for i in self.images],
            tags=[replace(t) for t in self.tags],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "applicationDate": self.application_date,
            "status": self.status.value,
            "notes": self.notes,
            "images": [i.to_dict() for i in self.images],
            "tags": [t.to_dict() for t in self.tags],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Job":
        images = data.get("images", [])
        tags = data.get("tags", [])
        if not isinstance(images, list) or not isinstance(tags, list):
            raise TypeError("Fields 'images' and 'tags' must be lists")
        return cls(
            id=_require_str(data, "id"),
            title=_require_str(data, "title"),
            company=_require_str(data, "company"),
            location=_require_str(data, "location"),
            application_date=_require_str(data, "applicationDate"),
            status=JobStatus(_require_str(data, "status")),
            notes=_require_str(data, "notes") if data.get("notes") is not None else "",
            images=[JobImage.from_dict(i) for i in images],
            tags=[JobTag.from_dict(t) for t in tags],
            created_at=_require_int(data, "createdAt"),
            updated_at=_require_int(data, "updatedAt"),
        )


@dataclass(frozen=True)
class SortSpec:
    field: str = "default"
    direction: str = "desc"


@dataclass(frozen=True)
class FilterSpec:
    """Ephemeral view parameters. Frozen so it can key the view cache."""

    status: str = STATUS_ALL
    tag_id: Optional[str] = None
    search: str = ""
    sort: SortSpec = SortSpec()

    def merge(self, patch: Mapping[str, Any]) -> "FilterSpec":
        """Return a copy with ``patch`` applied. ``sort`` may be partial."""
        changes: Dict[str, Any] = {}
        for key, value in patch.items():
            if key == "tagId":
                key = "tag_id"
            if key == "sort":
                if isinstance(value, Mapping):
                    value = replace(self.sort, **dict(value))
                elif not isinstance(value, SortSpec):
                    raise TypeError("sort must be a SortSpec or a mapping")
            elif key == "status":
                value = value.value if isinstance(value, JobStatus) else value
            elif key not in ("tag_id", "search"):
                raise KeyError(f"Unknown filter key: {key}")
            changes[key] = value
        return replace(self, **changes)


def create_empty_job() -> Job:
    now = now_ms()
    return Job(
        id=generate_id(),
        application_date=format_date(date.today()),
        created_at=now,
        updated_at=now,
    )


def create_job_image(path: Union[str, Path]) -> JobImage:
    """Read an image file into a base64 ``data:`` URL payload."""
    path = Path(path)
    mime, _ = mimetypes.guess_type(path.name)
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return JobImage(
        id=generate_id(),
        name=path.name,
        data=f"data:{mime or 'application/octet-stream'};base64,{encoded}",
        created_at=now_ms(),
    )


def default_tags() -> List[JobTag]:
    names = ["Remote", "Full-time", "Part-time", "Contract", "Internship"]
    return [JobTag(id=generate_id(), name=n, color=c) for n, c in zip(names, TAG_PALETTE)]


def _dedupe_tags(tags: List[JobTag]) -> List[JobTag]:
    seen = set()
    unique = []
    for tag in tags:
        if tag.id in seen:
            continue
        seen.add(tag.id)
        unique.append(tag)
    return unique


def _require_str(data: Mapping[str, Any], key: str) -> str:
    if key not in data:
        raise KeyError(f"Missing required field: {key}")
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"Field '{key}' must be a string")
    return value


def _require_int(data: Mapping[str, Any], key: str) -> int:
    if key not in data:
        raise KeyError(f"Missing required field: {key}")
    value = data[key]
    # bool is an int subclass and never a valid timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Field '{key}' must be a number")
    return int(value)
