"""
Error taxonomy for the job tracker core.

Every failure the core reports derives from JobTrackerError so callers can
catch the whole family at the presentation boundary.
"""

from typing import Iterable, List, Optional


class JobTrackerError(Exception):
    """Base class for all job tracker errors."""
    pass


class StorageError(JobTrackerError):
    """Raised when the persistence layer fails to read or write."""
    pass


class ImportFormatError(JobTrackerError):
    """Raised when a snapshot document is malformed or incomplete."""
    pass


class ValidationError(JobTrackerError):
    """Raised when a caller-supplied record is missing required fields."""

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors: List[str] = list(errors)
        super().__init__(message or "; ".join(self.errors) or "Invalid record")


class CascadeError(StorageError):
    """
    Raised after a tag removal when some dependent jobs could not be re-saved.

    Strips that did succeed stay applied; ``failed_ids`` lists the jobs the
    caller may retry.
    """

    def __init__(self, tag_id: str, failed_ids: Iterable[str]):
        self.tag_id = tag_id
        self.failed_ids: List[str] = list(failed_ids)
        super().__init__(
            f"Failed to remove tag {tag_id} from jobs: {', '.join(self.failed_ids)}"
        )


class FilterError(JobTrackerError, ValueError):
    """Raised for an unknown sort field, sort direction or status filter."""
    pass
