"""
Snapshot export/import.

A snapshot is one JSON document ``{"jobs": [...], "tags": [...]}`` holding
every record in the store. Import is a full destructive replace: the
document is parsed and checked completely before the store is touched.
"""

import json
import mimetypes
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .errors import ImportFormatError, StorageError
from .models import Job, JobTag
from .schema import invariant_errors
from .store import JOBS, TAGS, BaseRecordStore

EXPORT_MIME_TYPE = "application/json"
EXPORT_PREFIX = "job-tracker-export-"


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{EXPORT_PREFIX}{today.isoformat()}.json"


def dump_snapshot(jobs: List[Job], tags: List[JobTag]) -> str:
    data = {
        "jobs": [j.to_dict() for j in jobs],
        "tags": [t.to_dict() for t in tags],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_snapshot(store: BaseRecordStore) -> str:
    return dump_snapshot(store.get_all(JOBS), store.get_all(TAGS))


def _decode_all(items: list, decode, label: str, check=None) -> list:
    records = []
    seen = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ImportFormatError(f"{label}[{index}] must be an object")
        try:
            record = decode(item)
        except (KeyError, TypeError, ValueError) as e:
            raise ImportFormatError(f"{label}[{index}] is invalid: {e}") from e
        problems = check(record) if check else []
        if problems:
            raise ImportFormatError(f"{label}[{index}] is invalid: {'; '.join(problems)}")
        if record.id in seen:
            raise ImportFormatError(f"{label}[{index}] repeats id {record.id!r}")
        seen.add(record.id)
        records.append(record)
    return records


def parse_snapshot(document: Union[str, bytes]) -> Tuple[List[Job], List[JobTag]]:
    """
    Parse and check a snapshot document.

    Raises:
        ImportFormatError: malformed JSON, missing ``jobs``/``tags`` arrays,
            or a record that cannot be decoded
    """
    try:
        data = json.loads(document)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ImportFormatError("Snapshot must be a JSON object")
    for key in (JOBS, TAGS):
        if key not in data:
            raise ImportFormatError(f"Snapshot is missing '{key}'")
        if not isinstance(data[key], list):
            raise ImportFormatError(f"Snapshot field '{key}' must be an array")

    jobs = _decode_all(data[JOBS], Job.from_dict, JOBS, check=invariant_errors)
    tags = _decode_all(data[TAGS], JobTag.from_dict, TAGS)
    return jobs, tags


def import_snapshot(store: BaseRecordStore, document: Union[str, bytes]) -> Tuple[int, int]:
    """
    Replace the whole store with the snapshot's contents.

    Returns:
        Tuple of (jobs_imported, tags_imported)
    """
    jobs, tags = parse_snapshot(document)
    store.replace_all(jobs, tags)
    return len(jobs), len(tags)


def write_export(store: BaseRecordStore, directory: Union[str, Path], today: Optional[date] = None) -> Path:
    document = export_snapshot(store)
    path = Path(directory) / export_filename(today)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Could not write export {path}: {e}") from e
    return path


def read_import_file(path: Union[str, Path], mime_type: Optional[str] = None) -> str:
    """
    Read a snapshot file, rejecting anything that is not JSON by MIME type.

    The MIME type is guessed from the filename when not given. The check
    happens before the file is opened.
    """
    path = Path(path)
    if mime_type is None:
        mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type != EXPORT_MIME_TYPE:
        raise ImportFormatError(
            f"Expected a {EXPORT_MIME_TYPE} file, got {mime_type or 'unknown type'}"
        )
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Could not read {path}: {e}") from e
