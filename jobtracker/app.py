import argparse
from pathlib import Path
from typing import List, Optional

from . import __version__
from .coordinator import JobCoordinator
from .env import get_settings, load_env
from .errors import JobTrackerError
from .logger import get_logger
from .models import STATUS_ALL, TAG_PALETTE, Job, JobStatus, JobTag, create_empty_job, create_job_image, generate_id
from .query import DIRECTIONS
from .snapshot import read_import_file
from .store import SQLRecordStore


def open_coordinator(db_path: Path) -> JobCoordinator:
    coordinator = JobCoordinator(SQLRecordStore(db_path))
    coordinator.load()
    return coordinator


def _resolve_tags(coordinator: JobCoordinator, refs: Optional[List[str]]) -> List[JobTag]:
    """Look tags up by id or (case-insensitive) name."""
    found = []
    for ref in refs or []:
        match = next(
            (t for t in coordinator.tags if t.id == ref or t.name.lower() == ref.lower()),
            None,
        )
        if match is None:
            raise SystemExit(f"Unknown tag: {ref}")
        found.append(match)
    return found


def _require_job(coordinator: JobCoordinator, job_id: str) -> Job:
    job = coordinator.get_job(job_id)
    if job is None:
        raise SystemExit(f"Job not found: {job_id}")
    return job


def _print_job(job: Job) -> None:
    print(f"ID: {job.id}")
    print(f"  Title: {job.title}")
    print(f"  Company: {job.company}")
    print(f"  Location: {job.location}")
    print(f"  Applied: {job.application_date}")
    print(f"  Status: {job.status.value}")
    if job.tags:
        print(f"  Tags: {', '.join(t.name for t in job.tags)}")
    if job.images:
        print(f"  Images: {', '.join(i.name for i in job.images)}")
    if job.notes:
        print(f"  Notes: {job.notes}")
    print()


def cmd_list(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    tag_id = _resolve_tags(coordinator, [args.tag])[0].id if args.tag else None
    coordinator.set_filter(
        status=args.status,
        tag_id=tag_id,
        search=args.search or "",
        sort={"field": args.sort, "direction": args.direction},
    )
    jobs = coordinator.filtered_jobs
    if not jobs:
        print("No jobs found.")
        return
    print(f"Found {len(jobs)} of {len(coordinator.jobs)} jobs:\n")
    for job in jobs:
        _print_job(job)


def cmd_add(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    job = create_empty_job()
    job.title = args.title
    job.company = args.company
    job.location = args.location
    if args.date:
        job.application_date = args.date
    job.status = JobStatus(args.status)
    job.notes = args.notes or ""
    for tag in _resolve_tags(coordinator, args.tag):
        job.add_tag(tag)
    saved = coordinator.add_new_job(job)
    print(f"Added: {saved.id}")


def cmd_update(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    job = _require_job(coordinator, args.id)
    for field in ("title", "company", "location", "notes"):
        value = getattr(args, field)
        if value is not None:
            setattr(job, field, value)
    if args.date is not None:
        job.application_date = args.date
    if args.status is not None:
        job.status = JobStatus(args.status)
    for tag in _resolve_tags(coordinator, args.add_tag):
        job.add_tag(tag)
    for tag in _resolve_tags(coordinator, args.remove_tag):
        job.remove_tag(tag.id)
    coordinator.update_existing_job(job)
    print(f"Updated: {job.id}")


def cmd_delete(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    coordinator.remove_job(args.id)
    print(f"Deleted: {args.id}")


def cmd_attach(args: argparse.Namespace) -> None:
    image_path = Path(args.image)
    if not image_path.exists():
        raise SystemExit(f"Image file not found: {image_path}")
    coordinator = open_coordinator(Path(args.db))
    job = _require_job(coordinator, args.id)
    image = create_job_image(image_path)
    job.add_image(image)
    coordinator.update_existing_job(job)
    print(f"Attached {image.name} to {job.id}")


def cmd_tags(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    for tag in sorted(coordinator.tags, key=lambda t: t.name.lower()):
        print(f"{tag.id}  {tag.name}  {tag.color}")


def cmd_tag_add(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    tag = coordinator.create_new_tag(JobTag(id=generate_id(), name=args.name, color=args.color))
    print(f"Added tag: {tag.id}")


def cmd_tag_delete(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    tag = _resolve_tags(coordinator, [args.id])[0]
    coordinator.remove_tag(tag.id)
    print(f"Deleted tag: {tag.name}")


def cmd_export(args: argparse.Namespace) -> None:
    coordinator = open_coordinator(Path(args.db))
    path = coordinator.export_to_json(Path(args.out_dir))
    print(f"Exported to {path}")


def cmd_import(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    document = read_import_file(input_path)
    coordinator = open_coordinator(Path(args.db))
    coordinator.import_from_json(document)
    print(f"Imported {len(coordinator.jobs)} jobs and {len(coordinator.tags)} tags")


def build_parser(defaults=None) -> argparse.ArgumentParser:
    settings = defaults or get_settings()
    statuses = [s.value for s in JobStatus]

    parser = argparse.ArgumentParser(prog="jobtracker", description="Job Tracker: local job application log")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", default=str(settings.db_path), help=f"Path to SQLite store (default: {settings.db_path})")
    parser.add_argument("--verbose", action="store_true", help="Log to the console as well as the log file")

    subparsers = parser.add_subparsers(dest="command")
    lst = subparsers.add_parser("list", help="List jobs with optional filters")
    lst.add_argument("--status", default=STATUS_ALL, choices=[STATUS_ALL] + statuses, help="Status filter (default: All)")
    lst.add_argument("--tag", help="Tag id or name")
    lst.add_argument("--search", help="Text to look for in title, company, location or notes")
    lst.add_argument("--sort", default="default", help="Sort field: default, applicationDate, title, company, ...")
    lst.add_argument("--direction", default="desc", choices=list(DIRECTIONS), help="Sort direction (default: desc)")
    lst.set_defaults(func=cmd_list)

    add = subparsers.add_parser("add", help="Add a job application")
    add.add_argument("--title", required=True)
    add.add_argument("--company", required=True)
    add.add_argument("--location", required=True)
    add.add_argument("--date", help="Application date YYYY-MM-DD (default: today)")
    add.add_argument("--status", default=JobStatus.APPLIED.value, choices=statuses)
    add.add_argument("--notes")
    add.add_argument("--tag", action="append", help="Tag id or name (repeatable)")
    add.set_defaults(func=cmd_add)

    upd = subparsers.add_parser("update", help="Edit a job application")
    upd.add_argument("--id", required=True)
    upd.add_argument("--title")
    upd.add_argument("--company")
    upd.add_argument("--location")
    upd.add_argument("--date")
    upd.add_argument("--status", choices=statuses)
    upd.add_argument("--notes")
    upd.add_argument("--add-tag", action="append", help="Tag id or name to add (repeatable)")
    upd.add_argument("--remove-tag", action="append", help="Tag id or name to remove (repeatable)")
    upd.set_defaults(func=cmd_update)

    dele = subparsers.add_parser("delete", help="Delete a job application and its images")
    dele.add_argument("--id", required=True)
    dele.set_defaults(func=cmd_delete)

    att = subparsers.add_parser("attach", help="Attach an image file to a job")
    att.add_argument("--id", required=True)
    att.add_argument("--image", required=True, help="Path to image file")
    att.set_defaults(func=cmd_attach)

    tgs = subparsers.add_parser("tags", help="List tags")
    tgs.set_defaults(func=cmd_tags)

    tga = subparsers.add_parser("tag-add", help="Create a tag")
    tga.add_argument("--name", required=True)
    tga.add_argument("--color", default=TAG_PALETTE[0], help=f"Hex color (default: {TAG_PALETTE[0]})")
    tga.set_defaults(func=cmd_tag_add)

    tgd = subparsers.add_parser("tag-delete", help="Delete a tag and strip it from every job")
    tgd.add_argument("--id", required=True, help="Tag id or name")
    tgd.set_defaults(func=cmd_tag_delete)

    exp = subparsers.add_parser("export", help="Export all jobs and tags to a JSON snapshot")
    exp.add_argument("--out-dir", default=str(settings.export_dir), help="Directory for the export file")
    exp.set_defaults(func=cmd_export)

    imp = subparsers.add_parser("import", help="Replace all data with a JSON snapshot")
    imp.add_argument("--input", required=True, help="Path to a job-tracker export .json file")
    imp.set_defaults(func=cmd_import)

    return parser


def main(argv: Optional[List[str]] = None):
    load_env()
    settings = get_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    logger = get_logger(level=settings.log_level, log_dir=settings.log_dir, enable_console=args.verbose)

    if hasattr(args, "func"):
        try:
            args.func(args)
        except JobTrackerError as e:
            raise SystemExit(f"Error: {e}")
        finally:
            if args.verbose:
                logger.log_metrics_summary()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
